"""
쿠폰 사용 이력(CouponUsage) 모델

목적: 쿠폰 사용 1건당 1행이 추가되는 원장 (수정/삭제하지 않음)
"""

from sqlalchemy import (
    Column,
    DECIMAL,
    Integer,
    ForeignKey,
    DateTime,
    Index,
    CheckConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from .base import Base, utc_now


class CouponUsage(Base):
    """쿠폰 사용 이력 모델"""

    __tablename__ = "coupon_usage"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # 사용 이력이 있는 쿠폰은 물리 삭제 불가
    coupon_id = Column(
        Integer, ForeignKey("coupons.id", ondelete="RESTRICT"), nullable=False
    )
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    order_id = Column(Uuid, ForeignKey("orders.id", ondelete="RESTRICT"), nullable=False)
    discount_amount = Column(DECIMAL(10, 2), nullable=False)
    order_total = Column(DECIMAL(10, 2), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utc_now)

    # 제약 조건
    __table_args__ = (
        CheckConstraint(
            "discount_amount >= 0", name="check_usage_discount_non_negative"
        ),
        CheckConstraint("order_total >= 0", name="check_usage_order_total_non_negative"),
        Index("idx_coupon_usage_coupon_user", "coupon_id", "user_id"),
        Index("idx_coupon_usage_order", "order_id"),
    )

    # Relationships
    coupon = relationship("Coupon", back_populates="usages")
    order = relationship("Order", back_populates="coupon_usages")

    def __repr__(self):
        return (
            f"<CouponUsage(id={self.id}, coupon_id={self.coupon_id}, "
            f"user_id={self.user_id}, order_id={self.order_id})>"
        )
