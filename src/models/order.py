"""
주문(Order) 모델

목적: 쿠폰 사용 이력이 참조하는 고객 주문 (첫 구매 여부 판단에도 사용)
"""

from enum import Enum
from sqlalchemy import (
    Column,
    String,
    DECIMAL,
    DateTime,
    ForeignKey,
    CheckConstraint,
    Index,
    Uuid,
)
from sqlalchemy.orm import relationship
import uuid

from .base import Base, utc_now


class OrderStatus(str, Enum):
    """주문 상태"""

    PENDING = "pending"  # 주문 접수 (결제 대기)
    PAID = "paid"  # 결제 완료
    PREPARING = "preparing"  # 배송 준비 중
    SHIPPED = "shipped"  # 배송 중
    DELIVERED = "delivered"  # 배송 완료
    CANCELLED = "cancelled"  # 취소됨
    REFUNDED = "refunded"  # 환불 완료


class Order(Base):
    """주문 모델"""

    __tablename__ = "orders"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_number = Column(String(20), unique=True, nullable=False, index=True)
    user_id = Column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    total_amount = Column(DECIMAL(10, 2), nullable=False)
    discount_amount = Column(DECIMAL(10, 2), nullable=False, default=0)
    coupon_code = Column(String(50), nullable=True)
    status = Column(
        String(50),
        nullable=False,
        default=OrderStatus.PENDING.value,
        index=True,
    )

    # 타임스탬프
    created_at = Column(DateTime, nullable=False, default=utc_now, index=True)
    cancelled_at = Column(DateTime, nullable=True)

    # 관계
    user = relationship("User", back_populates="orders")
    coupon_usages = relationship("CouponUsage", back_populates="order", lazy="dynamic")

    # 제약 조건
    __table_args__ = (
        CheckConstraint("total_amount > 0", name="check_total_amount_positive"),
        CheckConstraint(
            "discount_amount >= 0", name="check_discount_amount_non_negative"
        ),
        CheckConstraint(
            "status IN ('pending', 'paid', 'preparing', 'shipped', 'delivered', 'cancelled', 'refunded')",
            name="check_order_status",
        ),
        Index("idx_orders_user_status", "user_id", "status"),
    )

    def __repr__(self):
        return f"<Order(id={self.id}, order_number={self.order_number}, status={self.status})>"

    def is_cancelled(self) -> bool:
        """취소된 주문인지 확인"""
        return self.status == OrderStatus.CANCELLED.value

    def apply_coupon(self, coupon_code: str, discount_amount):
        """
        주문에 적용된 쿠폰 기록

        Args:
            coupon_code: 쿠폰 코드
            discount_amount: 할인 금액
        """
        self.coupon_code = coupon_code
        self.discount_amount = discount_amount
