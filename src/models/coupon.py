"""
쿠폰(Coupon) 모델

목적: 할인 쿠폰 마스터 데이터 (코드, 할인 규칙, 유효 기간, 사용 한도, 적용 대상)
"""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Iterable, Optional
from sqlalchemy import (
    Column,
    String,
    Text,
    DECIMAL,
    Integer,
    DateTime,
    Boolean,
    Index,
    CheckConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from .base import Base, utc_now
from .compat import JSONB


CENT = Decimal("0.01")


class DiscountType(str, Enum):
    """할인 유형"""

    PERCENTAGE = "percentage"  # 정률 할인 (예: 10%)
    FIXED_AMOUNT = "fixed_amount"  # 정액 할인 (예: $5)
    FREE_SHIPPING = "free_shipping"  # 무료 배송 (배송비는 호출 측에서 처리)


class Coupon(Base):
    """쿠폰 모델"""

    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(50), nullable=False, unique=True, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    discount_type = Column(String(20), nullable=False)
    discount_value = Column(DECIMAL(10, 2), nullable=False, default=0)
    minimum_amount = Column(DECIMAL(10, 2), nullable=True)
    usage_limit = Column(Integer, nullable=True)
    usage_limit_per_user = Column(Integer, nullable=True)
    used_count = Column(Integer, nullable=False, default=0)
    valid_from = Column(DateTime, nullable=True)
    valid_to = Column(DateTime, nullable=True)

    # 적용/제외 대상 (상품 ID, 카테고리 ID 배열)
    applicable_products = Column(JSONB, nullable=True)
    applicable_categories = Column(JSONB, nullable=True)
    excluded_products = Column(JSONB, nullable=True)
    excluded_categories = Column(JSONB, nullable=True)

    first_time_customers_only = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    is_public = Column(Boolean, nullable=False, default=True)
    # "metadata"는 DeclarativeBase 예약어라 속성명만 변경
    extra_metadata = Column("metadata", JSONB, nullable=False, default=dict)
    created_by = Column(Uuid, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    # 제약 조건
    __table_args__ = (
        CheckConstraint(
            "discount_value >= 0", name="check_discount_value_non_negative"
        ),
        CheckConstraint(
            "discount_type <> 'percentage' OR discount_value <= 100",
            name="check_percentage_range",
        ),
        CheckConstraint("used_count >= 0", name="check_used_count_non_negative"),
        CheckConstraint(
            "valid_from IS NULL OR valid_to IS NULL OR valid_to >= valid_from",
            name="check_valid_date_range",
        ),
        CheckConstraint(
            "discount_type IN ('percentage', 'fixed_amount', 'free_shipping')",
            name="check_discount_type",
        ),
        Index("idx_coupons_valid_dates", "valid_from", "valid_to"),
    )

    # Relationships
    usages = relationship("CouponUsage", back_populates="coupon", lazy="dynamic")

    def __repr__(self):
        return f"<Coupon(id={self.id}, code={self.code}, type={self.discount_type})>"

    @staticmethod
    def normalize_code(code: str) -> str:
        """쿠폰 코드 정규화 (앞뒤 공백 제거 후 대문자)"""
        return code.strip().upper()

    def has_started(self, now: datetime) -> bool:
        """유효 기간이 시작되었는지 확인 (시작일 없음 = 제한 없음)"""
        return self.valid_from is None or self.valid_from <= now

    def is_expired(self, now: datetime) -> bool:
        """쿠폰이 만료되었는지 확인 (종료일 없음 = 만료 없음)"""
        return self.valid_to is not None and self.valid_to < now

    def is_usage_limit_reached(self) -> bool:
        """전체 사용 한도에 도달했는지 확인"""
        if self.usage_limit is None:
            return False
        return self.used_count >= self.usage_limit

    def matches_allow_list(
        self, product_ids: Iterable[int], category_ids: Iterable[int]
    ) -> Optional[bool]:
        """
        적용 대상 목록 검사

        Returns:
            적용 대상 목록이 없으면 None, 있으면 주문 항목 중 하나라도 포함되는지 여부
        """
        products = set(self.applicable_products or [])
        categories = set(self.applicable_categories or [])
        if not products and not categories:
            return None
        return bool(products.intersection(product_ids)) or bool(
            categories.intersection(category_ids)
        )

    def matches_deny_list(
        self, product_ids: Iterable[int], category_ids: Iterable[int]
    ) -> bool:
        """제외 대상 상품/카테고리가 주문에 포함되어 있는지 확인"""
        products = set(self.excluded_products or [])
        categories = set(self.excluded_categories or [])
        return bool(products.intersection(product_ids)) or bool(
            categories.intersection(category_ids)
        )

    def calculate_discount(self, order_amount: Decimal) -> Decimal:
        """
        주문 금액에 대한 할인 금액 계산

        Args:
            order_amount: 주문 금액

        Returns:
            할인 금액 (센트 단위 반올림)
        """
        order_amount = Decimal(str(order_amount))
        value = Decimal(str(self.discount_value or 0))

        if self.discount_type == DiscountType.PERCENTAGE.value:
            discount = order_amount * value / Decimal("100")
        elif self.discount_type == DiscountType.FIXED_AMOUNT.value:
            # 주문 금액을 초과하여 할인하지 않음
            discount = min(value, order_amount)
        else:
            # 무료 배송은 배송비 계산 단계에서 처리
            discount = Decimal("0")

        return discount.quantize(CENT, rounding=ROUND_HALF_UP)

    def to_snapshot(self) -> dict:
        """감사 로그용 JSON 직렬화 가능한 스냅샷"""
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "discount_type": self.discount_type,
            "discount_value": _decimal_to_str(self.discount_value),
            "minimum_amount": _decimal_to_str(self.minimum_amount),
            "usage_limit": self.usage_limit,
            "usage_limit_per_user": self.usage_limit_per_user,
            "used_count": self.used_count,
            "valid_from": self.valid_from.isoformat() if self.valid_from else None,
            "valid_to": self.valid_to.isoformat() if self.valid_to else None,
            "applicable_products": self.applicable_products,
            "applicable_categories": self.applicable_categories,
            "excluded_products": self.excluded_products,
            "excluded_categories": self.excluded_categories,
            "first_time_customers_only": self.first_time_customers_only,
            "is_active": self.is_active,
            "is_public": self.is_public,
        }


def _decimal_to_str(value) -> Optional[str]:
    return str(value) if value is not None else None
