"""
쿠폰 검증 서비스

목적: 쿠폰 코드가 주문에 적용 가능한지 판단하고 할인 금액 계산

검증은 정해진 순서대로 진행되며 처음 실패한 항목에서 중단합니다.
검증 실패는 예외가 아니라 결과(valid=False)로 반환하고, 검증 중 발생한
예상치 못한 오류도 "Error validating coupon" 결과로 변환합니다.
검증은 DB에 아무것도 쓰지 않습니다.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Iterable, Optional
from uuid import UUID
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.base import utc_now
from src.models.coupon import Coupon
from src.models.order import Order, OrderStatus
from src.services.coupon_repository import CouponRepository
from src.services.coupon_usage_service import CouponUsageRecorder
from src.utils.logging import get_logger
from src.utils.prometheus_metrics import record_coupon_validation, record_error
from src.utils.sentry_config import capture_exception_with_context

logger = get_logger(__name__)

ZERO = Decimal("0.00")

# 검증 실패 메시지
MSG_NOT_FOUND = "Coupon not found"
MSG_INACTIVE = "Coupon is inactive"
MSG_NOT_YET_VALID = "Coupon is not yet valid"
MSG_EXPIRED = "Coupon has expired"
MSG_MINIMUM_AMOUNT = "Minimum order amount required: {minimum}"
MSG_USAGE_LIMIT = "Coupon usage limit reached"
MSG_USER_LIMIT = "You have reached the usage limit for this coupon"
MSG_FIRST_TIME_ONLY = "Coupon is only valid for first-time customers"
MSG_NOT_APPLICABLE = "Coupon does not apply to the selected products"
MSG_EXCLUDED = "Coupon does not apply to some products in the cart"
MSG_ERROR = "Error validating coupon"


@dataclass
class CouponValidationResult:
    """쿠폰 검증 결과"""

    valid: bool
    discount_amount: Decimal = ZERO
    coupon: Optional[Coupon] = None
    error_message: Optional[str] = None
    order_amount: Decimal = field(default=ZERO, repr=False)

    @property
    def final_amount(self) -> Decimal:
        """할인 적용 후 결제 금액"""
        return max(self.order_amount - self.discount_amount, ZERO)

    @classmethod
    def reject(
        cls,
        message: str,
        coupon: Optional[Coupon] = None,
        order_amount: Decimal = ZERO,
    ) -> "CouponValidationResult":
        return cls(
            valid=False,
            coupon=coupon,
            error_message=message,
            order_amount=order_amount,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "discount_amount": self.discount_amount,
            "final_amount": self.final_amount,
            "error_message": self.error_message,
            "coupon": self.coupon,
        }


class CouponValidator:
    """쿠폰 검증기"""

    def __init__(
        self,
        db: AsyncSession,
        repository: Optional[CouponRepository] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.repository = repository or CouponRepository(db)
        self.usage = CouponUsageRecorder(db)
        self.clock = clock

    async def validate(
        self,
        code: str,
        user_id: Optional[UUID] = None,
        order_amount: Decimal = ZERO,
        product_ids: Iterable[int] = (),
        category_ids: Iterable[int] = (),
        order_id: Optional[UUID] = None,
    ) -> CouponValidationResult:
        """
        쿠폰 검증 및 할인 금액 계산

        Args:
            code: 쿠폰 코드 (대소문자 무관)
            user_id: 사용자 ID (없으면 사용자별 한도/첫 구매 검사 생략)
            order_amount: 주문 금액
            product_ids: 주문 상품 ID 목록
            category_ids: 주문 상품 카테고리 ID 목록
            order_id: 검증 대상 주문 ID (첫 구매 판단 시 이 주문은 제외)

        Returns:
            CouponValidationResult (이 메서드는 예외를 발생시키지 않음)
        """
        try:
            result = await self._run_checks(
                code,
                user_id,
                Decimal(str(order_amount)),
                list(product_ids),
                list(category_ids),
                order_id,
            )
        except Exception as e:
            logger.error(f"쿠폰 검증 중 오류: code={code}, error={e}", exc_info=True)
            record_coupon_validation("error")
            record_error("coupon_validation")
            capture_exception_with_context(
                e, user_id=str(user_id) if user_id else None, coupon_code=code
            )
            return CouponValidationResult.reject(MSG_ERROR)

        record_coupon_validation("valid" if result.valid else "rejected")
        if not result.valid:
            logger.info(f"쿠폰 검증 실패: code={code}, reason={result.error_message}")
        return result

    async def _run_checks(
        self,
        code: str,
        user_id: Optional[UUID],
        order_amount: Decimal,
        product_ids: list[int],
        category_ids: list[int],
        order_id: Optional[UUID],
    ) -> CouponValidationResult:
        now = self.clock()

        # 1. 쿠폰 존재 여부
        coupon = await self.repository.get_coupon_by_code(code)
        if coupon is None:
            return CouponValidationResult.reject(MSG_NOT_FOUND, order_amount=order_amount)

        def reject(message: str) -> CouponValidationResult:
            return CouponValidationResult.reject(message, coupon, order_amount)

        # 2. 활성화 상태
        if not coupon.is_active:
            return reject(MSG_INACTIVE)

        # 3~4. 유효 기간
        if not coupon.has_started(now):
            return reject(MSG_NOT_YET_VALID)
        if coupon.is_expired(now):
            return reject(MSG_EXPIRED)

        # 5. 최소 주문 금액
        if coupon.minimum_amount is not None and order_amount < coupon.minimum_amount:
            return reject(MSG_MINIMUM_AMOUNT.format(minimum=coupon.minimum_amount))

        # 6. 전체 사용 한도
        if coupon.is_usage_limit_reached():
            return reject(MSG_USAGE_LIMIT)

        # 7. 사용자별 사용 한도
        if user_id is not None and coupon.usage_limit_per_user is not None:
            user_usage = await self.usage.get_user_usage_count(coupon.id, user_id)
            if user_usage >= coupon.usage_limit_per_user:
                return reject(MSG_USER_LIMIT)

        # 8. 첫 구매 고객 전용
        if coupon.first_time_customers_only and user_id is not None:
            previous_orders = await self._count_previous_orders(user_id, order_id)
            if previous_orders > 0:
                return reject(MSG_FIRST_TIME_ONLY)

        # 9. 적용 대상 상품/카테고리
        if coupon.matches_allow_list(product_ids, category_ids) is False:
            return reject(MSG_NOT_APPLICABLE)

        # 10. 제외 대상 상품/카테고리
        if coupon.matches_deny_list(product_ids, category_ids):
            return reject(MSG_EXCLUDED)

        # 11. 할인 금액 계산
        return CouponValidationResult(
            valid=True,
            discount_amount=coupon.calculate_discount(order_amount),
            coupon=coupon,
            order_amount=order_amount,
        )

    async def _count_previous_orders(
        self, user_id: UUID, exclude_order_id: Optional[UUID]
    ) -> int:
        """취소되지 않은 기존 주문 수"""
        query = (
            select(func.count())
            .select_from(Order)
            .where(
                Order.user_id == user_id,
                Order.status != OrderStatus.CANCELLED.value,
            )
        )
        if exclude_order_id is not None:
            query = query.where(Order.id != exclude_order_id)
        result = await self.db.execute(query)
        return result.scalar_one()
