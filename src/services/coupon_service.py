"""
쿠폰 서비스

목적: 쿠폰 저장소, 검증, 사용 기록, 분석 서비스를 하나의 세션으로 묶고
주문에 쿠폰을 적용(사용)하는 흐름을 처리

서비스는 요청마다 생성되며 세션과 감사 로그 기록기를 주입받습니다.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.base import utc_now
from src.models.coupon import Coupon
from src.models.coupon_usage import CouponUsage
from src.models.order import Order
from src.services.audit_log_service import AdminActivityLogWriter
from src.services.coupon_analytics_service import CouponAnalyticsService
from src.services.coupon_repository import CouponRepository
from src.services.coupon_usage_service import CouponUsageRecorder
from src.services.coupon_validator import CouponValidationResult, CouponValidator
from src.utils.exceptions import (
    BusinessRuleException,
    CouponRejectedException,
    ForbiddenException,
    OrderNotFoundException,
)
from src.utils.logging import get_logger

logger = get_logger(__name__)


class CouponService:
    """쿠폰 서비스"""

    def __init__(
        self,
        db: AsyncSession,
        audit_log: Optional[AdminActivityLogWriter] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.clock = clock
        self.repository = CouponRepository(db, audit_log=audit_log)
        self.validator = CouponValidator(db, self.repository, clock=clock)
        self.usage = CouponUsageRecorder(db)
        self.analytics = CouponAnalyticsService(db)

    async def list_public_coupons(self) -> List[Coupon]:
        """현재 사용 가능한 공개 쿠폰 목록"""
        return await self.repository.list_public_coupons(self.clock())

    async def validate_coupon(
        self,
        coupon_code: str,
        user_id: Optional[UUID] = None,
        order_amount: Decimal = Decimal("0"),
        product_ids: Iterable[int] = (),
        category_ids: Iterable[int] = (),
    ) -> CouponValidationResult:
        """쿠폰 검증 (검증기 위임)"""
        return await self.validator.validate(
            coupon_code,
            user_id=user_id,
            order_amount=order_amount,
            product_ids=product_ids,
            category_ids=category_ids,
        )

    async def redeem_coupon(
        self,
        user_id: UUID,
        coupon_code: str,
        order_id: UUID,
        product_ids: Iterable[int] = (),
        category_ids: Iterable[int] = (),
    ) -> CouponUsage:
        """
        주문에 쿠폰 적용 (검증 후 사용 기록)

        Args:
            user_id: 사용자 ID
            coupon_code: 쿠폰 코드
            order_id: 주문 ID
            product_ids: 주문 상품 ID 목록
            category_ids: 주문 상품 카테고리 ID 목록

        Returns:
            생성된 쿠폰 사용 이력

        Raises:
            OrderNotFoundException: 주문이 없는 경우
            ForbiddenException: 다른 사용자의 주문인 경우
            BusinessRuleException: 취소된 주문이거나 이미 쿠폰이 적용된 주문
            CouponRejectedException: 쿠폰 검증 실패
            CouponUsageLimitException: 사용 처리 시점에 한도 도달
            CouponUserLimitException: 사용 처리 시점에 사용자별 한도 도달
        """
        order = await self._get_order(order_id)
        if order is None:
            raise OrderNotFoundException(str(order_id))
        if order.user_id != user_id:
            raise ForbiddenException("You can only apply coupons to your own orders")
        if order.is_cancelled():
            raise BusinessRuleException(
                "Cannot apply a coupon to a cancelled order", rule="order_cancelled"
            )
        if order.coupon_code:
            raise BusinessRuleException(
                "A coupon has already been applied to this order",
                rule="coupon_already_applied",
            )

        result = await self.validator.validate(
            coupon_code,
            user_id=user_id,
            order_amount=order.total_amount,
            product_ids=product_ids,
            category_ids=category_ids,
            order_id=order.id,
        )
        if not result.valid:
            raise CouponRejectedException(coupon_code, result.error_message)

        coupon = result.coupon
        # 주문 변경은 사용 기록과 같은 트랜잭션으로 커밋됨
        order.apply_coupon(coupon.code, result.discount_amount)
        usage = await self.usage.use_coupon(
            coupon_id=coupon.id,
            user_id=user_id,
            order_id=order.id,
            order_total=order.total_amount,
            discount_amount=result.discount_amount,
        )

        logger.info(
            f"주문 쿠폰 적용: order={order.order_number}, code={coupon.code}, "
            f"discount={result.discount_amount}"
        )
        return usage

    async def get_stats(self) -> Dict[str, int]:
        """쿠폰 현황 요약"""
        return await self.analytics.get_coupon_stats(self.clock())

    async def audit(self) -> Dict[str, Any]:
        """쿠폰 데이터 정합성 점검"""
        return await self.analytics.audit_coupons(self.clock())

    async def _get_order(self, order_id: UUID) -> Optional[Order]:
        result = await self.db.execute(select(Order).where(Order.id == order_id))
        return result.scalar_one_or_none()
