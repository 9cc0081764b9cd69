"""
쿠폰 사용 기록 서비스

목적: 쿠폰 사용 시 사용 횟수 증가와 사용 이력(원장) 기록

사용 횟수 증가는 한도 조건을 포함한 단일 UPDATE로 처리하고,
이력 기록과 같은 트랜잭션에서 커밋합니다. 따라서 동시에 사용하더라도
used_count가 usage_limit을 넘지 않으며 used_count와 이력 건수가 항상 일치합니다.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional
from uuid import UUID
from sqlalchemy import select, update, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.base import utc_now
from src.models.coupon import Coupon, CENT
from src.models.coupon_usage import CouponUsage
from src.utils.exceptions import (
    CouponNotFoundException,
    CouponUsageLimitException,
    CouponUserLimitException,
    DatabaseException,
)
from src.utils.logging import get_logger, audit_logger
from src.utils.prometheus_metrics import record_coupon_redemption, record_error

logger = get_logger(__name__)


class CouponUsageRecorder:
    """쿠폰 사용 기록기"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def use_coupon(
        self,
        coupon_id: int,
        user_id: Optional[UUID],
        order_id: UUID,
        order_total: Decimal,
        discount_amount: Decimal,
    ) -> CouponUsage:
        """
        쿠폰 사용 처리

        Args:
            coupon_id: 쿠폰 ID
            user_id: 사용자 ID
            order_id: 주문 ID
            order_total: 주문 금액
            discount_amount: 할인 금액

        Returns:
            생성된 쿠폰 사용 이력

        Raises:
            CouponNotFoundException: 쿠폰이 없는 경우
            CouponUsageLimitException: 전체 사용 한도에 도달한 경우
            CouponUserLimitException: 사용자별 사용 한도에 도달한 경우
            DatabaseException: DB 오류 (사용 횟수와 이력 모두 롤백됨)
        """
        try:
            # 한도 조건부 증가 (조건 불만족 시 0행 갱신)
            result = await self.db.execute(
                update(Coupon)
                .where(
                    Coupon.id == coupon_id,
                    or_(
                        Coupon.usage_limit.is_(None),
                        Coupon.used_count < Coupon.usage_limit,
                    ),
                )
                .values(used_count=Coupon.used_count + 1, updated_at=utc_now())
                .execution_options(synchronize_session=False)
            )

            if result.rowcount == 0:
                exists = await self.db.scalar(
                    select(func.count()).select_from(Coupon).where(Coupon.id == coupon_id)
                )
                await self.db.rollback()
                if not exists:
                    record_coupon_redemption("failed")
                    raise CouponNotFoundException(coupon_id)
                record_coupon_redemption("limit_reached")
                logger.warning(f"쿠폰 사용 한도 도달: coupon_id={coupon_id}")
                raise CouponUsageLimitException(coupon_id)

            # 사용자별 한도 재확인 (쿠폰 행 잠금 이후)
            if user_id is not None:
                per_user_limit = await self.db.scalar(
                    select(Coupon.usage_limit_per_user).where(Coupon.id == coupon_id)
                )
                if per_user_limit:
                    user_count = await self.db.scalar(
                        select(func.count())
                        .select_from(CouponUsage)
                        .where(
                            CouponUsage.coupon_id == coupon_id,
                            CouponUsage.user_id == user_id,
                        )
                    )
                    if user_count >= per_user_limit:
                        await self.db.rollback()
                        record_coupon_redemption("limit_reached")
                        logger.warning(
                            f"사용자별 쿠폰 사용 한도 도달: coupon_id={coupon_id}, user_id={user_id}"
                        )
                        raise CouponUserLimitException(coupon_id)

            usage = CouponUsage(
                coupon_id=coupon_id,
                user_id=user_id,
                order_id=order_id,
                order_total=Decimal(str(order_total)).quantize(
                    CENT, rounding=ROUND_HALF_UP
                ),
                discount_amount=Decimal(str(discount_amount)).quantize(
                    CENT, rounding=ROUND_HALF_UP
                ),
            )
            self.db.add(usage)
            await self.db.commit()
            await self.db.refresh(usage)

        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                f"쿠폰 사용 기록 실패: coupon_id={coupon_id}, order_id={order_id}, error={e}",
                exc_info=True,
            )
            record_coupon_redemption("failed")
            record_error("coupon_redemption")
            raise DatabaseException(operation="use_coupon")

        record_coupon_redemption("success", float(usage.discount_amount))
        logger.info(
            f"쿠폰 사용 완료: coupon_id={coupon_id}, order_id={order_id}, "
            f"discount={usage.discount_amount}"
        )
        audit_logger.log_event(
            event_type="coupon.redeemed",
            user_id=str(user_id) if user_id else None,
            resource_type="coupon",
            resource_id=str(coupon_id),
            action="redeem",
            details={"order_id": str(order_id)},
        )
        return usage

    async def get_coupon_usage(self, coupon_id: int) -> List[CouponUsage]:
        """쿠폰 사용 이력 조회 (최신순)"""
        result = await self.db.execute(
            select(CouponUsage)
            .where(CouponUsage.coupon_id == coupon_id)
            .order_by(CouponUsage.created_at.desc(), CouponUsage.id.desc())
        )
        return list(result.scalars().all())

    async def get_user_usage_count(self, coupon_id: int, user_id: UUID) -> int:
        """사용자의 쿠폰 사용 횟수"""
        result = await self.db.execute(
            select(func.count())
            .select_from(CouponUsage)
            .where(CouponUsage.coupon_id == coupon_id, CouponUsage.user_id == user_id)
        )
        return result.scalar_one()
