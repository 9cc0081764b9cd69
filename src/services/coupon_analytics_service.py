"""
쿠폰 분석 서비스

목적: 쿠폰 사용 이력 집계 및 쿠폰 데이터 정합성 점검
"""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.coupon import Coupon, CENT
from src.models.coupon_usage import CouponUsage

ZERO = Decimal("0.00")


def _to_cents(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


class CouponAnalyticsService:
    """쿠폰 분석 서비스"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_coupon_analytics(
        self, coupon_id: int, coupon_code: str = ""
    ) -> Dict[str, Any]:
        """
        쿠폰 1개의 사용 통계

        Args:
            coupon_id: 쿠폰 ID
            coupon_code: 응답에 포함할 쿠폰 코드

        Returns:
            사용 횟수, 총 할인 금액, 매출, 평균 주문 금액
        """
        result = await self.db.execute(
            select(
                func.count(CouponUsage.id),
                func.coalesce(func.sum(CouponUsage.discount_amount), 0),
                func.coalesce(func.sum(CouponUsage.order_total), 0),
            ).where(CouponUsage.coupon_id == coupon_id)
        )
        usage_count, total_discount, revenue = result.one()
        return self._build_analytics(
            coupon_id, coupon_code, usage_count, total_discount, revenue
        )

    async def get_all_coupons_analytics(self) -> List[Dict[str, Any]]:
        """
        전체 쿠폰 사용 통계 (사용 이력이 없는 쿠폰 포함)

        Returns:
            쿠폰별 통계 목록 (최신 쿠폰 순)
        """
        totals = (
            select(
                CouponUsage.coupon_id.label("coupon_id"),
                func.count(CouponUsage.id).label("usage_count"),
                func.sum(CouponUsage.discount_amount).label("total_discount"),
                func.sum(CouponUsage.order_total).label("revenue"),
            )
            .group_by(CouponUsage.coupon_id)
            .subquery()
        )
        result = await self.db.execute(
            select(
                Coupon.id,
                Coupon.code,
                func.coalesce(totals.c.usage_count, 0),
                func.coalesce(totals.c.total_discount, 0),
                func.coalesce(totals.c.revenue, 0),
            )
            .outerjoin(totals, totals.c.coupon_id == Coupon.id)
            .order_by(Coupon.created_at.desc(), Coupon.id.desc())
        )
        return [
            self._build_analytics(coupon_id, code, usage_count, total_discount, revenue)
            for coupon_id, code, usage_count, total_discount, revenue in result.all()
        ]

    async def get_coupon_stats(self, now: datetime) -> Dict[str, int]:
        """
        쿠폰 현황 요약

        Returns:
            활성 쿠폰 수, 만료되었지만 활성 상태인 쿠폰 수, 총 사용 횟수
        """
        active = await self.db.scalar(
            select(func.count()).select_from(Coupon).where(Coupon.is_active.is_(True))
        )
        expired = await self.db.scalar(
            select(func.count())
            .select_from(Coupon)
            .where(
                Coupon.is_active.is_(True),
                Coupon.valid_to.is_not(None),
                Coupon.valid_to < now,
            )
        )
        total_usage = await self.db.scalar(
            select(func.coalesce(func.sum(Coupon.used_count), 0))
        )
        return {
            "active_coupons": active or 0,
            "expired_coupons": expired or 0,
            "total_usage": int(total_usage or 0),
        }

    async def audit_coupons(self, now: datetime) -> Dict[str, Any]:
        """
        쿠폰 데이터 정합성 점검

        - warning: 만료되었지만 활성 상태, 사용 한도 도달 후에도 활성 상태,
          시작일이 미래인 비활성 쿠폰
        - error: used_count와 사용 이력 건수 불일치

        Returns:
            {"valid": 오류 없음 여부, "errors": 오류 수, "issues": [...]}
        """
        ledger = (
            select(
                CouponUsage.coupon_id.label("coupon_id"),
                func.count(CouponUsage.id).label("usage_count"),
            )
            .group_by(CouponUsage.coupon_id)
            .subquery()
        )
        result = await self.db.execute(
            select(Coupon, func.coalesce(ledger.c.usage_count, 0))
            .outerjoin(ledger, ledger.c.coupon_id == Coupon.id)
            .order_by(Coupon.id)
            .execution_options(populate_existing=True)
        )

        issues: List[Dict[str, Any]] = []
        for coupon, ledger_count in result.all():
            if coupon.is_active and coupon.is_expired(now):
                issues.append(
                    self._issue(coupon, "warning", "Active coupon has expired")
                )
            if coupon.is_active and coupon.is_usage_limit_reached():
                issues.append(
                    self._issue(
                        coupon, "warning", "Active coupon has reached its usage limit"
                    )
                )
            if not coupon.is_active and not coupon.has_started(now):
                issues.append(
                    self._issue(
                        coupon, "warning", "Inactive coupon has a future start date"
                    )
                )
            if coupon.used_count != ledger_count:
                issues.append(
                    self._issue(
                        coupon,
                        "error",
                        f"used_count ({coupon.used_count}) does not match "
                        f"usage records ({ledger_count})",
                    )
                )

        errors = sum(1 for issue in issues if issue["severity"] == "error")
        return {"valid": errors == 0, "errors": errors, "issues": issues}

    @staticmethod
    def _issue(coupon: Coupon, severity: str, message: str) -> Dict[str, Any]:
        return {
            "coupon_id": coupon.id,
            "code": coupon.code,
            "severity": severity,
            "message": message,
        }

    @staticmethod
    def _build_analytics(
        coupon_id: int,
        coupon_code: str,
        usage_count: int,
        total_discount,
        revenue,
    ) -> Dict[str, Any]:
        total_discount = _to_cents(total_discount)
        revenue = _to_cents(revenue)
        average = _to_cents(revenue / usage_count) if usage_count else ZERO
        return {
            "coupon_id": coupon_id,
            "coupon_code": coupon_code,
            "usage_count": usage_count,
            "total_discount_given": total_discount,
            "revenue_generated": revenue,
            "average_order_value": average,
        }
