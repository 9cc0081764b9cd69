"""
Integration Tests: Coupon analytics, stats and audit
"""

import pytest
from datetime import timedelta
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession

from src.services.coupon_analytics_service import CouponAnalyticsService
from src.services.coupon_usage_service import CouponUsageRecorder

from tests.conftest import NOW


@pytest.mark.asyncio
class TestCouponAnalytics:
    """Per-coupon analytics"""

    async def test_analytics_aggregate_ledger(
        self, db_session: AsyncSession, make_coupon, make_order, test_user
    ):
        """Test: counts, sums and average come from the usage ledger"""
        # Given
        coupon = await make_coupon(code="STATS")
        recorder = CouponUsageRecorder(db_session)
        for total, discount in ((Decimal("100"), Decimal("10")), (Decimal("50"), Decimal("5"))):
            order = await make_order(test_user, total_amount=total)
            await recorder.use_coupon(coupon.id, test_user.id, order.id, total, discount)

        # When
        analytics = await CouponAnalyticsService(db_session).get_coupon_analytics(
            coupon.id, coupon.code
        )

        # Then
        assert analytics["coupon_id"] == coupon.id
        assert analytics["coupon_code"] == "STATS"
        assert analytics["usage_count"] == 2
        assert analytics["total_discount_given"] == Decimal("15.00")
        assert analytics["revenue_generated"] == Decimal("150.00")
        assert analytics["average_order_value"] == Decimal("75.00")

    async def test_unused_coupon_analytics(self, db_session: AsyncSession, make_coupon):
        """Test: an unused coupon reports zeros"""
        coupon = await make_coupon(code="IDLE")

        analytics = await CouponAnalyticsService(db_session).get_coupon_analytics(coupon.id)

        assert analytics["usage_count"] == 0
        assert analytics["total_discount_given"] == Decimal("0.00")
        assert analytics["average_order_value"] == Decimal("0.00")

    async def test_all_coupons_analytics_includes_unused(
        self, db_session: AsyncSession, make_coupon, make_order, test_user
    ):
        """Test: every coupon appears, used or not"""
        # Given
        used = await make_coupon(code="USED")
        await make_coupon(code="UNUSED")
        order = await make_order(test_user)
        await CouponUsageRecorder(db_session).use_coupon(
            used.id, test_user.id, order.id, Decimal("100"), Decimal("10")
        )

        # When
        rows = await CouponAnalyticsService(db_session).get_all_coupons_analytics()

        # Then
        by_code = {row["coupon_code"]: row for row in rows}
        assert set(by_code) == {"USED", "UNUSED"}
        assert by_code["USED"]["usage_count"] == 1
        assert by_code["UNUSED"]["usage_count"] == 0


@pytest.mark.asyncio
class TestCouponStats:
    """Summary stats"""

    async def test_stats(self, db_session: AsyncSession, make_coupon):
        """Test: active count, active-but-expired count and total usage"""
        await make_coupon(code="A", used_count=2)
        await make_coupon(code="B", valid_to=NOW - timedelta(days=1), used_count=1)
        await make_coupon(code="C", is_active=False, valid_to=NOW - timedelta(days=1))

        stats = await CouponAnalyticsService(db_session).get_coupon_stats(NOW)

        assert stats == {"active_coupons": 2, "expired_coupons": 1, "total_usage": 3}


@pytest.mark.asyncio
class TestCouponAudit:
    """Data consistency audit"""

    async def test_clean_data_is_valid(
        self, db_session: AsyncSession, make_coupon, make_order, test_user
    ):
        """Test: counters matching the ledger produce no issues"""
        coupon = await make_coupon(code="CLEAN")
        order = await make_order(test_user)
        await CouponUsageRecorder(db_session).use_coupon(
            coupon.id, test_user.id, order.id, Decimal("100"), Decimal("10")
        )

        report = await CouponAnalyticsService(db_session).audit_coupons(NOW)

        assert report == {"valid": True, "errors": 0, "issues": []}

    async def test_counter_drift_is_an_error(
        self, db_session: AsyncSession, make_coupon
    ):
        """Test: used_count without ledger rows is reported as an error"""
        coupon = await make_coupon(code="DRIFT", used_count=2)

        report = await CouponAnalyticsService(db_session).audit_coupons(NOW)

        assert report["valid"] is False
        assert report["errors"] == 1
        assert report["issues"] == [
            {
                "coupon_id": coupon.id,
                "code": "DRIFT",
                "severity": "error",
                "message": "used_count (2) does not match usage records (0)",
            }
        ]

    async def test_warnings_do_not_invalidate(
        self, db_session: AsyncSession, make_coupon
    ):
        """Test: expired-but-active and future inactive coupons are warnings"""
        await make_coupon(code="STALE", valid_to=NOW - timedelta(days=1))
        await make_coupon(
            code="DRAFT", is_active=False, valid_from=NOW + timedelta(days=7)
        )

        report = await CouponAnalyticsService(db_session).audit_coupons(NOW)

        assert report["valid"] is True
        assert report["errors"] == 0
        messages = {(issue["code"], issue["message"]) for issue in report["issues"]}
        assert messages == {
            ("STALE", "Active coupon has expired"),
            ("DRAFT", "Inactive coupon has a future start date"),
        }
        assert all(issue["severity"] == "warning" for issue in report["issues"])
