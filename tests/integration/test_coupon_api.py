"""
Integration Tests: Coupon HTTP API

Public coupon endpoints, admin coupon management and health/metrics.
"""

import pytest
from datetime import timedelta
from decimal import Decimal
from uuid import uuid4
from httpx import AsyncClient

from src.models.base import utc_now
from src.models.order import OrderStatus


@pytest.mark.asyncio
class TestPublicCouponAPI:
    """Customer-facing coupon endpoints"""

    async def test_list_public_coupons(self, async_client: AsyncClient, make_coupon):
        """Test: only active, public and current coupons are listed"""
        # Given
        await make_coupon(code="PUBLIC")
        await make_coupon(code="PRIVATE", is_public=False)
        await make_coupon(code="OLD", valid_to=utc_now() - timedelta(days=1))

        # When
        response = await async_client.get("/v1/coupons/public")

        # Then
        assert response.status_code == 200
        codes = [coupon["code"] for coupon in response.json()["coupons"]]
        assert codes == ["PUBLIC"]

    async def test_validate_anonymous(self, async_client: AsyncClient, make_coupon):
        """Test: validation works without login"""
        # Given
        await make_coupon(code="SAVE10")

        # When
        response = await async_client.post(
            "/v1/coupons/validate",
            json={"coupon_code": "save10", "order_amount": "100.00"},
        )

        # Then
        assert response.status_code == 200
        data = response.json()
        assert data["valid"] is True
        assert Decimal(data["discount_amount"]) == Decimal("10")
        assert Decimal(data["final_amount"]) == Decimal("90")
        assert data["error_message"] is None
        assert data["coupon"]["code"] == "SAVE10"

    async def test_validate_rejected(self, async_client: AsyncClient, make_coupon):
        """Test: a rejected coupon is a 200 with valid=false and a reason"""
        await make_coupon(code="MIN50", minimum_amount=Decimal("50.00"))

        response = await async_client.post(
            "/v1/coupons/validate",
            json={"coupon_code": "MIN50", "order_amount": 20},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["valid"] is False
        assert data["error_message"] == "Minimum order amount required: 50.00"
        assert Decimal(data["discount_amount"]) == Decimal("0")
        assert Decimal(data["final_amount"]) == Decimal("20")
        assert data["coupon"] is None

    async def test_validate_uses_logged_in_user(
        self,
        async_client: AsyncClient,
        auth_headers,
        make_coupon,
        make_order,
        test_user,
    ):
        """Test: first-time-only coupons are checked against the caller's orders"""
        await make_coupon(code="WELCOME", first_time_customers_only=True)
        await make_order(test_user, status=OrderStatus.DELIVERED)

        anonymous = await async_client.post(
            "/v1/coupons/validate",
            json={"coupon_code": "WELCOME", "order_amount": 100},
        )
        logged_in = await async_client.post(
            "/v1/coupons/validate",
            json={"coupon_code": "WELCOME", "order_amount": 100},
            headers=auth_headers,
        )

        assert anonymous.json()["valid"] is True
        assert logged_in.json()["valid"] is False
        assert (
            logged_in.json()["error_message"]
            == "Coupon is only valid for first-time customers"
        )

    async def test_validate_negative_amount(self, async_client: AsyncClient):
        """Test: a negative order amount fails request validation"""
        response = await async_client.post(
            "/v1/coupons/validate",
            json={"coupon_code": "SAVE10", "order_amount": -1},
        )

        assert response.status_code == 422

    async def test_redeem(
        self,
        async_client: AsyncClient,
        auth_headers,
        make_coupon,
        make_order,
        test_user,
    ):
        """Test: redeeming returns the usage record"""
        # Given
        coupon = await make_coupon(code="SAVE10", usage_limit=1)
        coupon_id = coupon.id
        order = await make_order(test_user, total_amount=Decimal("100.00"))
        order_id = str(order.id)

        # When
        response = await async_client.post(
            "/v1/coupons/redeem",
            json={"coupon_code": "SAVE10", "order_id": order_id},
            headers=auth_headers,
        )

        # Then
        assert response.status_code == 201
        data = response.json()
        assert data["coupon_id"] == coupon_id
        assert data["order_id"] == order_id
        assert Decimal(data["discount_amount"]) == Decimal("10")
        assert Decimal(data["order_total"]) == Decimal("100")

        revalidate = await async_client.post(
            "/v1/coupons/validate",
            json={"coupon_code": "SAVE10", "order_amount": 100},
        )
        assert revalidate.json()["error_message"] == "Coupon usage limit reached"

    async def test_redeem_requires_login(self, async_client: AsyncClient):
        """Test: redeeming without a token is 401"""
        response = await async_client.post(
            "/v1/coupons/redeem",
            json={"coupon_code": "SAVE10", "order_id": str(uuid4())},
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Not authenticated"

    async def test_redeem_other_users_order(
        self,
        async_client: AsyncClient,
        auth_headers,
        make_coupon,
        make_order,
        other_user,
    ):
        """Test: redeeming on another user's order is 403"""
        await make_coupon(code="SAVE10")
        order = await make_order(other_user)

        response = await async_client.post(
            "/v1/coupons/redeem",
            json={"coupon_code": "SAVE10", "order_id": str(order.id)},
            headers=auth_headers,
        )

        assert response.status_code == 403
        assert response.json()["message"] == "You can only apply coupons to your own orders"

    async def test_redeem_missing_order(
        self, async_client: AsyncClient, auth_headers, make_coupon
    ):
        """Test: an unknown order is 404"""
        await make_coupon(code="SAVE10")

        response = await async_client.post(
            "/v1/coupons/redeem",
            json={"coupon_code": "SAVE10", "order_id": str(uuid4())},
            headers=auth_headers,
        )

        assert response.status_code == 404

    async def test_redeem_invalid_coupon(
        self, async_client: AsyncClient, auth_headers, make_order, test_user
    ):
        """Test: an unknown coupon is 422 with the validation message"""
        order = await make_order(test_user)

        response = await async_client.post(
            "/v1/coupons/redeem",
            json={"coupon_code": "NOPE", "order_id": str(order.id)},
            headers=auth_headers,
        )

        assert response.status_code == 422
        assert response.json()["message"] == "Coupon not found"


@pytest.mark.asyncio
class TestAdminCouponAPI:
    """Admin coupon management"""

    async def test_create_coupon(self, async_client: AsyncClient, admin_headers):
        """Test: admin creates a coupon, code stored upper-case"""
        # When
        response = await async_client.post(
            "/v1/admin/coupons",
            json={
                "code": "spring25",
                "name": "Spring sale",
                "discount_type": "percentage",
                "discount_value": 25,
                "usage_limit": 100,
                "applicable_categories": [3],
                "metadata": {"campaign": "spring"},
            },
            headers=admin_headers,
        )

        # Then
        assert response.status_code == 201
        data = response.json()
        assert data["code"] == "SPRING25"
        assert data["discount_type"] == "percentage"
        assert Decimal(data["discount_value"]) == Decimal("25")
        assert data["used_count"] == 0
        assert data["applicable_categories"] == [3]
        assert data["metadata"] == {"campaign": "spring"}
        assert data["created_by"] is not None

    async def test_create_requires_admin(self, async_client: AsyncClient, auth_headers):
        """Test: customers cannot create coupons"""
        response = await async_client.post(
            "/v1/admin/coupons",
            json={"code": "X", "name": "X", "discount_type": "percentage", "discount_value": 5},
            headers=auth_headers,
        )

        assert response.status_code == 403

    async def test_create_requires_login(self, async_client: AsyncClient):
        """Test: anonymous callers get 401"""
        response = await async_client.post(
            "/v1/admin/coupons",
            json={"code": "X", "name": "X", "discount_type": "percentage", "discount_value": 5},
        )

        assert response.status_code == 401

    async def test_create_duplicate_code(
        self, async_client: AsyncClient, admin_headers, make_coupon
    ):
        """Test: an existing code (any case) is 409"""
        await make_coupon(code="TAKEN")

        response = await async_client.post(
            "/v1/admin/coupons",
            json={"code": "taken", "name": "Again", "discount_type": "fixed_amount", "discount_value": 5},
            headers=admin_headers,
        )

        assert response.status_code == 409
        assert response.json()["message"] == "Coupon code already exists"

    @pytest.mark.parametrize(
        "payload",
        [
            {"code": "BIG", "name": "Too big", "discount_type": "percentage", "discount_value": 150},
            {"code": "   ", "name": "Blank", "discount_type": "percentage", "discount_value": 5},
            {"code": "NEG", "name": "Negative", "discount_type": "fixed_amount", "discount_value": -5},
            {"code": "TYPE", "name": "Bad type", "discount_type": "bogus", "discount_value": 5},
            {
                "code": "WINDOW",
                "name": "Backwards",
                "discount_type": "percentage",
                "discount_value": 5,
                "valid_from": "2026-06-01T00:00:00",
                "valid_to": "2026-05-01T00:00:00",
            },
        ],
    )
    async def test_create_invalid_payload(
        self, async_client: AsyncClient, admin_headers, payload
    ):
        """Test: invalid coupon definitions fail request validation"""
        response = await async_client.post(
            "/v1/admin/coupons", json=payload, headers=admin_headers
        )

        assert response.status_code == 422

    async def test_list_and_get(self, async_client: AsyncClient, admin_headers, make_coupon):
        """Test: list returns every coupon, detail returns one"""
        coupon = await make_coupon(code="ONE")
        coupon_id = coupon.id
        await make_coupon(code="TWO", is_active=False)

        listing = await async_client.get("/v1/admin/coupons", headers=admin_headers)
        active = await async_client.get(
            "/v1/admin/coupons", params={"active_only": True}, headers=admin_headers
        )
        detail = await async_client.get(
            f"/v1/admin/coupons/{coupon_id}", headers=admin_headers
        )

        assert listing.status_code == 200
        assert listing.json()["total_count"] == 2
        assert [c["code"] for c in active.json()["coupons"]] == ["ONE"]
        assert detail.json()["code"] == "ONE"

    async def test_get_missing(self, async_client: AsyncClient, admin_headers):
        """Test: unknown coupon id is 404"""
        response = await async_client.get("/v1/admin/coupons/999", headers=admin_headers)

        assert response.status_code == 404
        assert response.json()["message"] == "Coupon not found"

    async def test_update_coupon(self, async_client: AsyncClient, admin_headers, make_coupon):
        """Test: PATCH changes only the given fields"""
        coupon = await make_coupon(code="EDIT", usage_limit=10)
        coupon_id = coupon.id

        response = await async_client.patch(
            f"/v1/admin/coupons/{coupon_id}",
            json={"is_active": False, "usage_limit": None},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["is_active"] is False
        assert data["usage_limit"] is None
        assert data["code"] == "EDIT"

    async def test_update_rejects_null_required_field(
        self, async_client: AsyncClient, admin_headers, make_coupon
    ):
        """Test: required fields cannot be cleared"""
        coupon = await make_coupon(code="EDIT")
        coupon_id = coupon.id

        response = await async_client.patch(
            f"/v1/admin/coupons/{coupon_id}",
            json={"name": None},
            headers=admin_headers,
        )

        assert response.status_code == 422

    async def test_delete_coupon(self, async_client: AsyncClient, admin_headers, make_coupon):
        """Test: an unused coupon is deleted, then 404"""
        coupon = await make_coupon(code="BYE")
        coupon_id = coupon.id

        deleted = await async_client.delete(
            f"/v1/admin/coupons/{coupon_id}", headers=admin_headers
        )
        again = await async_client.delete(
            f"/v1/admin/coupons/{coupon_id}", headers=admin_headers
        )

        assert deleted.status_code == 204
        assert again.status_code == 404

    async def test_delete_redeemed_coupon(
        self, async_client: AsyncClient, admin_headers, make_coupon
    ):
        """Test: a redeemed coupon cannot be deleted"""
        coupon = await make_coupon(code="KEEP", used_count=3)
        coupon_id = coupon.id

        response = await async_client.delete(
            f"/v1/admin/coupons/{coupon_id}", headers=admin_headers
        )

        assert response.status_code == 409


@pytest.mark.asyncio
class TestAdminCouponReports:
    """Admin usage, analytics and audit endpoints"""

    async def test_usage_and_analytics(
        self,
        async_client: AsyncClient,
        auth_headers,
        admin_headers,
        make_coupon,
        make_order,
        test_user,
    ):
        """Test: a redemption shows up in usage history and analytics"""
        # Given
        coupon = await make_coupon(code="SAVE10")
        coupon_id = coupon.id
        order = await make_order(test_user, total_amount=Decimal("60.00"))
        await async_client.post(
            "/v1/coupons/redeem",
            json={"coupon_code": "SAVE10", "order_id": str(order.id)},
            headers=auth_headers,
        )

        # When
        usage = await async_client.get(
            f"/v1/admin/coupons/{coupon_id}/usage", headers=admin_headers
        )
        analytics = await async_client.get(
            f"/v1/admin/coupons/{coupon_id}/analytics", headers=admin_headers
        )
        all_analytics = await async_client.get(
            "/v1/admin/coupons/analytics", headers=admin_headers
        )

        # Then
        assert usage.status_code == 200
        assert len(usage.json()) == 1
        assert Decimal(usage.json()[0]["discount_amount"]) == Decimal("6")

        data = analytics.json()
        assert data["coupon_code"] == "SAVE10"
        assert data["usage_count"] == 1
        assert Decimal(data["total_discount_given"]) == Decimal("6")
        assert Decimal(data["revenue_generated"]) == Decimal("60")
        assert Decimal(data["average_order_value"]) == Decimal("60")

        assert [row["coupon_code"] for row in all_analytics.json()] == ["SAVE10"]

    async def test_usage_missing_coupon(self, async_client: AsyncClient, admin_headers):
        """Test: usage of an unknown coupon is 404"""
        usage = await async_client.get("/v1/admin/coupons/999/usage", headers=admin_headers)
        analytics = await async_client.get(
            "/v1/admin/coupons/999/analytics", headers=admin_headers
        )

        assert usage.status_code == 404
        assert analytics.status_code == 404

    async def test_stats_and_audit(
        self, async_client: AsyncClient, admin_headers, make_coupon
    ):
        """Test: stats summarise coupons, audit flags counter drift"""
        await make_coupon(code="DRIFT", used_count=1)
        await make_coupon(code="STALE", valid_to=utc_now() - timedelta(days=1))

        stats = await async_client.get("/v1/admin/coupons/stats", headers=admin_headers)
        audit = await async_client.get("/v1/admin/coupons/audit", headers=admin_headers)

        assert stats.json() == {
            "active_coupons": 2,
            "expired_coupons": 1,
            "total_usage": 1,
        }
        report = audit.json()
        assert report["valid"] is False
        assert report["errors"] == 1
        severities = {(issue["code"], issue["severity"]) for issue in report["issues"]}
        assert severities == {("DRIFT", "error"), ("STALE", "warning")}

    async def test_reports_require_admin(self, async_client: AsyncClient, auth_headers):
        """Test: customers cannot read admin reports"""
        response = await async_client.get("/v1/admin/coupons/stats", headers=auth_headers)

        assert response.status_code == 403

    async def test_code_availability(
        self, async_client: AsyncClient, admin_headers, make_coupon
    ):
        """Test: availability is case-insensitive and honours exclude_id"""
        coupon = await make_coupon(code="TAKEN")
        coupon_id = coupon.id

        taken = await async_client.get(
            "/v1/admin/coupons/code-availability",
            params={"code": "taken"},
            headers=admin_headers,
        )
        own = await async_client.get(
            "/v1/admin/coupons/code-availability",
            params={"code": "TAKEN", "exclude_id": coupon_id},
            headers=admin_headers,
        )

        assert taken.json() == {"code": "TAKEN", "available": False}
        assert own.json()["available"] is True

    async def test_generate_code(
        self, async_client: AsyncClient, admin_headers, make_coupon
    ):
        """Test: generated codes avoid existing ones"""
        await make_coupon(code="BLACKFRI")

        response = await async_client.post(
            "/v1/admin/coupons/generate-code",
            json={"name": "Black Friday"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json() == {"code": "BLACKFRI1"}


@pytest.mark.asyncio
class TestOperationalEndpoints:
    """Health and metrics"""

    async def test_health(self, async_client: AsyncClient):
        """Test: health reports the database as connected"""
        response = await async_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "database": "connected"}

    async def test_metrics(self, async_client: AsyncClient, make_coupon):
        """Test: coupon counters are exported after a validation"""
        await make_coupon(code="SAVE10")
        await async_client.post(
            "/v1/coupons/validate",
            json={"coupon_code": "SAVE10", "order_amount": 100},
        )

        response = await async_client.get("/metrics")

        assert response.status_code == 200
        assert "upwear_coupon_validations_total" in response.text
