"""
Unit Tests: Coupon model rules

Discount math, code normalization, validity window and allow/deny lists.
"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal

from src.models.coupon import Coupon, DiscountType


NOW = datetime(2026, 3, 1, 12, 0, 0)


def make(**overrides) -> Coupon:
    values = {
        "code": "TEST",
        "name": "Test",
        "discount_type": DiscountType.PERCENTAGE.value,
        "discount_value": Decimal("10"),
        "used_count": 0,
    }
    values.update(overrides)
    return Coupon(**values)


class TestDiscountCalculation:
    """Discount amount calculation"""

    def test_percentage_discount(self):
        """Test: 25% of 80 is 20"""
        coupon = make(discount_value=Decimal("25"))

        assert coupon.calculate_discount(Decimal("80")) == Decimal("20.00")

    def test_percentage_rounds_half_up_to_cents(self):
        """Test: 15% of 33.33 = 4.9995 rounds to 5.00"""
        coupon = make(discount_value=Decimal("15"))

        assert coupon.calculate_discount(Decimal("33.33")) == Decimal("5.00")

    def test_fixed_amount_never_exceeds_order(self):
        """Test: fixed 50 on a 30 order discounts 30"""
        coupon = make(
            discount_type=DiscountType.FIXED_AMOUNT.value, discount_value=Decimal("50")
        )

        assert coupon.calculate_discount(Decimal("30")) == Decimal("30.00")

    def test_fixed_amount_below_order(self):
        """Test: fixed 5 on a 100 order discounts 5"""
        coupon = make(
            discount_type=DiscountType.FIXED_AMOUNT.value, discount_value=Decimal("5")
        )

        assert coupon.calculate_discount(Decimal("100")) == Decimal("5.00")

    def test_free_shipping_discount_is_zero(self):
        """Test: free shipping leaves the order amount untouched"""
        coupon = make(
            discount_type=DiscountType.FREE_SHIPPING.value, discount_value=Decimal("99")
        )

        assert coupon.calculate_discount(Decimal("100")) == Decimal("0.00")

    def test_accepts_float_and_int_amounts(self):
        """Test: non-Decimal amounts are converted without float artifacts"""
        coupon = make(discount_value=Decimal("10"))

        assert coupon.calculate_discount(100) == Decimal("10.00")
        assert coupon.calculate_discount(19.99) == Decimal("2.00")


class TestCodeNormalization:
    """Coupon code normalization"""

    @pytest.mark.parametrize("raw", ["abc123", "ABC123", "  aBc123 "])
    def test_normalize_code(self, raw):
        """Test: codes are trimmed and upper-cased"""
        assert Coupon.normalize_code(raw) == "ABC123"


class TestValidityWindow:
    """Validity window and usage limit"""

    def test_open_window(self):
        """Test: null bounds mean no restriction"""
        coupon = make(valid_from=None, valid_to=None)

        assert coupon.has_started(NOW)
        assert not coupon.is_expired(NOW)

    def test_boundaries_are_inclusive(self):
        """Test: valid_from == now has started, valid_to == now is not expired"""
        coupon = make(valid_from=NOW, valid_to=NOW)

        assert coupon.has_started(NOW)
        assert not coupon.is_expired(NOW)

    def test_expired_one_second_ago(self):
        """Test: valid_to one second in the past is expired"""
        coupon = make(valid_to=NOW - timedelta(seconds=1))

        assert coupon.is_expired(NOW)

    def test_not_started(self):
        """Test: valid_from in the future has not started"""
        coupon = make(valid_from=NOW + timedelta(seconds=1))

        assert not coupon.has_started(NOW)

    def test_usage_limit(self):
        """Test: used_count reaching usage_limit is exhausted, null limit never is"""
        assert make(usage_limit=3, used_count=3).is_usage_limit_reached()
        assert not make(usage_limit=3, used_count=2).is_usage_limit_reached()
        assert not make(usage_limit=None, used_count=1000).is_usage_limit_reached()


class TestApplicability:
    """Allow and deny lists"""

    def test_no_allow_list(self):
        """Test: without allow-lists the check does not apply"""
        coupon = make()

        assert coupon.matches_allow_list([1], [2]) is None

    def test_allow_list_by_product(self):
        """Test: one matching product is enough"""
        coupon = make(applicable_products=[1, 2])

        assert coupon.matches_allow_list([2, 9], []) is True
        assert coupon.matches_allow_list([9], []) is False

    def test_allow_list_by_category(self):
        """Test: a matching category satisfies a category allow-list"""
        coupon = make(applicable_categories=[7])

        assert coupon.matches_allow_list([100], [7]) is True
        assert coupon.matches_allow_list([100], [8]) is False

    def test_allow_lists_are_combined(self):
        """Test: product and category allow-lists are a union"""
        coupon = make(applicable_products=[1], applicable_categories=[7])

        assert coupon.matches_allow_list([], [7]) is True
        assert coupon.matches_allow_list([1], []) is True
        assert coupon.matches_allow_list([2], [8]) is False

    def test_deny_list(self):
        """Test: any excluded product or category matches"""
        coupon = make(excluded_products=[5], excluded_categories=[3])

        assert coupon.matches_deny_list([1, 5], [])
        assert coupon.matches_deny_list([1], [3])
        assert not coupon.matches_deny_list([1], [4])

    def test_empty_lists_are_ignored(self):
        """Test: empty arrays behave like null"""
        coupon = make(applicable_products=[], excluded_products=[])

        assert coupon.matches_allow_list([1], []) is None
        assert not coupon.matches_deny_list([1], [])


class TestSnapshot:
    """Audit snapshot"""

    def test_snapshot_is_json_friendly(self):
        """Test: decimals and datetimes are rendered as strings"""
        coupon = make(
            id=1,
            minimum_amount=Decimal("50.00"),
            valid_to=NOW,
            is_active=True,
            is_public=True,
            first_time_customers_only=False,
        )

        snapshot = coupon.to_snapshot()

        assert snapshot["code"] == "TEST"
        assert snapshot["discount_value"] == "10"
        assert snapshot["minimum_amount"] == "50.00"
        assert snapshot["valid_to"] == NOW.isoformat()
        assert snapshot["valid_from"] is None
