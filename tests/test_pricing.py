"""
Tests for price/discount derivation.
"""
import pytest

from storefront import pricing


def test_no_discount_uses_base_price():
    result = pricing.resolve(99.9, None)
    assert result.final_price == 99.9
    assert result.discount_percent is None


def test_discount_example_from_catalog():
    result = pricing.resolve(169.9, 119.9)
    assert result.final_price == 119.9
    assert result.discount_percent == 29


@pytest.mark.parametrize(
    "price,discount,expected",
    [
        (100.0, 50.0, 50),
        (299.9, 239.9, 20),
        (149.9, 119.9, 20),
        (100.0, 99.0, 1),
        # 12.5% off rounds half-up
        (80.0, 70.0, 13),
    ],
)
def test_discount_percent_rounding(price, discount, expected):
    assert pricing.discount_percent(price, discount) == expected


def test_zero_price_has_no_percent():
    assert pricing.discount_percent(0, 10) is None
