import pytest
from decimal import Decimal
from split_ledger.utils.money import from_minor_units, minor_unit_exponent, to_minor_units


@pytest.mark.unit
class TestMoney:
    """Test conversions between major and minor units."""

    def test_exponents(self):
        assert minor_unit_exponent("USD") == 2
        assert minor_unit_exponent("jpy") == 0
        assert minor_unit_exponent("KWD") == 3

    def test_to_minor_units(self):
        assert to_minor_units(Decimal("100"), "USD") == 10000
        assert to_minor_units(Decimal("3.34"), "USD") == 334
        assert to_minor_units("1500", "JPY") == 1500
        assert to_minor_units(Decimal("1.234"), "BHD") == 1234

    def test_half_rounds_up(self):
        assert to_minor_units(Decimal("10.005"), "USD") == 1001
        assert to_minor_units(Decimal("10.004"), "USD") == 1000

    def test_from_minor_units(self):
        assert from_minor_units(1001, "USD") == Decimal("10.01")
        assert str(from_minor_units(5000, "USD")) == "50.00"
        assert from_minor_units(-2000, "USD") == Decimal("-20.00")
        assert str(from_minor_units(1500, "JPY")) == "1500"

