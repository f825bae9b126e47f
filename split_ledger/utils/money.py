"""
Money helpers.

The engine works exclusively in integer minor units (cents, pence, whole yen).
These helpers convert between that representation and the Decimal amounts the
transport layer exchanges with clients.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Union

# ISO 4217 currencies whose minor unit is not 2 decimal places
_MINOR_UNIT_EXPONENTS: Dict[str, int] = {
    "JPY": 0,
    "KRW": 0,
    "CLP": 0,
    "ISK": 0,
    "VND": 0,
    "BHD": 3,
    "KWD": 3,
    "OMR": 3,
    "JOD": 3,
    "TND": 3,
}


def minor_unit_exponent(currency: str) -> int:
    """Number of decimal places of the currency's minor unit (2 unless listed)."""
    return _MINOR_UNIT_EXPONENTS.get(currency.upper(), 2)


def to_minor_units(amount: Union[Decimal, int, str], currency: str) -> int:
    """
    Convert a major-unit amount to integer minor units.

    Example:
        >>> to_minor_units(Decimal("10.005"), "USD")
        1001
        >>> to_minor_units(Decimal("1500"), "JPY")
        1500
    """
    scaled = Decimal(str(amount)).scaleb(minor_unit_exponent(currency))
    return int(scaled.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def from_minor_units(amount: int, currency: str) -> Decimal:
    """
    Convert integer minor units back to a major-unit Decimal with the currency's precision.

    Example:
        >>> from_minor_units(1001, "USD")
        Decimal('10.01')
    """
    exponent = minor_unit_exponent(currency)
    return Decimal(amount).scaleb(-exponent).quantize(Decimal(1).scaleb(-exponent))
