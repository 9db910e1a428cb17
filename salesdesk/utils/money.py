"""
Money helpers: currency codes, minor units and rounding.
"""

import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from salesdesk.errors import ValidationError

CURRENCY_CODE_RE = re.compile(r"^[A-Z]{3}$")

# ISO-4217 currencies whose minor unit is not 2 digits
ZERO_DECIMAL_CURRENCIES = frozenset({
    "BIF", "CLP", "DJF", "GNF", "ISK", "JPY", "KMF", "KRW",
    "PYG", "RWF", "UGX", "VND", "VUV", "XAF", "XOF", "XPF",
})
THREE_DECIMAL_CURRENCIES = frozenset({"BHD", "IQD", "JOD", "KWD", "LYD", "OMR", "TND"})

HUNDRED = Decimal("100")

# Scale of every stored percentage column
PERCENT_PLACES = 2


def normalize_currency(code: Optional[str], default: str) -> str:
    """
    Upper-case and validate a currency code.

    An empty or missing code falls back to ``default``.
    """
    if code is None or not code.strip():
        code = default
    code = code.strip().upper()
    if not CURRENCY_CODE_RE.match(code):
        raise ValidationError(f"Invalid currency code: {code!r}")
    return code


def minor_units(currency: Optional[str]) -> int:
    """Number of decimal places used by the currency (2 when unknown)."""
    code = (currency or "").upper()
    if code in ZERO_DECIMAL_CURRENCIES:
        return 0
    if code in THREE_DECIMAL_CURRENCIES:
        return 3
    return 2


def decimal_places(value: Decimal) -> int:
    """Decimal places actually used, ignoring trailing zeros (12.50 -> 1)."""
    exponent = value.normalize().as_tuple().exponent
    return max(0, -exponent)


def check_precision(value: Decimal, places: int, field_name: str) -> Decimal:
    """Reject values that would lose digits when stored at ``places``."""
    if decimal_places(value) > places:
        raise ValidationError(
            f"{field_name} allows at most {places} decimal places",
            details={field_name: str(value), "decimal_places": places},
        )
    return value


def quantize_money(amount: Decimal, currency: Optional[str] = None) -> Decimal:
    """Round half-up to the currency's minor unit."""
    exponent = Decimal(1).scaleb(-minor_units(currency))
    return amount.quantize(exponent, rounding=ROUND_HALF_UP)


def to_decimal(value: object) -> Decimal:
    """Coerce a stored or user-supplied number to Decimal without float noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, str)):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    raise ValidationError(f"Not a number: {value!r}")
