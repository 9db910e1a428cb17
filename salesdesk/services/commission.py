"""
Commission calculation for approved conversions.

Rules:
- Commission = commissionable amount x rate / 100
- Post-commission deductions then compound on the commission
- Rounding happens once, at the end, to the currency's minor unit
- Rate: approver override, else the conversion's rate, else the rep's
  profile rate, else the configured default
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Sequence

from salesdesk.errors import ValidationError
from salesdesk.services.deductions import (
    AppliedDeduction,
    DeductionRule,
    apply_deductions,
    charge_sequentially,
    validate_deductions,
)
from salesdesk.utils.money import HUNDRED, PERCENT_PLACES, check_precision, quantize_money, to_decimal


@dataclass(frozen=True)
class CommissionBreakdown:
    """Rounded figures written onto a conversion at approval."""

    commission_rate: Decimal
    commissionable_amount: Decimal
    total_deducted: Decimal
    commission_amount: Decimal
    deductions_applied: List[dict] = field(default_factory=list)


def validate_rate(rate: Decimal) -> Decimal:
    rate = to_decimal(rate)
    if rate < 0 or rate > HUNDRED:
        raise ValidationError(
            "Commission rate must be between 0 and 100",
            details={"commission_rate": str(rate)},
        )
    return check_precision(rate, PERCENT_PLACES, "commission_rate")


def resolve_commission_rate(
    conversion,
    rep,
    default_rate: Decimal,
    override: Optional[Decimal] = None,
) -> Decimal:
    """Pick the rate to freeze onto a conversion at approval.

    Args:
        conversion: The conversion being approved
        rep: The rep earning the commission
        default_rate: Organisation default (percent)
        override: Rate supplied by the approver, if any

    Returns:
        Commission rate as a percentage (e.g. 15 = 15%)
    """
    for candidate in (override, conversion.commission_rate, getattr(rep, "commission_rate", None)):
        if candidate is not None:
            return validate_rate(candidate)
    return validate_rate(default_rate)


def _commission_before_rounding(
    commissionable_amount: Decimal,
    rate: Decimal,
    post_deductions: Sequence[DeductionRule],
) -> tuple[Decimal, List[AppliedDeduction]]:
    gross = to_decimal(commissionable_amount) * validate_rate(rate) / HUNDRED
    return charge_sequentially(gross, post_deductions)


def compute_commission(
    commissionable_amount: Decimal,
    rate: Decimal,
    post_deductions: Sequence[DeductionRule] = (),
    currency: Optional[str] = None,
) -> Decimal:
    """Commission for a commissionable base, rounded half-up once."""
    commission, _ = _commission_before_rounding(commissionable_amount, rate, post_deductions)
    return quantize_money(commission, currency)


def calculate_conversion_commission(
    revenue: Decimal,
    rate: Decimal,
    deductions: Sequence[DeductionRule],
    currency: Optional[str] = None,
) -> CommissionBreakdown:
    """Run the deduction engine and the calculator for one conversion.

    Intermediate values stay unrounded; only the stored figures and the
    trail amounts are rounded.
    """
    validate_deductions(deductions)
    result = apply_deductions(revenue, deductions)
    commission, post_trail = _commission_before_rounding(
        result.commissionable_amount, rate, result.post_commission
    )

    post_iter = iter(post_trail)
    trail = [
        item if item.applies_before_commission else next(post_iter)
        for item in result.applied
    ]

    return CommissionBreakdown(
        commission_rate=to_decimal(rate),
        commissionable_amount=quantize_money(result.commissionable_amount, currency),
        total_deducted=quantize_money(result.total_deducted, currency),
        commission_amount=quantize_money(commission, currency),
        deductions_applied=[item.to_snapshot(currency) for item in trail],
    )
