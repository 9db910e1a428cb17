"""
Deduction engine.

Rules:
- Deductions apply in configuration order
- A pre-commission deduction takes its percentage of the *remaining* base
- A post-commission deduction is recorded here and charged against the
  commission by the calculator
- The percentages of one rule set may not add up to more than 100
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from salesdesk.errors import ValidationError
from salesdesk.utils.money import HUNDRED, PERCENT_PLACES, check_precision, quantize_money, to_decimal


@dataclass(frozen=True)
class DeductionRule:
    """The parts of a deduction the engine needs; also rebuilt from snapshots."""

    label: str
    percentage: Decimal
    applies_before_commission: bool = True

    @classmethod
    def from_model(cls, deduction) -> "DeductionRule":
        return cls(
            label=deduction.label,
            percentage=to_decimal(deduction.percentage),
            applies_before_commission=bool(deduction.applies_before_commission),
        )

    @classmethod
    def from_snapshot(cls, entry: dict) -> "DeductionRule":
        return cls(
            label=entry["label"],
            percentage=to_decimal(entry["percentage"]),
            applies_before_commission=bool(entry.get("applies_before_commission", True)),
        )


@dataclass(frozen=True)
class AppliedDeduction:
    """One line of the deduction trail. amount is None until it is charged."""

    label: str
    percentage: Decimal
    applies_before_commission: bool
    amount: Optional[Decimal] = None

    def to_snapshot(self, currency: Optional[str] = None) -> dict:
        amount = None if self.amount is None else str(quantize_money(self.amount, currency))
        return {
            "label": self.label,
            "percentage": str(self.percentage),
            "amount": amount,
            "applies_before_commission": self.applies_before_commission,
        }


@dataclass(frozen=True)
class DeductionResult:
    commissionable_amount: Decimal
    total_deducted: Decimal
    applied: List[AppliedDeduction] = field(default_factory=list)

    @property
    def post_commission(self) -> List[DeductionRule]:
        return [
            DeductionRule(item.label, item.percentage, False)
            for item in self.applied
            if not item.applies_before_commission
        ]


def validate_deductions(deductions: Sequence[DeductionRule]) -> Decimal:
    """
    Check each percentage is within 0-100 with at most two decimal places,
    and that the set totals at most 100.

    Returns:
        Total percentage of the set
    """
    total = Decimal("0")
    for rule in deductions:
        if rule.percentage < 0 or rule.percentage > HUNDRED:
            raise ValidationError(
                f"Deduction '{rule.label}' percentage must be between 0 and 100",
                details={"label": rule.label, "percentage": str(rule.percentage)},
            )
        check_precision(rule.percentage, PERCENT_PLACES, "percentage")
        total += rule.percentage
    if total > HUNDRED:
        raise ValidationError(
            "Total deduction percentage exceeds 100",
            details={"total_percentage": str(total)},
        )
    return total


def charge_sequentially(base: Decimal, rules: Iterable[DeductionRule]) -> tuple[Decimal, List[AppliedDeduction]]:
    """Subtract each rule's share of what is left of ``base``; nothing is rounded."""
    remaining = base
    trail = []
    for rule in rules:
        amount = remaining * rule.percentage / HUNDRED
        remaining -= amount
        trail.append(
            AppliedDeduction(
                label=rule.label,
                percentage=rule.percentage,
                applies_before_commission=rule.applies_before_commission,
                amount=amount,
            )
        )
    return remaining, trail


def apply_deductions(revenue: Decimal, deductions: Sequence[DeductionRule]) -> DeductionResult:
    """
    Reduce revenue by the pre-commission deductions.

    Args:
        revenue: Positive revenue amount
        deductions: Rules in configuration order

    Returns:
        DeductionResult with the unrounded commissionable amount and the
        trail in configuration order (post-commission entries carry no
        amount yet)
    """
    revenue = to_decimal(revenue)
    if revenue < 0:
        raise ValidationError("Revenue amount cannot be negative")
    validate_deductions(deductions)

    before = [rule for rule in deductions if rule.applies_before_commission]
    remaining, charged = charge_sequentially(revenue, before)
    charged_iter = iter(charged)

    trail = []
    for rule in deductions:
        if rule.applies_before_commission:
            trail.append(next(charged_iter))
        else:
            trail.append(
                AppliedDeduction(
                    label=rule.label,
                    percentage=rule.percentage,
                    applies_before_commission=False,
                )
            )

    return DeductionResult(
        commissionable_amount=remaining,
        total_deducted=revenue - remaining,
        applied=trail,
    )
