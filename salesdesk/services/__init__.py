"""Business logic services."""

from salesdesk.services.commission import calculate_conversion_commission, compute_commission
from salesdesk.services.currency import CurrencyNormalizer, HttpExchangeRateProvider
from salesdesk.services.deductions import DeductionRule, apply_deductions
from salesdesk.services.workflow import (
    TransitionResult,
    approve_conversion,
    recommend_conversion,
    recompute_commission,
    reject_conversion,
    submit_conversion,
)

__all__ = [
    "apply_deductions",
    "calculate_conversion_commission",
    "compute_commission",
    "CurrencyNormalizer",
    "DeductionRule",
    "HttpExchangeRateProvider",
    "TransitionResult",
    "submit_conversion",
    "recommend_conversion",
    "approve_conversion",
    "reject_conversion",
    "recompute_commission",
]
