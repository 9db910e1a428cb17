"""Utility functions."""

from salesdesk.utils.audit import get_client_ip, log_action
from salesdesk.utils.money import minor_units, normalize_currency, quantize_money

__all__ = [
    "get_client_ip",
    "log_action",
    "minor_units",
    "normalize_currency",
    "quantize_money",
]
