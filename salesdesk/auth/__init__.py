"""Authentication and role checks."""

from salesdesk.auth.jwt import create_access_token, verify_token
from salesdesk.auth.roles import can_approve, has_role, is_admin, is_manager_or_above

__all__ = [
    "create_access_token",
    "verify_token",
    "can_approve",
    "has_role",
    "is_admin",
    "is_manager_or_above",
]
