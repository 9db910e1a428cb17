"""
Role capability checks used by the workflow guards.
"""

from typing import Optional

from salesdesk.models.user import User, UserRole

MANAGER_OR_ABOVE = frozenset({UserRole.MANAGER, UserRole.DIRECTOR, UserRole.ADMIN})
APPROVER_ROLES = frozenset({UserRole.DIRECTOR, UserRole.ADMIN})


def has_role(user: Optional[User], role: UserRole) -> bool:
    return user is not None and user.is_active and user.role == role


def is_manager_or_above(user: Optional[User]) -> bool:
    return user is not None and user.is_active and user.role in MANAGER_OR_ABOVE


def can_approve(user: Optional[User]) -> bool:
    """Directors and admins hold approval authority."""
    return user is not None and user.is_active and user.role in APPROVER_ROLES


def is_admin(user: Optional[User]) -> bool:
    return has_role(user, UserRole.ADMIN)
