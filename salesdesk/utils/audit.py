"""
Audit logging utilities.

Every workflow transition and configuration change is recorded
in the same transaction as the change itself.
"""

from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from salesdesk.models.audit import AuditAction, AuditLog


async def log_action(
    db: AsyncSession,
    user_id: int,
    action: AuditAction,
    target_type: Optional[str] = None,
    target_id: Optional[int] = None,
    action_metadata: Optional[dict[str, Any]] = None,
    ip_address: Optional[str] = None,
) -> AuditLog:
    """
    Add an audit entry to the session.

    Args:
        db: Database session
        user_id: ID of the acting user
        action: Type of action being performed
        target_type: Type of entity affected (e.g., "conversion", "deduction")
        target_id: ID of the affected entity
        action_metadata: Additional context; Decimal values are stored as strings
        ip_address: Client IP address

    Returns:
        The pending AuditLog entry (the caller commits)
    """
    log_entry = AuditLog(
        user_id=user_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        action_metadata=_jsonable(action_metadata) if action_metadata else None,
        ip_address=ip_address,
    )
    db.add(log_entry)
    return log_entry


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value


def get_client_ip(request) -> Optional[str]:
    """
    Extract client IP from request.

    Honours X-Forwarded-For when running behind a proxy.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # First IP in the list is the client
        return forwarded_for.split(",")[0].strip()

    if hasattr(request, "client") and request.client:
        return request.client.host

    return None
