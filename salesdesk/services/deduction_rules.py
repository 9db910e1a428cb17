"""
Admin management of organisation deduction rules.

Changes only affect conversions approved afterwards; approved conversions
keep their own snapshot.
"""

import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from salesdesk.auth.roles import is_admin
from salesdesk.errors import AuthorizationError, NotFoundError, ValidationError
from salesdesk.models import AuditAction, Deduction, User
from salesdesk.services.deductions import DeductionRule, validate_deductions
from salesdesk.utils.audit import log_action
from salesdesk.utils.money import to_decimal

logger = logging.getLogger(__name__)


async def list_deductions(db: AsyncSession, include_inactive: bool = False) -> List[Deduction]:
    query = select(Deduction).order_by(Deduction.position, Deduction.created_at, Deduction.id)
    if not include_inactive:
        query = query.where(Deduction.is_active.is_(True))
    result = await db.execute(query)
    return list(result.scalars().all())


async def _check_active_total(db: AsyncSession, candidate: Deduction) -> None:
    """Active rules, with ``candidate`` in its new state, must stay within 100%.

    The candidate itself is checked even when inactive so a stored
    percentage always fits its column.
    """
    own = DeductionRule.from_model(candidate)
    validate_deductions([own])
    rules = [
        DeductionRule.from_model(row)
        for row in await list_deductions(db)
        if row.id != candidate.id
    ]
    if candidate.is_active:
        rules.append(own)
    validate_deductions(rules)


def _require_admin(actor: User) -> None:
    if not is_admin(actor):
        raise AuthorizationError("Admin access required to manage deductions")


async def create_deduction(
    db: AsyncSession,
    actor: User,
    *,
    label: str,
    percentage: Decimal,
    applies_before_commission: bool = True,
    is_active: bool = True,
    position: Optional[int] = None,
    ip_address: Optional[str] = None,
) -> Deduction:
    label = (label or "").strip()
    if not label:
        raise ValidationError("Deduction label is required")
    _require_admin(actor)
    actor_id = actor.id

    if position is None:
        existing = await list_deductions(db, include_inactive=True)
        position = max((row.position for row in existing), default=-1) + 1

    deduction = Deduction(
        label=label,
        percentage=to_decimal(percentage),
        applies_before_commission=applies_before_commission,
        is_active=is_active,
        position=position,
        created_by=actor_id,
    )
    await _check_active_total(db, deduction)

    try:
        db.add(deduction)
        await db.flush()
        await log_action(
            db=db,
            user_id=actor_id,
            action=AuditAction.CREATE_DEDUCTION,
            target_type="deduction",
            target_id=deduction.id,
            action_metadata={
                "label": label,
                "percentage": deduction.percentage,
                "applies_before_commission": applies_before_commission,
            },
            ip_address=ip_address,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    await db.refresh(deduction)

    logger.info(f"Deduction {deduction.id} '{label}' ({deduction.percentage}%) created by user {actor_id}")
    return deduction


async def update_deduction(
    db: AsyncSession,
    deduction_id: int,
    actor: User,
    *,
    changes: dict,
    ip_address: Optional[str] = None,
) -> Deduction:
    """
    Apply a partial update.

    ``changes`` may hold label, percentage, applies_before_commission,
    is_active and position.
    """
    _require_admin(actor)
    actor_id = actor.id

    deduction = await db.get(Deduction, deduction_id)
    if deduction is None:
        raise NotFoundError(f"Deduction {deduction_id} not found")

    # Validate on a detached copy so a rejected change never touches the session
    label = changes.get("label", deduction.label)
    if label is not None:
        label = label.strip()
    if not label:
        raise ValidationError("Deduction label is required")
    candidate = Deduction(
        id=deduction.id,
        label=label,
        percentage=to_decimal(changes.get("percentage", deduction.percentage)),
        applies_before_commission=changes.get(
            "applies_before_commission", deduction.applies_before_commission
        ),
        is_active=changes.get("is_active", deduction.is_active),
        position=changes.get("position", deduction.position),
    )
    await _check_active_total(db, candidate)

    previous = {
        "label": deduction.label,
        "percentage": deduction.percentage,
        "applies_before_commission": deduction.applies_before_commission,
        "is_active": deduction.is_active,
        "position": deduction.position,
    }
    try:
        deduction.label = candidate.label
        deduction.percentage = candidate.percentage
        deduction.applies_before_commission = candidate.applies_before_commission
        deduction.is_active = candidate.is_active
        deduction.position = candidate.position
        await log_action(
            db=db,
            user_id=actor_id,
            action=AuditAction.UPDATE_DEDUCTION,
            target_type="deduction",
            target_id=deduction.id,
            action_metadata={"previous": previous, "changes": changes},
            ip_address=ip_address,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    await db.refresh(deduction)

    logger.info(f"Deduction {deduction_id} updated by user {actor_id}")
    return deduction
