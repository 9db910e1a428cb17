"""
Conversion approval workflow.

    pending -> recommended -> approved
       |            |
       +------------+-----> rejected

Every transition reads the current row, checks its guard, then writes with a
``WHERE status = ? AND version = ?`` precondition and bumps ``version``.
A write that matches no row means another transition won the race and is
reported as ConflictError. Inside one process, transitions on the same
conversion are also serialised by a per-id lock.

Guards run as input checks, then the state check, then the actor's role, so
any transition out of a terminal state is a ConflictError whoever asks.
"""

import asyncio
import logging
import weakref
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from salesdesk.auth.roles import can_approve, is_admin, is_manager_or_above
from salesdesk.config import Settings, get_settings
from salesdesk.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from salesdesk.models import (
    AuditAction,
    Conversion,
    ConversionStatus,
    Deduction,
    Lead,
    User,
    utcnow,
)
from salesdesk.services.commission import (
    CommissionBreakdown,
    calculate_conversion_commission,
    resolve_commission_rate,
    validate_rate,
)
from salesdesk.services.deductions import DeductionRule
from salesdesk.services.notifications import CONVERSION_DECISION_FUNCTION, Notifier, dispatch
from salesdesk.utils.audit import log_action
from salesdesk.utils.money import check_precision, minor_units, normalize_currency, to_decimal

logger = logging.getLogger(__name__)

_locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()


@dataclass
class TransitionResult:
    """A committed conversion plus any non-fatal warnings from side effects."""

    conversion: Conversion
    warnings: List[str] = field(default_factory=list)


def _lock_for(conversion_id: int) -> asyncio.Lock:
    lock = _locks.get(conversion_id)
    if lock is None:
        lock = asyncio.Lock()
        _locks[conversion_id] = lock
    return lock


async def _load_conversion(db: AsyncSession, conversion_id: int) -> Conversion:
    conversion = await db.get(Conversion, conversion_id, populate_existing=True)
    if conversion is None:
        raise NotFoundError(f"Conversion {conversion_id} not found")
    return conversion


def _require_status(conversion: Conversion, allowed: tuple[ConversionStatus, ...], action: str) -> None:
    if conversion.status not in allowed:
        raise ConflictError(
            f"Cannot {action} a conversion that is {conversion.status.value}",
            details={
                "conversion_id": conversion.id,
                "status": conversion.status.value,
                "terminal": conversion.is_terminal,
                "version": conversion.version,
            },
        )


async def apply_transition(
    db: AsyncSession,
    conversion: Conversion,
    values: dict[str, Any],
) -> None:
    """
    Write ``values`` only if the row still has the status and version that
    ``conversion`` was read with.

    Raises:
        ConflictError: the row changed since it was read
    """
    stmt = (
        update(Conversion)
        .where(
            Conversion.id == conversion.id,
            Conversion.status == conversion.status,
            Conversion.version == conversion.version,
        )
        .values(**values, version=conversion.version + 1)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    if result.rowcount != 1:
        raise ConflictError(
            f"Conversion {conversion.id} was modified concurrently; refetch and retry",
            details={"conversion_id": conversion.id, "expected_version": conversion.version},
        )


async def load_active_deductions(db: AsyncSession) -> List[DeductionRule]:
    """Active rules in configuration order."""
    result = await db.execute(
        select(Deduction)
        .where(Deduction.is_active.is_(True))
        .order_by(Deduction.position, Deduction.created_at, Deduction.id)
    )
    return [DeductionRule.from_model(row) for row in result.scalars().all()]


def _commission_values(breakdown: CommissionBreakdown) -> dict[str, Any]:
    return {
        "commission_rate": breakdown.commission_rate,
        "commissionable_amount": breakdown.commissionable_amount,
        "commission_amount": breakdown.commission_amount,
        "deductions_applied": breakdown.deductions_applied,
    }


async def _commit_transition(
    db: AsyncSession,
    conversion: Conversion,
    values: dict[str, Any],
    *,
    actor_id: int,
    action: AuditAction,
    action_metadata: Optional[dict[str, Any]] = None,
    ip_address: Optional[str] = None,
) -> Conversion:
    """Conditional write plus audit row in one transaction; rolled back together."""
    try:
        await apply_transition(db, conversion, values)
        await log_action(
            db=db,
            user_id=actor_id,
            action=action,
            target_type="conversion",
            target_id=conversion.id,
            action_metadata=action_metadata,
            ip_address=ip_address,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    await db.refresh(conversion)
    return conversion


async def _notify_rep(
    db: AsyncSession,
    notifier: Optional[Notifier],
    conversion: Conversion,
) -> List[str]:
    if notifier is None:
        return []
    rep = await db.get(User, conversion.rep_id)
    payload = {
        "conversion_id": conversion.id,
        "status": conversion.status.value,
        "rep_email": rep.email if rep else None,
        "rep_name": rep.full_name if rep else None,
        "revenue_amount": str(conversion.revenue_amount),
        "currency": conversion.currency,
        "commission_amount": (
            str(conversion.commission_amount) if conversion.commission_amount is not None else None
        ),
        "rejection_reason": conversion.rejection_reason,
    }
    warning = await dispatch(notifier, CONVERSION_DECISION_FUNCTION, payload)
    return [warning] if warning else []


async def submit_conversion(
    db: AsyncSession,
    actor: User,
    *,
    lead_id: int,
    revenue_amount: Decimal,
    rep_id: Optional[int] = None,
    currency: Optional[str] = None,
    commission_rate: Optional[Decimal] = None,
    conversion_date: Optional[date] = None,
    notes: Optional[str] = None,
    settings: Optional[Settings] = None,
    ip_address: Optional[str] = None,
) -> Conversion:
    """
    Record a new pending conversion.

    Reps submit for themselves; managers and above may submit for any rep.
    """
    settings = settings or get_settings()

    revenue = to_decimal(revenue_amount)
    if revenue <= 0:
        raise ValidationError("Revenue amount must be greater than zero")
    currency_code = normalize_currency(currency, settings.base_currency)
    check_precision(revenue, minor_units(currency_code), "revenue_amount")
    if commission_rate is not None:
        commission_rate = validate_rate(commission_rate)

    actor_id = actor.id
    rep_id = rep_id if rep_id is not None else actor_id
    if rep_id != actor_id and not is_manager_or_above(actor):
        raise AuthorizationError("Only managers can submit conversions for other reps")

    lead = await db.get(Lead, lead_id)
    if lead is None:
        raise ValidationError(f"Lead {lead_id} does not exist")
    rep = await db.get(User, rep_id)
    if rep is None or not rep.is_active:
        raise ValidationError(f"Rep {rep_id} does not exist or is inactive")

    conversion = Conversion(
        lead_id=lead.id,
        rep_id=rep.id,
        revenue_amount=revenue,
        currency=currency_code,
        commission_rate=commission_rate,
        conversion_date=conversion_date or date.today(),
        notes=notes,
        status=ConversionStatus.PENDING,
        version=1,
        submitted_by=actor_id,
        submitted_at=utcnow(),
    )
    try:
        db.add(conversion)
        await db.flush()
        await log_action(
            db=db,
            user_id=actor_id,
            action=AuditAction.SUBMIT_CONVERSION,
            target_type="conversion",
            target_id=conversion.id,
            action_metadata={"revenue_amount": revenue, "currency": currency_code, "rep_id": rep_id},
            ip_address=ip_address,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    await db.refresh(conversion)

    logger.info(f"Conversion {conversion.id} submitted by user {actor_id} for rep {rep_id}")
    return conversion


async def recommend_conversion(
    db: AsyncSession,
    conversion_id: int,
    actor: User,
    *,
    notes: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> TransitionResult:
    """pending -> recommended, by a manager (or above) other than the submitter."""
    actor_id = actor.id

    async with _lock_for(conversion_id):
        conversion = await _load_conversion(db, conversion_id)
        _require_status(conversion, (ConversionStatus.PENDING,), "recommend")
        if not is_manager_or_above(actor):
            raise AuthorizationError("Only managers can recommend conversions")
        if conversion.submitted_by == actor_id:
            raise AuthorizationError("Submitters cannot recommend their own conversion")

        values: dict[str, Any] = {
            "status": ConversionStatus.RECOMMENDED,
            "recommended_by": actor_id,
            "recommended_at": utcnow(),
        }
        if notes:
            values["workflow_notes"] = notes
        await _commit_transition(
            db,
            conversion,
            values,
            actor_id=actor_id,
            action=AuditAction.RECOMMEND_CONVERSION,
            action_metadata={"notes": notes} if notes else None,
            ip_address=ip_address,
        )

    logger.info(f"Conversion {conversion_id} recommended by user {actor_id}")
    return TransitionResult(conversion=conversion)


async def approve_conversion(
    db: AsyncSession,
    conversion_id: int,
    actor: User,
    *,
    commission_rate: Optional[Decimal] = None,
    notes: Optional[str] = None,
    settings: Optional[Settings] = None,
    notifier: Optional[Notifier] = None,
    ip_address: Optional[str] = None,
) -> TransitionResult:
    """
    recommended -> approved (or pending -> approved when direct approval is allowed).

    Snapshots the active deduction rules and fixes the commission in the
    same write as the status change.
    """
    settings = settings or get_settings()
    if commission_rate is not None:
        commission_rate = validate_rate(commission_rate)
    actor_id = actor.id

    allowed = (ConversionStatus.RECOMMENDED,)
    if settings.allow_direct_approval:
        allowed = (ConversionStatus.PENDING, ConversionStatus.RECOMMENDED)

    async with _lock_for(conversion_id):
        conversion = await _load_conversion(db, conversion_id)
        _require_status(conversion, allowed, "approve")
        if not can_approve(actor):
            raise AuthorizationError("Approval authority required")
        from_status = conversion.status

        rep = await db.get(User, conversion.rep_id)
        rate = resolve_commission_rate(
            conversion, rep, settings.default_commission_rate, override=commission_rate
        )
        rules = await load_active_deductions(db)
        breakdown = calculate_conversion_commission(
            conversion.revenue_amount, rate, rules, conversion.currency
        )

        values = {
            "status": ConversionStatus.APPROVED,
            "approved_by": actor_id,
            "approved_at": utcnow(),
            **_commission_values(breakdown),
        }
        if notes:
            values["workflow_notes"] = notes
        await _commit_transition(
            db,
            conversion,
            values,
            actor_id=actor_id,
            action=AuditAction.APPROVE_CONVERSION,
            action_metadata={
                "from_status": from_status.value,
                "commission_rate": breakdown.commission_rate,
                "commissionable_amount": breakdown.commissionable_amount,
                "commission_amount": breakdown.commission_amount,
            },
            ip_address=ip_address,
        )

    logger.info(
        f"Conversion {conversion_id} approved by user {actor_id}: "
        f"commission {conversion.commission_amount} {conversion.currency}"
    )
    warnings = await _notify_rep(db, notifier, conversion)
    return TransitionResult(conversion=conversion, warnings=warnings)


async def reject_conversion(
    db: AsyncSession,
    conversion_id: int,
    actor: User,
    reason: Optional[str],
    *,
    notifier: Optional[Notifier] = None,
    ip_address: Optional[str] = None,
) -> TransitionResult:
    """pending/recommended -> rejected. Terminal; clears commission fields."""
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("A rejection reason is required")
    actor_id = actor.id

    async with _lock_for(conversion_id):
        conversion = await _load_conversion(db, conversion_id)
        _require_status(
            conversion,
            (ConversionStatus.PENDING, ConversionStatus.RECOMMENDED),
            "reject",
        )
        if not is_manager_or_above(actor):
            raise AuthorizationError("Only managers can reject conversions")
        from_status = conversion.status
        await _commit_transition(
            db,
            conversion,
            {
                "status": ConversionStatus.REJECTED,
                "rejection_reason": reason,
                "commissionable_amount": None,
                "commission_amount": None,
                "deductions_applied": None,
            },
            actor_id=actor_id,
            action=AuditAction.REJECT_CONVERSION,
            action_metadata={"from_status": from_status.value, "reason": reason},
            ip_address=ip_address,
        )

    logger.info(f"Conversion {conversion_id} rejected by user {actor_id}")
    warnings = await _notify_rep(db, notifier, conversion)
    return TransitionResult(conversion=conversion, warnings=warnings)


async def recompute_commission(
    db: AsyncSession,
    conversion_id: int,
    actor: User,
    *,
    commission_rate: Optional[Decimal] = None,
    ip_address: Optional[str] = None,
) -> TransitionResult:
    """
    Re-derive the commission of an approved conversion (admin only).

    Uses the deduction snapshot stored at approval, never the live rules.
    """
    if commission_rate is not None:
        commission_rate = validate_rate(commission_rate)
    actor_id = actor.id

    async with _lock_for(conversion_id):
        conversion = await _load_conversion(db, conversion_id)
        _require_status(conversion, (ConversionStatus.APPROVED,), "recompute")
        if not is_admin(actor):
            raise AuthorizationError("Only admins can recompute commissions")

        rules = [DeductionRule.from_snapshot(entry) for entry in conversion.deductions_applied or []]
        rate = commission_rate if commission_rate is not None else conversion.commission_rate
        breakdown = calculate_conversion_commission(
            conversion.revenue_amount, rate, rules, conversion.currency
        )
        previous = {
            "commission_rate": conversion.commission_rate,
            "commissionable_amount": conversion.commissionable_amount,
            "commission_amount": conversion.commission_amount,
        }
        await _commit_transition(
            db,
            conversion,
            _commission_values(breakdown),
            actor_id=actor_id,
            action=AuditAction.RECOMPUTE_COMMISSION,
            action_metadata={
                "previous": previous,
                "commission_rate": breakdown.commission_rate,
                "commission_amount": breakdown.commission_amount,
            },
            ip_address=ip_address,
        )

    logger.info(f"Conversion {conversion_id} commission recomputed by user {actor_id}")
    return TransitionResult(conversion=conversion)
