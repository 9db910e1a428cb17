"""
Goals and visit activity.

Goals are period-scoped counters. They are bumped by completed activity and
never decremented.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, time
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from salesdesk.auth.roles import is_manager_or_above
from salesdesk.errors import AuthorizationError, ValidationError
from salesdesk.models import AuditAction, DailyVisit, Goal, Lead, LeadStatus, User, VisitType
from salesdesk.services.notifications import (
    VISIT_REMINDER_FUNCTION,
    Notifier,
    build_calendar_url,
    dispatch,
)
from salesdesk.utils.audit import log_action
from salesdesk.utils.money import normalize_currency, to_decimal

logger = logging.getLogger(__name__)

VISITS_GOAL = "visits"
VISIT_STATUSES = ("completed", "scheduled", "cancelled")


@dataclass
class VisitResult:
    visit: DailyVisit
    lead: Optional[Lead] = None
    goals_incremented: int = 0
    calendar_url: Optional[str] = None
    warnings: List[str] = field(default_factory=list)


async def increment_goal(
    db: AsyncSession,
    user_id: int,
    goal_type: str,
    on_date: Optional[date] = None,
    amount: Decimal = Decimal("1"),
) -> int:
    """
    Add ``amount`` to every goal of this type whose period contains ``on_date``.

    The increment is a single UPDATE so concurrent activity never loses a
    count. The caller commits.

    Returns:
        Number of goals updated
    """
    amount = to_decimal(amount)
    if amount <= 0:
        raise ValidationError("Goal increment must be positive")
    on_date = on_date or date.today()

    result = await db.execute(
        update(Goal)
        .where(
            Goal.user_id == user_id,
            Goal.goal_type == goal_type,
            Goal.period_start <= on_date,
            Goal.period_end >= on_date,
        )
        .values(current_value=Goal.current_value + amount)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount:
        logger.debug(f"Incremented {result.rowcount} '{goal_type}' goal(s) for user {user_id} by {amount}")
    return result.rowcount or 0


async def list_goals(
    db: AsyncSession,
    user_id: int,
    active_on: Optional[date] = None,
) -> List[Goal]:
    query = select(Goal).where(Goal.user_id == user_id).order_by(Goal.period_start, Goal.id)
    if active_on is not None:
        query = query.where(Goal.period_start <= active_on, Goal.period_end >= active_on)
    result = await db.execute(query)
    return list(result.scalars().all())


async def create_goal(
    db: AsyncSession,
    actor: User,
    *,
    goal_type: str,
    target_value: Decimal,
    period_start: date,
    period_end: date,
    user_id: Optional[int] = None,
    currency: Optional[str] = None,
    description: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> Goal:
    """Create a goal; managers may set goals for other users."""
    goal_type = (goal_type or "").strip().lower()
    if not goal_type:
        raise ValidationError("Goal type is required")
    target = to_decimal(target_value)
    if target <= 0:
        raise ValidationError("Goal target must be greater than zero")
    if period_end < period_start:
        raise ValidationError("Goal period end must not be before its start")
    if currency:
        currency = normalize_currency(currency, currency)

    actor_id = actor.id
    user_id = user_id if user_id is not None else actor_id
    if user_id != actor_id and not is_manager_or_above(actor):
        raise AuthorizationError("Only managers can set goals for other users")

    goal = Goal(
        user_id=user_id,
        goal_type=goal_type,
        target_value=target,
        current_value=Decimal("0"),
        period_start=period_start,
        period_end=period_end,
        currency=currency,
        description=description,
    )
    try:
        db.add(goal)
        await db.flush()
        await log_action(
            db=db,
            user_id=actor_id,
            action=AuditAction.CREATE_GOAL,
            target_type="goal",
            target_id=goal.id,
            action_metadata={"user_id": user_id, "goal_type": goal_type, "target_value": target},
            ip_address=ip_address,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    await db.refresh(goal)

    logger.info(f"Goal {goal.id} ({goal_type}) created for user {user_id} by user {actor_id}")
    return goal


async def record_visit(
    db: AsyncSession,
    actor: User,
    *,
    company_name: str,
    visit_type: VisitType,
    visit_date: Optional[date] = None,
    visit_time: Optional[time] = None,
    status: str = "completed",
    contact_person: Optional[str] = None,
    contact_email: Optional[str] = None,
    duration_minutes: Optional[int] = None,
    lead_generated: bool = False,
    notes: Optional[str] = None,
    send_reminder: bool = False,
    add_to_calendar: bool = False,
    notifier: Optional[Notifier] = None,
    ip_address: Optional[str] = None,
) -> VisitResult:
    """
    Log a visit for the acting rep.

    A completed visit bumps the rep's current ``visits`` goals. A visit that
    generated a lead creates that lead. Scheduled visits can send a reminder
    to the contact and return a calendar link; neither can fail the save.
    """
    company_name = (company_name or "").strip()
    if not company_name:
        raise ValidationError("Company name is required")
    if status not in VISIT_STATUSES:
        raise ValidationError(
            f"Visit status must be one of: {', '.join(VISIT_STATUSES)}",
            details={"status": status},
        )
    if duration_minutes is not None and duration_minutes <= 0:
        raise ValidationError("Visit duration must be positive")
    visit_date = visit_date or date.today()
    actor_id = actor.id
    completed = status == "completed"

    visit = DailyVisit(
        rep_id=actor_id,
        company_name=company_name,
        contact_person=contact_person,
        contact_email=contact_email,
        visit_type=visit_type,
        visit_date=visit_date,
        status=status,
        duration_minutes=duration_minutes,
        lead_generated=lead_generated,
        notes=notes,
    )
    lead = None
    incremented = 0
    try:
        if lead_generated and contact_person:
            lead = Lead(
                company_name=company_name,
                contact_name=contact_person,
                contact_email=contact_email,
                source="visit",
                status=LeadStatus.NEW,
                created_by=actor_id,
            )
            db.add(lead)
            await db.flush()
            visit.lead_id = lead.id

        db.add(visit)
        await db.flush()
        if completed:
            incremented = await increment_goal(db, actor_id, VISITS_GOAL, visit_date)
        await log_action(
            db=db,
            user_id=actor_id,
            action=AuditAction.LOG_VISIT,
            target_type="visit",
            target_id=visit.id,
            action_metadata={
                "status": status,
                "lead_id": visit.lead_id,
                "goals_incremented": incremented,
            },
            ip_address=ip_address,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    await db.refresh(visit)
    if lead is not None:
        await db.refresh(lead)

    logger.info(f"Visit {visit.id} ({status}) logged by user {actor_id}")
    result = VisitResult(visit=visit, lead=lead, goals_incremented=incremented)

    if status == "scheduled":
        label = visit_type.value.replace("_", " ").upper()
        if send_reminder and contact_email:
            warning = await dispatch(
                notifier,
                VISIT_REMINDER_FUNCTION,
                {
                    "to": contact_email,
                    "visit_id": visit.id,
                    "company_name": company_name,
                    "contact_person": contact_person,
                    "visit_type": visit_type.value,
                    "visit_date": visit_date.isoformat(),
                    "visit_time": visit_time.isoformat() if visit_time else None,
                    "rep_name": actor.full_name or actor.email,
                },
            )
            if warning:
                result.warnings.append(warning)
        if add_to_calendar:
            result.calendar_url = build_calendar_url(
                f"{label} - {company_name}",
                visit_date,
                start=visit_time,
                duration_minutes=duration_minutes or 60,
                details=f"Contact: {contact_person or ''}\nNotes: {notes or ''}",
            )

    return result
