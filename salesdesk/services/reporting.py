"""
Organisation reporting.

Counts visits, leads and conversions for a period and sums approved revenue
and commission in one currency. Amounts are converted concurrently; a failed
rate lookup keeps the raw amount and marks the report as degraded.
"""

import asyncio
import logging
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from salesdesk.auth.roles import is_manager_or_above
from salesdesk.errors import AuthorizationError, ValidationError
from salesdesk.models import Conversion, ConversionStatus, DailyVisit, Lead, User
from salesdesk.schemas.report import (
    OrganizationReport,
    RecentConversion,
    RecentLead,
    ReportPeriod,
    ReportScope,
)
from salesdesk.services.currency import CurrencyNormalizer
from salesdesk.utils.money import normalize_currency, quantize_money

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_LIMIT = 5


def resolve_period(
    period: ReportPeriod = ReportPeriod.MONTH,
    start: Optional[date] = None,
    end: Optional[date] = None,
    today: Optional[date] = None,
) -> Tuple[date, date]:
    """
    Turn a named period into inclusive [start, end] dates.

    day: today; week: the last 7 days; month: the current calendar month
    to date. Explicit start/end take precedence.
    """
    today = today or date.today()
    if start is None:
        if period == ReportPeriod.DAY:
            start = today
        elif period == ReportPeriod.WEEK:
            start = today - timedelta(days=7)
        else:
            start = today.replace(day=1)
    end = end or today
    if start > end:
        raise ValidationError("Report period start must not be after its end")
    return start, end


async def resolve_scope_user_ids(
    db: AsyncSession,
    actor: User,
    scope: ReportScope,
    subject_id: Optional[int] = None,
) -> Optional[List[int]]:
    """
    User ids covered by the scope; None means the whole organisation.

    Reps may only report on themselves.
    """
    if scope == ReportScope.INDIVIDUAL:
        subject_id = subject_id or actor.id
        if subject_id != actor.id and not is_manager_or_above(actor):
            raise AuthorizationError("Reps can only view their own statistics")
        return [subject_id]

    if not is_manager_or_above(actor):
        raise AuthorizationError("Manager access required for team or organisation reports")

    if scope == ReportScope.TEAM:
        manager_id = subject_id or actor.id
        result = await db.execute(select(User.id).where(User.manager_id == manager_id))
        return [manager_id, *result.scalars().all()]

    return None


async def _normalise_amounts(
    normalizer: CurrencyNormalizer,
    rows: List[Tuple[Optional[Decimal], Optional[str], date]],
    target_currency: str,
) -> Tuple[Decimal, int]:
    results = await asyncio.gather(
        *(
            normalizer.convert_or_fallback(amount, currency, target_currency, as_of)
            for amount, currency, as_of in rows
            if amount is not None
        )
    )
    total = sum((amount for amount, _ in results), Decimal("0"))
    failed = sum(1 for _, converted in results if not converted)
    return total, failed


async def _recent_activity(
    db: AsyncSession,
    user_ids: Optional[List[int]],
    start: date,
    end: date,
    start_ts: datetime,
    end_ts: datetime,
) -> Tuple[List[RecentLead], List[RecentConversion]]:
    """Newest leads and conversions in the period, with creator and rep names."""
    creator = aliased(User)
    leads_query = (
        select(
            Lead.id,
            Lead.company_name,
            Lead.contact_name,
            Lead.status,
            Lead.created_at,
            Lead.created_by,
            creator.full_name.label("creator_name"),
        )
        .join(creator, Lead.created_by == creator.id)
        .where(Lead.created_at >= start_ts, Lead.created_at < end_ts)
        .order_by(Lead.created_at.desc(), Lead.id.desc())
        .limit(RECENT_ACTIVITY_LIMIT)
    )

    rep = aliased(User)
    conversions_query = (
        select(
            Conversion.id,
            Conversion.conversion_date,
            Conversion.revenue_amount,
            Conversion.currency,
            Conversion.status,
            Conversion.lead_id,
            Lead.company_name,
            Lead.contact_name,
            Conversion.rep_id,
            rep.full_name.label("rep_name"),
        )
        .join(Lead, Conversion.lead_id == Lead.id)
        .join(rep, Conversion.rep_id == rep.id)
        .where(Conversion.conversion_date >= start, Conversion.conversion_date <= end)
        .order_by(Conversion.conversion_date.desc(), Conversion.id.desc())
        .limit(RECENT_ACTIVITY_LIMIT)
    )

    if user_ids is not None:
        leads_query = leads_query.where(Lead.created_by.in_(user_ids))
        conversions_query = conversions_query.where(Conversion.rep_id.in_(user_ids))

    leads = [RecentLead(**row._mapping) for row in (await db.execute(leads_query)).all()]
    conversions = [
        RecentConversion(**row._mapping) for row in (await db.execute(conversions_query)).all()
    ]
    return leads, conversions


async def build_organization_report(
    db: AsyncSession,
    normalizer: CurrencyNormalizer,
    actor: User,
    *,
    period: ReportPeriod = ReportPeriod.MONTH,
    start: Optional[date] = None,
    end: Optional[date] = None,
    scope: ReportScope = ReportScope.ORGANIZATION,
    subject_id: Optional[int] = None,
    target_currency: Optional[str] = None,
) -> OrganizationReport:
    """
    Build dashboard statistics.

    Revenue and commission come from approved conversions only; the status
    breakdown counts every conversion dated in the period. Recent activity
    lists the newest leads and conversions in the same period and scope.
    """
    start, end = resolve_period(period, start, end)
    user_ids = await resolve_scope_user_ids(db, actor, scope, subject_id)
    currency = normalize_currency(
        target_currency or actor.preferred_currency, normalizer.base_currency
    )

    start_ts = datetime.combine(start, time.min, tzinfo=timezone.utc)
    end_ts = datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc)

    users_query = select(func.count()).select_from(User).where(User.is_active.is_(True))
    visits_query = (
        select(func.count())
        .select_from(DailyVisit)
        .where(DailyVisit.visit_date >= start, DailyVisit.visit_date <= end)
    )
    leads_query = (
        select(func.count())
        .select_from(Lead)
        .where(Lead.created_at >= start_ts, Lead.created_at < end_ts)
    )
    status_query = (
        select(Conversion.status, func.count())
        .where(Conversion.conversion_date >= start, Conversion.conversion_date <= end)
        .group_by(Conversion.status)
    )
    approved_query = select(
        Conversion.revenue_amount,
        Conversion.commission_amount,
        Conversion.currency,
        Conversion.conversion_date,
    ).where(
        Conversion.status == ConversionStatus.APPROVED,
        Conversion.conversion_date >= start,
        Conversion.conversion_date <= end,
    )

    if user_ids is not None:
        users_query = users_query.where(User.id.in_(user_ids))
        visits_query = visits_query.where(DailyVisit.rep_id.in_(user_ids))
        leads_query = leads_query.where(Lead.created_by.in_(user_ids))
        status_query = status_query.where(Conversion.rep_id.in_(user_ids))
        approved_query = approved_query.where(Conversion.rep_id.in_(user_ids))

    total_users = await db.scalar(users_query)
    total_visits = await db.scalar(visits_query)
    total_leads = await db.scalar(leads_query)
    status_rows = (await db.execute(status_query)).all()
    approved_rows = (await db.execute(approved_query)).all()
    recent_leads, recent_conversions = await _recent_activity(
        db, user_ids, start, end, start_ts, end_ts
    )

    conversions_by_status = {status.value: 0 for status in ConversionStatus}
    for status, count in status_rows:
        conversions_by_status[ConversionStatus(status).value] = count

    revenue, revenue_failed = await _normalise_amounts(
        normalizer,
        [(row.revenue_amount, row.currency, row.conversion_date) for row in approved_rows],
        currency,
    )
    commission, commission_failed = await _normalise_amounts(
        normalizer,
        [(row.commission_amount, row.currency, row.conversion_date) for row in approved_rows],
        currency,
    )
    failed = max(revenue_failed, commission_failed)
    if failed:
        logger.warning(
            f"Report {scope.value} {start}..{end}: {failed} conversion(s) left unconverted"
        )

    return OrganizationReport(
        scope=scope,
        subject_id=subject_id,
        period_start=start,
        period_end=end,
        currency=currency,
        total_users=total_users or 0,
        total_visits=total_visits or 0,
        total_leads=total_leads or 0,
        total_conversions=len(approved_rows),
        conversions_by_status=conversions_by_status,
        total_revenue=quantize_money(revenue, currency),
        total_commission=quantize_money(commission, currency),
        degraded=failed > 0,
        failed_conversions=failed,
        recent_leads=recent_leads,
        recent_conversions=recent_conversions,
    )
