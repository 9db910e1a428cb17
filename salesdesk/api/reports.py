"""Reporting API endpoints."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from salesdesk.auth.dependencies import get_current_user
from salesdesk.db import get_db
from salesdesk.models import User
from salesdesk.schemas.report import OrganizationReport, ReportPeriod, ReportScope
from salesdesk.services.currency import CurrencyNormalizer, get_currency_normalizer
from salesdesk.services.reporting import build_organization_report

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/organization", response_model=OrganizationReport)
async def organization_report(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    normalizer: CurrencyNormalizer = Depends(get_currency_normalizer),
    period: ReportPeriod = Query(ReportPeriod.MONTH),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    scope: ReportScope = Query(ReportScope.ORGANIZATION),
    user_id: Optional[int] = Query(None, description="Subject of individual/team scope"),
    currency: Optional[str] = Query(None, min_length=3, max_length=3),
):
    """
    Dashboard statistics.

    Totals are normalised to ``currency`` (default: the caller's preferred
    currency); check ``degraded`` before trusting them.
    """
    return await build_organization_report(
        db,
        normalizer,
        current_user,
        period=period,
        start=start,
        end=end,
        scope=scope,
        subject_id=user_id,
        target_currency=currency,
    )
