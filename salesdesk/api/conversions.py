"""Conversion workflow API endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from salesdesk.auth.dependencies import get_current_user
from salesdesk.auth.roles import is_manager_or_above
from salesdesk.db import get_db
from salesdesk.errors import AuthorizationError, NotFoundError
from salesdesk.models import Conversion, ConversionStatus, User
from salesdesk.schemas.conversion import (
    ApproveRequest,
    ConversionCreate,
    ConversionListResponse,
    ConversionResponse,
    RecommendRequest,
    RecomputeRequest,
    RejectRequest,
    TransitionResponse,
)
from salesdesk.services import workflow
from salesdesk.services.notifications import Notifier, get_notifier
from salesdesk.utils.audit import get_client_ip

router = APIRouter(prefix="/conversions", tags=["Conversions"])


def _transition_response(result: workflow.TransitionResult) -> TransitionResponse:
    return TransitionResponse(
        conversion=ConversionResponse.model_validate(result.conversion),
        warnings=result.warnings,
    )


@router.post("", response_model=ConversionResponse, status_code=status.HTTP_201_CREATED)
async def submit_conversion(
    data: ConversionCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Submit a conversion for approval."""
    conversion = await workflow.submit_conversion(
        db,
        current_user,
        lead_id=data.lead_id,
        revenue_amount=data.revenue_amount,
        rep_id=data.rep_id,
        currency=data.currency,
        commission_rate=data.commission_rate,
        conversion_date=data.conversion_date,
        notes=data.notes,
        ip_address=get_client_ip(request),
    )
    return ConversionResponse.model_validate(conversion)


@router.get("", response_model=ConversionListResponse)
async def list_conversions(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    status_filter: Optional[ConversionStatus] = Query(None, alias="status"),
    rep_id: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
):
    """
    List conversions, newest first.

    Reps only see their own conversions.
    """
    query = select(Conversion)

    if not is_manager_or_above(current_user):
        query = query.where(Conversion.rep_id == current_user.id)
    elif rep_id is not None:
        query = query.where(Conversion.rep_id == rep_id)

    if status_filter:
        query = query.where(Conversion.status == status_filter)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    offset = (page - 1) * per_page
    query = query.order_by(Conversion.created_at.desc(), Conversion.id.desc()).offset(offset).limit(per_page)

    result = await db.execute(query)
    conversions = result.scalars().all()

    return ConversionListResponse(
        items=[ConversionResponse.model_validate(c) for c in conversions],
        total=total,
        page=page,
        per_page=per_page,
        pages=(total + per_page - 1) // per_page,
    )


@router.get("/{conversion_id}", response_model=ConversionResponse)
async def get_conversion(
    conversion_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    conversion = await db.get(Conversion, conversion_id)
    if conversion is None:
        raise NotFoundError(f"Conversion {conversion_id} not found")
    if conversion.rep_id != current_user.id and not is_manager_or_above(current_user):
        raise AuthorizationError("Reps can only view their own conversions")
    return ConversionResponse.model_validate(conversion)


@router.post("/{conversion_id}/recommend", response_model=TransitionResponse)
async def recommend_conversion(
    conversion_id: int,
    data: RecommendRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    result = await workflow.recommend_conversion(
        db,
        conversion_id,
        current_user,
        notes=data.notes,
        ip_address=get_client_ip(request),
    )
    return _transition_response(result)


@router.post("/{conversion_id}/approve", response_model=TransitionResponse)
async def approve_conversion(
    conversion_id: int,
    data: ApproveRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    notifier: Notifier = Depends(get_notifier),
):
    """Approve a conversion and fix its commission."""
    result = await workflow.approve_conversion(
        db,
        conversion_id,
        current_user,
        commission_rate=data.commission_rate,
        notes=data.notes,
        notifier=notifier,
        ip_address=get_client_ip(request),
    )
    return _transition_response(result)


@router.post("/{conversion_id}/reject", response_model=TransitionResponse)
async def reject_conversion(
    conversion_id: int,
    data: RejectRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    notifier: Notifier = Depends(get_notifier),
):
    result = await workflow.reject_conversion(
        db,
        conversion_id,
        current_user,
        data.reason,
        notifier=notifier,
        ip_address=get_client_ip(request),
    )
    return _transition_response(result)


@router.post("/{conversion_id}/recompute", response_model=TransitionResponse)
async def recompute_commission(
    conversion_id: int,
    data: RecomputeRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Recompute an approved commission from its deduction snapshot (admin only)."""
    result = await workflow.recompute_commission(
        db,
        conversion_id,
        current_user,
        commission_rate=data.commission_rate,
        ip_address=get_client_ip(request),
    )
    return _transition_response(result)
