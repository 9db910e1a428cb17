"""Deduction rule API endpoints."""

from typing import List

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from salesdesk.auth.dependencies import get_current_user, require_manager
from salesdesk.db import get_db
from salesdesk.models import User
from salesdesk.schemas.deduction import DeductionCreate, DeductionResponse, DeductionUpdate
from salesdesk.services import deduction_rules
from salesdesk.utils.audit import get_client_ip

router = APIRouter(prefix="/deductions", tags=["Deductions"])


@router.get("", response_model=List[DeductionResponse])
async def list_deductions(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_manager),
    include_inactive: bool = Query(False),
):
    """List deduction rules in the order they are applied."""
    rows = await deduction_rules.list_deductions(db, include_inactive=include_inactive)
    return [DeductionResponse.model_validate(row) for row in rows]


@router.post("", response_model=DeductionResponse, status_code=status.HTTP_201_CREATED)
async def create_deduction(
    data: DeductionCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    deduction = await deduction_rules.create_deduction(
        db,
        current_user,
        label=data.label,
        percentage=data.percentage,
        applies_before_commission=data.applies_before_commission,
        is_active=data.is_active,
        position=data.position,
        ip_address=get_client_ip(request),
    )
    return DeductionResponse.model_validate(deduction)


@router.patch("/{deduction_id}", response_model=DeductionResponse)
async def update_deduction(
    deduction_id: int,
    data: DeductionUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update a rule. Approved conversions keep their own snapshot."""
    deduction = await deduction_rules.update_deduction(
        db,
        deduction_id,
        current_user,
        changes=data.model_dump(exclude_unset=True),
        ip_address=get_client_ip(request),
    )
    return DeductionResponse.model_validate(deduction)
