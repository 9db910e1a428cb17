"""
Conversion schemas.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from salesdesk.models.conversion import ConversionStatus


class ConversionCreate(BaseModel):
    """Submit a conversion. rep_id defaults to the submitter."""

    lead_id: int
    revenue_amount: Decimal = Field(..., gt=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    rep_id: Optional[int] = None
    commission_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    conversion_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=2000)


class RecommendRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=2000)


class ApproveRequest(BaseModel):
    """Approve a conversion, optionally overriding the commission rate."""

    commission_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    notes: Optional[str] = Field(None, max_length=2000)


class RejectRequest(BaseModel):
    # Emptiness is checked by the workflow so it surfaces as a domain error
    reason: Optional[str] = Field(None, max_length=2000)


class RecomputeRequest(BaseModel):
    commission_rate: Optional[Decimal] = Field(None, ge=0, le=100)


class DeductionSnapshot(BaseModel):
    """One entry of the deduction trail frozen at approval."""

    label: str
    percentage: Decimal
    amount: Optional[Decimal] = None
    applies_before_commission: bool = True


class ConversionResponse(BaseModel):
    id: int
    lead_id: int
    rep_id: int
    revenue_amount: Decimal
    currency: str
    conversion_date: Optional[date] = None
    notes: Optional[str] = None

    status: ConversionStatus
    version: int

    # Financials (fixed at approval)
    commission_rate: Optional[Decimal] = None
    commissionable_amount: Optional[Decimal] = None
    commission_amount: Optional[Decimal] = None
    deductions_applied: Optional[List[DeductionSnapshot]] = None

    # Workflow trail
    submitted_by: Optional[int] = None
    submitted_at: Optional[datetime] = None
    recommended_by: Optional[int] = None
    recommended_at: Optional[datetime] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    workflow_notes: Optional[str] = None

    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class TransitionResponse(BaseModel):
    """Result of a workflow action; warnings report failed side effects."""

    conversion: ConversionResponse
    warnings: List[str] = Field(default_factory=list)


class ConversionListResponse(BaseModel):
    """Paginated list of conversions."""

    items: List[ConversionResponse]
    total: int
    page: int
    per_page: int
    pages: int
