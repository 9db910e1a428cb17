"""
Deduction rule schemas.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class DeductionCreate(BaseModel):
    label: str = Field(..., min_length=1, max_length=100)
    percentage: Decimal = Field(..., ge=0, le=100)
    applies_before_commission: bool = True
    is_active: bool = True
    position: Optional[int] = Field(None, ge=0)


class DeductionUpdate(BaseModel):
    """Partial update; omitted fields keep their value."""

    label: Optional[str] = Field(None, min_length=1, max_length=100)
    percentage: Optional[Decimal] = Field(None, ge=0, le=100)
    applies_before_commission: Optional[bool] = None
    is_active: Optional[bool] = None
    position: Optional[int] = Field(None, ge=0)


class DeductionResponse(BaseModel):
    id: int
    label: str
    percentage: Decimal
    applies_before_commission: bool
    is_active: bool
    position: int
    created_by: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
