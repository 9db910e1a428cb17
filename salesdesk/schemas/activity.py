"""
Goal and visit schemas.
"""

from datetime import date, datetime, time
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from salesdesk.models.lead import VisitType


class GoalCreate(BaseModel):
    """Create a goal. user_id defaults to the caller."""

    goal_type: str = Field(..., min_length=1, max_length=50)
    target_value: Decimal = Field(..., gt=0)
    period_start: date
    period_end: date
    user_id: Optional[int] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    description: Optional[str] = Field(None, max_length=1000)


class GoalResponse(BaseModel):
    id: int
    user_id: int
    goal_type: str
    target_value: Decimal
    current_value: Decimal
    period_start: date
    period_end: date
    currency: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class VisitCreate(BaseModel):
    company_name: str = Field(..., min_length=1, max_length=255)
    visit_type: VisitType = VisitType.COLD_CALL
    visit_date: Optional[date] = None
    visit_time: Optional[time] = None
    status: Literal["completed", "scheduled", "cancelled"] = "completed"
    contact_person: Optional[str] = Field(None, max_length=255)
    contact_email: Optional[str] = Field(None, max_length=255)
    duration_minutes: Optional[int] = Field(None, gt=0)
    lead_generated: bool = False
    notes: Optional[str] = Field(None, max_length=2000)
    send_reminder: bool = False
    add_to_calendar: bool = False


class VisitResponse(BaseModel):
    id: int
    rep_id: int
    company_name: str
    contact_person: Optional[str] = None
    visit_type: VisitType
    visit_date: date
    status: str
    duration_minutes: Optional[int] = None
    lead_generated: bool
    lead_id: Optional[int] = None
    notes: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class VisitLogResponse(BaseModel):
    visit: VisitResponse
    goals_incremented: int = 0
    calendar_url: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)
