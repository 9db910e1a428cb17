"""
Organisation report schemas.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from salesdesk.models.conversion import ConversionStatus
from salesdesk.models.lead import LeadStatus


class ReportPeriod(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class ReportScope(str, Enum):
    INDIVIDUAL = "individual"
    TEAM = "team"
    ORGANIZATION = "organization"


class RecentLead(BaseModel):
    id: int
    company_name: str
    contact_name: str
    status: LeadStatus
    created_at: datetime
    created_by: int
    creator_name: str


class RecentConversion(BaseModel):
    id: int
    conversion_date: date
    revenue_amount: Decimal
    currency: str
    status: ConversionStatus
    lead_id: int
    company_name: str
    contact_name: str
    rep_id: int
    rep_name: str


class OrganizationReport(BaseModel):
    """Dashboard statistics for one period and scope."""

    scope: ReportScope
    subject_id: Optional[int] = None
    period_start: date
    period_end: date
    currency: str = Field(..., description="Currency of the revenue/commission totals")

    total_users: int = 0
    total_visits: int = 0
    total_leads: int = 0
    total_conversions: int = Field(0, description="Approved conversions in the period")
    conversions_by_status: Dict[str, int] = Field(default_factory=dict)

    total_revenue: Decimal = Decimal("0")
    total_commission: Decimal = Decimal("0")

    degraded: bool = Field(False, description="True when some amounts could not be converted")
    failed_conversions: int = 0

    # Newest first, capped by the reporting service
    recent_leads: List[RecentLead] = Field(default_factory=list)
    recent_conversions: List[RecentConversion] = Field(default_factory=list)
