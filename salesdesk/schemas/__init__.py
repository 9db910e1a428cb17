"""Pydantic schemas for request/response validation."""

from salesdesk.schemas.activity import (
    GoalCreate,
    GoalResponse,
    VisitCreate,
    VisitLogResponse,
    VisitResponse,
)
from salesdesk.schemas.conversion import (
    ApproveRequest,
    ConversionCreate,
    ConversionListResponse,
    ConversionResponse,
    DeductionSnapshot,
    RecommendRequest,
    RecomputeRequest,
    RejectRequest,
    TransitionResponse,
)
from salesdesk.schemas.deduction import DeductionCreate, DeductionResponse, DeductionUpdate
from salesdesk.schemas.report import (
    OrganizationReport,
    RecentConversion,
    RecentLead,
    ReportPeriod,
    ReportScope,
)

__all__ = [
    # Conversion
    "ConversionCreate",
    "ConversionResponse",
    "ConversionListResponse",
    "DeductionSnapshot",
    "RecommendRequest",
    "ApproveRequest",
    "RejectRequest",
    "RecomputeRequest",
    "TransitionResponse",
    # Deduction
    "DeductionCreate",
    "DeductionUpdate",
    "DeductionResponse",
    # Goals / visits
    "GoalCreate",
    "GoalResponse",
    "VisitCreate",
    "VisitResponse",
    "VisitLogResponse",
    # Reports
    "OrganizationReport",
    "ReportPeriod",
    "ReportScope",
    "RecentLead",
    "RecentConversion",
]
