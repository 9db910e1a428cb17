"""
Lead and daily visit models.

Their CRUD lives with the dashboard; the workflow only needs them for
conversion linkage, goal increments and report counts.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, Date, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from salesdesk.models.base import BaseModel
from salesdesk.models.user import User


class LeadStatus(str, Enum):
    """Pipeline status of a lead."""
    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    PROPOSAL = "proposal"
    NEGOTIATION = "negotiation"
    CLOSED_WON = "closed_won"
    CLOSED_LOST = "closed_lost"


class VisitType(str, Enum):
    COLD_CALL = "cold_call"
    FOLLOW_UP = "follow_up"
    PRESENTATION = "presentation"
    MEETING = "meeting"
    PHONE_CALL = "phone_call"


class Lead(BaseModel):
    """A prospective sale owned by the rep who created it."""

    __tablename__ = "leads"

    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    source: Mapped[str] = mapped_column(String(50), default="visit", nullable=False)
    status: Mapped[LeadStatus] = mapped_column(
        SQLAlchemyEnum(
            LeadStatus,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=LeadStatus.NEW,
        nullable=False,
        index=True,
    )
    estimated_revenue: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(14, 2),
        nullable=True,
    )
    currency: Mapped[Optional[str]] = mapped_column(String(3), nullable=True)
    created_by: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    creator: Mapped[User] = relationship("User")

    def __repr__(self) -> str:
        return f"<Lead(id={self.id}, company='{self.company_name}', status={self.status})>"


class DailyVisit(BaseModel):
    """A logged customer visit."""

    __tablename__ = "daily_visits"

    rep_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_person: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    contact_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    visit_type: Mapped[VisitType] = mapped_column(
        SQLAlchemyEnum(
            VisitType,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    visit_date: Mapped[date] = mapped_column(
        Date,
        default=date.today,
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default="completed",
        nullable=False,
        comment="completed | scheduled | cancelled",
    )
    duration_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    lead_generated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    lead_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("leads.id"),
        nullable=True,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    rep: Mapped[User] = relationship("User")
    lead: Mapped[Optional[Lead]] = relationship("Lead")

    def __repr__(self) -> str:
        return f"<DailyVisit(id={self.id}, rep_id={self.rep_id}, date={self.visit_date})>"
