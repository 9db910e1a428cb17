"""
Conversion model: a recorded sale tracked through approval to a commission.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from salesdesk.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from salesdesk.models.lead import Lead
    from salesdesk.models.user import User


class ConversionStatus(str, Enum):
    """Approval workflow status."""
    PENDING = "pending"            # Submitted, waiting for a manager
    RECOMMENDED = "recommended"    # Manager vouched for it
    APPROVED = "approved"          # Commission fixed (terminal)
    REJECTED = "rejected"          # Terminal failure


TERMINAL_STATUSES = frozenset({ConversionStatus.APPROVED, ConversionStatus.REJECTED})


class Conversion(Base, TimestampMixin):
    """
    A sale linked to a lead and the rep who earns its commission.

    commissionable_amount, commission_amount and deductions_applied are
    written only by the approval transition (or an admin recompute) and are
    null for every other status.
    """

    __tablename__ = "conversions"

    id: Mapped[int] = mapped_column(primary_key=True)

    lead_id: Mapped[int] = mapped_column(
        ForeignKey("leads.id"),
        nullable=False,
        index=True,
    )
    rep_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    # Financial data
    revenue_amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 3),
        nullable=False,
    )
    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
    )
    commission_rate: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(5, 2),
        nullable=True,
        comment="Percentage frozen at approval time",
    )
    commissionable_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(14, 3),
        nullable=True,
    )
    commission_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(14, 3),
        nullable=True,
    )
    deductions_applied: Mapped[Optional[list]] = mapped_column(
        JSON,
        nullable=True,
        comment="Snapshot of the deduction trail taken at approval",
    )
    conversion_date: Mapped[date] = mapped_column(
        Date,
        default=date.today,
        nullable=False,
        index=True,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Workflow
    status: Mapped[ConversionStatus] = mapped_column(
        SQLAlchemyEnum(
            ConversionStatus,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=ConversionStatus.PENDING,
        nullable=False,
        index=True,
    )
    version: Mapped[int] = mapped_column(
        Integer,
        default=1,
        nullable=False,
        comment="Bumped by every transition; used as write precondition",
    )
    submitted_by: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    submitted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    recommended_by: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    recommended_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_by: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    workflow_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Relationships
    lead: Mapped["Lead"] = relationship("Lead")
    rep: Mapped["User"] = relationship("User", foreign_keys=[rep_id])

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def __repr__(self) -> str:
        return f"<Conversion(id={self.id}, rep_id={self.rep_id}, status={self.status})>"
