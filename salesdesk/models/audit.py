"""
AuditLog model for tracking workflow actions.
"""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, JSON, String, func
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from salesdesk.models.base import Base

if TYPE_CHECKING:
    from salesdesk.models.user import User


class AuditAction(str, Enum):
    """Types of auditable actions."""
    SUBMIT_CONVERSION = "submit_conversion"
    RECOMMEND_CONVERSION = "recommend_conversion"
    APPROVE_CONVERSION = "approve_conversion"
    REJECT_CONVERSION = "reject_conversion"
    RECOMPUTE_COMMISSION = "recompute_commission"
    CREATE_DEDUCTION = "create_deduction"
    UPDATE_DEDUCTION = "update_deduction"
    CREATE_GOAL = "create_goal"
    LOG_VISIT = "log_visit"


class AuditLog(Base):
    """
    Audit log for tracking user actions.

    Written in the same transaction as the change it describes, so a rolled
    back transition leaves no audit row behind.
    """

    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    action: Mapped[AuditAction] = mapped_column(
        SQLAlchemyEnum(
            AuditAction,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
        index=True,
    )
    target_type: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        comment="Type of entity affected (conversion, deduction, goal, visit)",
    )
    target_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="ID of the affected entity",
    )
    action_metadata: Mapped[Optional[dict]] = mapped_column(
        JSON,
        nullable=True,
        comment="Additional context about the action",
    )
    ip_address: Mapped[Optional[str]] = mapped_column(
        String(45),
        nullable=True,
        comment="IPv4 or IPv6 address",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    # Relationships
    user: Mapped["User"] = relationship(
        "User",
        back_populates="audit_logs",
    )

    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, user_id={self.user_id}, action={self.action})>"
