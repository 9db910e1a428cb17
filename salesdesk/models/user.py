"""
User profile model with sales roles.
"""

from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, ForeignKey, Numeric, String
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from salesdesk.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from salesdesk.models.audit import AuditLog


class UserRole(str, Enum):
    """User roles, ordered from least to most authority."""
    REP = "rep"
    MANAGER = "manager"
    DIRECTOR = "director"
    ADMIN = "admin"


class User(Base, TimestampMixin):
    """
    Sales user profile.

    - rep: logs visits, leads and submits conversions
    - manager: recommends or rejects conversions of other users
    - director / admin: approve conversions; admin also configures deductions
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    full_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    role: Mapped[UserRole] = mapped_column(
        SQLAlchemyEnum(
            UserRole,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=UserRole.REP,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    # Commission rate for reps (percent, e.g. 15 = 15%)
    commission_rate: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(5, 2),
        nullable=True,
        comment="Rep commission rate as percentage of the commissionable amount",
    )
    preferred_currency: Mapped[Optional[str]] = mapped_column(
        String(3),
        nullable=True,
        comment="Currency used when normalising reports for this user",
    )
    manager_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id"),
        nullable=True,
        index=True,
        comment="Reports-to manager; defines team scope",
    )

    # Relationships
    manager: Mapped[Optional["User"]] = relationship(
        "User",
        remote_side="User.id",
        back_populates="team_members",
    )
    team_members: Mapped[List["User"]] = relationship(
        "User",
        back_populates="manager",
    )
    audit_logs: Mapped[List["AuditLog"]] = relationship(
        "AuditLog",
        back_populates="user",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role={self.role})>"
