"""
Goal model: a period-scoped activity counter.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import Date, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from salesdesk.models.base import BaseModel


class Goal(BaseModel):
    """
    Target for a user over [period_start, period_end].

    current_value only grows; it is bumped by completed activity.
    """

    __tablename__ = "goals"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    goal_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
        comment="visits, leads, conversions, revenue",
    )
    target_value: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    current_value: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        default=Decimal("0"),
        nullable=False,
    )
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    currency: Mapped[Optional[str]] = mapped_column(String(3), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<Goal(id={self.id}, user_id={self.user_id}, type='{self.goal_type}', "
            f"{self.current_value}/{self.target_value})>"
        )
