"""
Deduction rule model.
"""

from decimal import Decimal

from sqlalchemy import Boolean, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from salesdesk.models.base import BaseModel


class Deduction(BaseModel):
    """
    Organisation-level percentage deduction.

    Active rules are applied in (position, created_at, id) order and are
    copied into Conversion.deductions_applied at approval, so editing a rule
    never changes an approved commission.
    """

    __tablename__ = "deductions"

    label: Mapped[str] = mapped_column(String(100), nullable=False)
    percentage: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        nullable=False,
    )
    applies_before_commission: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        comment="True: reduces the revenue base; False: reduces the commission",
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    created_by: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Deduction(id={self.id}, label='{self.label}', percentage={self.percentage})>"
