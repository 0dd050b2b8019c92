"""Income ORM model - realized revenue records."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Index, Numeric, String, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models import Base, BaseModel


class IncomeCategory(str, Enum):
    """Accounting category of an income record."""

    MONTHLY_FEES = "MONTHLY_FEES"
    DONATION = "DONATION"
    OTHER = "OTHER"


class Income(Base, BaseModel):
    """Realized revenue.

    Attributes:
        date: When the revenue was realized (approval timestamp for payment-derived rows)
        category: Accounting category
        amount: Amount in currency units
        description: Human-readable summary
        payment_id: Originating payment; unique, so a payment yields at most one income.
            Set to NULL if the payment is later deleted; the income itself is kept.
    """

    __tablename__ = "incomes"

    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    category: Mapped[IncomeCategory] = mapped_column(
        SQLEnum(IncomeCategory),
        nullable=False,
        default=IncomeCategory.MONTHLY_FEES,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    payment_id: Mapped[int | None] = mapped_column(
        ForeignKey("payments.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
    )

    payment: Mapped["Payment | None"] = relationship(  # noqa: F821
        "Payment",
        back_populates="income",
    )

    __table_args__ = (Index("idx_incomes_category_date", "category", "date"),)

    def __repr__(self) -> str:
        return (
            f"<Income(id={self.id}, amount={self.amount}, category={self.category}, "
            f"payment_id={self.payment_id})>"
        )


__all__ = ["Income", "IncomeCategory"]
