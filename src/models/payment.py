"""Payment and PaymentMonth ORM models (the month ledger)."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models import Base, BaseModel


class PaymentStatus(str, Enum):
    """Approval state of a payment. APPROVED and REJECTED are terminal."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class Payment(Base, BaseModel):
    """One submission covering a block of months for a house.

    total_amount is always computed server-side as house rate x amount_months.
    """

    __tablename__ = "payments"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
        comment="Resident the payment belongs to",
    )
    house_id: Mapped[int] = mapped_column(
        ForeignKey("houses.id"),
        nullable=False,
        index=True,
    )
    amount_months: Mapped[int] = mapped_column(Integer, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(PaymentStatus),
        nullable=False,
        default=PaymentStatus.PENDING,
        index=True,
    )
    proof_ref: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
        comment="Storage reference of the uploaded proof of payment",
    )
    rejection_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    approved_by: Mapped[int | None] = mapped_column(
        ForeignKey("users.id"),
        nullable=True,
    )
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Relationships
    user: Mapped["User"] = relationship(  # noqa: F821
        "User",
        back_populates="payments",
        foreign_keys=[user_id],
    )
    approver: Mapped["User | None"] = relationship(  # noqa: F821
        "User",
        foreign_keys=[approved_by],
    )
    house: Mapped["House"] = relationship("House")  # noqa: F821
    months: Mapped[list["PaymentMonth"]] = relationship(
        "PaymentMonth",
        back_populates="payment",
        cascade="all, delete-orphan",
        order_by=lambda: (PaymentMonth.year, PaymentMonth.month),
    )
    income: Mapped["Income | None"] = relationship(  # noqa: F821
        "Income",
        back_populates="payment",
        uselist=False,
    )

    __table_args__ = (
        Index("idx_payments_house_status", "house_id", "status"),
        Index("idx_payments_user_status", "user_id", "status"),
    )

    @property
    def covered_months(self) -> list[tuple[int, int]]:
        return [(m.year, m.month) for m in self.months]

    def __repr__(self) -> str:
        return (
            f"<Payment(id={self.id}, house_id={self.house_id}, amount_months={self.amount_months}, "
            f"total_amount={self.total_amount}, status={self.status})>"
        )


class PaymentMonth(Base, BaseModel):
    """One calendar month claimed by a payment.

    house_id is copied from the parent payment and is_active mirrors "parent is not
    REJECTED" so the partial unique index below can enforce that no two live
    payments claim the same (house, year, month).
    """

    __tablename__ = "payment_months"

    payment_id: Mapped[int] = mapped_column(
        ForeignKey("payments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    house_id: Mapped[int] = mapped_column(
        ForeignKey("houses.id"),
        nullable=False,
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False, comment="1-based month")
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="False once the parent payment is rejected",
    )

    payment: Mapped["Payment"] = relationship("Payment", back_populates="months")

    __table_args__ = (
        Index(
            "uq_payment_months_house_period_active",
            "house_id",
            "year",
            "month",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
        Index("idx_payment_months_period", "year", "month"),
    )

    def __repr__(self) -> str:
        return (
            f"<PaymentMonth(payment_id={self.payment_id}, house_id={self.house_id}, "
            f"year={self.year}, month={self.month}, is_active={self.is_active})>"
        )


__all__ = ["Payment", "PaymentMonth", "PaymentStatus"]
