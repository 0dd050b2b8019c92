"""Income derivation for approved payments.

Creates at most one Income per payment. Runs inside the caller's transaction
(never commits) so an approval and its income are persisted together.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.models.income import Income, IncomeCategory
from src.models.payment import Payment
from src.services.month_calculator import YearMonth
from src.services.system_config_service import is_excluded

logger = logging.getLogger(__name__)


@dataclass
class IncomeDerivation:
    """Result of deriving income for one payment."""

    income: Income | None
    """Linked income (new or pre-existing); None when excluded."""

    created: bool = False
    """True if a new income row was added in this call."""

    excluded_months: tuple[YearMonth, ...] = ()
    """Covered months that matched an excluded period (non-empty means skipped)."""

    @property
    def excluded(self) -> bool:
        return bool(self.excluded_months)


def build_income_description(payment: Payment) -> str:
    """'IPL Payment - <resident> - <house> - <N> bulan'."""
    return (
        f"IPL Payment - {payment.user.name} - {payment.house.label} - "
        f"{payment.amount_months} bulan"
    )


class IncomeService:
    """Derive accounting income from approved payments."""

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db

    def get_for_payment(self, payment_id: int) -> Income | None:
        return self.db.execute(
            select(Income).where(Income.payment_id == payment_id)
        ).scalar_one_or_none()

    def derive_for_payment(
        self,
        payment: Payment,
        excluded_periods: Iterable,
        approved_at: datetime | None = None,
        created_by: int | None = None,
    ) -> IncomeDerivation:
        """Create the income for an approved payment unless policy excludes it.

        Income already linked to the payment counts as success (idempotent retry).
        The new row is flushed, not committed, so a uniqueness violation on
        payment_id surfaces inside the caller's transaction.

        Args:
            payment: Payment being approved (status already APPROVED)
            excluded_periods: Months for which no income is booked (pairs, YearMonth or dicts)
            approved_at: Income date (defaults to payment.approved_at)
            created_by: Approver id (defaults to payment.approved_by)

        Returns:
            IncomeDerivation describing what happened
        """
        excluded_hits = tuple(
            sorted(YearMonth(m.year, m.month) for m in payment.months
                   if is_excluded(excluded_periods, m.year, m.month))
        )
        if excluded_hits:
            logger.info(
                f"Income skipped for payment {payment.id}: covers excluded period(s) {list(excluded_hits)}"
            )
            return IncomeDerivation(income=None, excluded_months=excluded_hits)

        existing = self.get_for_payment(payment.id)
        if existing is not None:
            logger.info(f"Income {existing.id} already linked to payment {payment.id}; nothing to do")
            return IncomeDerivation(income=existing)

        income = Income(
            date=approved_at or payment.approved_at,
            category=IncomeCategory.MONTHLY_FEES,
            amount=payment.total_amount,
            description=build_income_description(payment),
            notes=f"Auto-generated from payment #{payment.id}",
            created_by=created_by if created_by is not None else payment.approved_by,
            payment_id=payment.id,
        )
        self.db.add(income)
        self.db.flush()
        logger.info(f"Created income {income.id} for payment {payment.id}: amount={income.amount}")
        return IncomeDerivation(income=income, created=True)


__all__ = ["IncomeService", "IncomeDerivation", "build_income_description"]
