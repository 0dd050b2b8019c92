"""Income backfill - reconciliation of approved payments without income.

Orchestrates the sweep:
1. Scan APPROVED payments with no linked income
2. Validate every candidate (approved_at, approved_by, approver exists);
   any failure aborts the whole run before a single write
3. In one bounded transaction, re-check each payment for an existing income
   right before inserting (the scan and the write are not atomic)
4. Commit, or roll back everything on timeout/error

Safe to run repeatedly: a second run finds nothing to do.
"""

import logging
import time
from dataclasses import dataclass, field

from sqlalchemy import select, text
from sqlalchemy.orm import Session

from src.models.income import Income
from src.models.payment import Payment, PaymentStatus
from src.models.user import User
from src.services.errors import BackfillTimeoutError, BackfillValidationError
from src.services.income_service import IncomeService
from src.services.locale_service import format_amount
from src.services.system_config_service import SystemConfigService


@dataclass
class BackfillResult:
    """Result of a backfill run."""

    candidates: int = 0
    """Approved payments found without income"""

    created: int = 0
    """Income rows created"""

    skipped: int = 0
    """Payments skipped because income appeared between scan and write"""

    excluded: int = 0
    """Payments skipped because they cover an excluded income period"""

    dry_run: bool = False
    """True if nothing was written"""

    planned: list[str] = field(default_factory=list)
    """Preview lines of the intended writes"""

    def __str__(self) -> str:
        if self.dry_run:
            return f"DRY RUN: {self.candidates} payment(s) would be processed, no changes made"
        return (
            f"Backfill completed\n"
            f"  Total processed: {self.candidates}\n"
            f"  Created: {self.created}\n"
            f"  Skipped: {self.skipped}\n"
            f"  Excluded: {self.excluded}"
        )


class IncomeBackfillService:
    """Create missing income rows for historical approved payments."""

    def __init__(
        self,
        session: Session,
        logger: logging.Logger | None = None,
        timeout_seconds: float = 30.0,
    ):
        """
        Initialize backfill service.

        Args:
            session: SQLAlchemy database session
            logger: Optional logger instance (creates if not provided)
            timeout_seconds: Upper bound for the write transaction
        """
        self.session = session
        self.logger = logger or logging.getLogger("ipl.backfill")
        self.timeout_seconds = timeout_seconds
        self.income_service = IncomeService(session)

    def find_candidates(self) -> list[Payment]:
        """Approved payments with no linked income, oldest approval first."""
        return list(
            self.session.execute(
                select(Payment)
                .outerjoin(Income, Income.payment_id == Payment.id)
                .where(Payment.status == PaymentStatus.APPROVED, Income.id.is_(None))
                .order_by(Payment.approved_at.asc(), Payment.id.asc())
            ).scalars()
        )

    def validate(self, candidates: list[Payment]) -> list[tuple[int, str]]:
        """Return (payment_id, problem) pairs; empty means all candidates are valid."""
        issues = []
        for payment in candidates:
            if payment.approved_at is None:
                issues.append((payment.id, "Missing approved_at"))
            if payment.approved_by is None:
                issues.append((payment.id, "Missing approved_by"))
            elif self.session.get(User, payment.approved_by) is None:
                issues.append((payment.id, "Approver user not found"))
        return issues

    def _describe(self, index: int, payment: Payment) -> str:
        return (
            f"{index}. Payment #{payment.id} user={payment.user.name} house={payment.house.label} "
            f"amount={format_amount(payment.total_amount)} approved={payment.approved_at.date().isoformat()}"
        )

    def _apply_statement_timeout(self) -> None:
        # PostgreSQL enforces the bound server-side as well
        if self.session.get_bind().dialect.name == "postgresql":
            self.session.execute(
                text(f"SET LOCAL statement_timeout = {int(self.timeout_seconds * 1000)}")
            )

    def run(self, dry_run: bool = False) -> BackfillResult:
        """
        Execute the backfill.

        Args:
            dry_run: Scan, validate and preview without writing

        Returns:
            BackfillResult with counts

        Raises:
            BackfillValidationError: Any candidate is invalid (nothing written)
            BackfillTimeoutError: Time budget exceeded (transaction rolled back)
        """
        self.logger.info("Scanning for approved payments without income records...")
        candidates = self.find_candidates()
        result = BackfillResult(candidates=len(candidates), dry_run=dry_run)

        if not candidates:
            self.logger.info("No payments need backfill. All approved payments have income.")
            self.session.rollback()
            return result

        issues = self.validate(candidates)
        if issues:
            for payment_id, problem in issues:
                self.logger.error(f"Payment {payment_id}: {problem}")
            self.session.rollback()
            raise BackfillValidationError(issues)

        result.planned = [self._describe(i, p) for i, p in enumerate(candidates, start=1)]
        self.logger.info(f"Found {len(candidates)} approved payment(s) without income:")
        for line in result.planned:
            self.logger.info(line)

        if dry_run:
            self.logger.info("DRY RUN: No changes made.")
            self.session.rollback()
            return result

        excluded_periods = SystemConfigService(self.session).get_excluded_income_periods()
        deadline = time.monotonic() + self.timeout_seconds
        try:
            self._apply_statement_timeout()
            for payment in candidates:
                if time.monotonic() > deadline:
                    raise BackfillTimeoutError(
                        f"Backfill exceeded {self.timeout_seconds}s; rolled back"
                    )
                # Re-check right before insert: the scan above was not atomic with this write
                if self.income_service.get_for_payment(payment.id) is not None:
                    self.logger.info(f"Skipped payment #{payment.id} (income already exists)")
                    result.skipped += 1
                    continue

                derivation = self.income_service.derive_for_payment(payment, excluded_periods)
                if derivation.excluded:
                    result.excluded += 1
                elif derivation.created:
                    result.created += 1
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        self.logger.info(str(result))
        return result


__all__ = ["IncomeBackfillService", "BackfillResult"]
