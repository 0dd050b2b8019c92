"""Payment ledger service: month allocation and the approval workflow.

Provides methods for:
- Creating payments (resident submission, admin on behalf of a resident, bulk)
- Approving (single/bulk) and rejecting payments (PENDING -> APPROVED/REJECTED)
- Deleting payments (administrative cleanup)
- Month queries (occupied / available months) and reporting helpers

Single operations run in one transaction each. Bulk operations are NOT atomic:
every house or payment id is its own transaction and the result is a BatchReport
listing what succeeded and what failed.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.config.settings import get_settings
from src.models.house import House
from src.models.payment import Payment, PaymentMonth, PaymentStatus
from src.models.user import User
from src.services.errors import (
    ConflictError,
    HouseOwnershipError,
    IllegalStateError,
    LedgerError,
    NotFoundError,
    UploadWindowClosedError,
    ValidationError,
)
from src.services.income_service import IncomeService
from src.services.locale_service import format_month_list, format_payment_month
from src.services.month_calculator import (
    YearMonth,
    compute_covered_months,
    compute_next_start_month,
)
from src.services.overlap_guard import find_collisions, load_occupied_months
from src.services.system_config_service import (
    SystemConfigService,
    is_within_upload_window,
    validate_period,
)

logger = logging.getLogger(__name__)


@dataclass
class ItemOutcome:
    """Result for one element of a bulk operation."""

    key: int
    """House id (bulk create) or payment id (bulk approve)."""

    payment: Payment | None = None
    error: LedgerError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BatchReport:
    """Aggregated per-item outcomes of a bulk operation."""

    key_name: str
    outcomes: list[ItemOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> list[Payment]:
        return [o.payment for o in self.outcomes if o.ok]

    @property
    def errors(self) -> list[dict[str, Any]]:
        return [
            {self.key_name: o.key, "code": o.error.code, "reason": o.error.message}
            for o in self.outcomes
            if not o.ok
        ]

    def __str__(self) -> str:
        return f"{len(self.succeeded)} succeeded, {len(self.errors)} failed"


@dataclass
class PaymentStats:
    """Counts per status and approved revenue."""

    total: int
    pending: int
    approved: int
    rejected: int
    total_revenue: Decimal


@dataclass
class HousePaymentStatus:
    """An occupied house and its payment status for one month (None = unpaid)."""

    house: House
    status: PaymentStatus | None


class PaymentService:
    """Core ledger operations."""

    def __init__(self, db: Session):
        """Initialize payment service.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db
        self.config_service = SystemConfigService(db)
        self.income_service = IncomeService(db)

    # Lookups

    def _get_user(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def _require_admin(self, admin_id: int) -> User:
        admin = self.db.get(User, admin_id)
        if admin is None or not admin.is_admin:
            logger.warning(f"Approver/administrator {admin_id} not found")
            raise NotFoundError("Administrator", admin_id)
        return admin

    def _get_house(self, house_id: int) -> House:
        house = self.db.get(House, house_id)
        if house is None:
            raise NotFoundError("House", house_id)
        return house

    def _get_payment(self, payment_id: int) -> Payment:
        payment = self.db.get(Payment, payment_id)
        if payment is None:
            raise NotFoundError("Payment", payment_id)
        return payment

    def get_payment(self, payment_id: int) -> Optional[Payment]:
        """Get payment by ID, or None if not found."""
        return self.db.get(Payment, payment_id)

    def list_payments(
        self, status: PaymentStatus | None = None, user_id: int | None = None
    ) -> list[Payment]:
        """List payments newest first, optionally filtered by status and resident."""
        query = select(Payment)
        if status is not None:
            query = query.where(Payment.status == status)
        if user_id is not None:
            query = query.where(Payment.user_id == user_id)
        return list(self.db.execute(query.order_by(Payment.created_at.desc(), Payment.id.desc())).scalars())

    # Validation

    @staticmethod
    def _validate_amount_months(amount_months: Any) -> int:
        max_months = get_settings().max_amount_months
        if (
            not isinstance(amount_months, int)
            or isinstance(amount_months, bool)
            or not 1 <= amount_months <= max_months
        ):
            raise ValidationError(
                f"amount_months must be between 1 and {max_months}", field="amount_months"
            )
        return amount_months

    @staticmethod
    def _validate_proof_ref(proof_ref: str | None) -> str:
        if not proof_ref or not proof_ref.strip():
            raise ValidationError("Proof of payment is required", field="proof_ref")
        return proof_ref

    def _check_upload_window(self, today: date | None) -> None:
        config = self.config_service.get_cached_upload_window_config()
        result = is_within_upload_window(config, today)
        if not result.allowed:
            raise UploadWindowClosedError(result.reason, field="date")

    # Month queries

    def get_occupied_months(self, house_id: int) -> list[YearMonth]:
        """Months claimed for a house by PENDING or APPROVED payments, ascending."""
        self._get_house(house_id)
        return sorted(load_occupied_months(self.db, house_id))

    def get_available_months(
        self, house_id: int, count: int = 12, today: date | None = None
    ) -> list[dict[str, Any]]:
        """Next ``count`` unclaimed months starting at the next free month.

        Returns:
            List of {"label": "Maret 2026", "value": {"year": 2026, "month": 3}}
        """
        if count < 1:
            raise ValidationError("count must be positive", field="count")
        occupied = set(self.get_occupied_months(house_id))
        current = compute_next_start_month(occupied, today)
        available = []
        while len(available) < count:
            if current not in occupied:
                available.append(
                    {
                        "label": format_payment_month(current.year, current.month),
                        "value": {"year": current.year, "month": current.month},
                    }
                )
            current = current.next()
        return available

    # Creation

    def _new_payment(
        self,
        user_id: int,
        house: House,
        months: list[YearMonth],
        proof_ref: str | None,
    ) -> Payment:
        # Server-side price calculation, never trusts client totals
        total_amount = Decimal(house.monthly_rate) * len(months)
        payment = Payment(
            user_id=user_id,
            house_id=house.id,
            amount_months=len(months),
            total_amount=total_amount,
            status=PaymentStatus.PENDING,
            proof_ref=proof_ref,
        )
        payment.months = [
            PaymentMonth(house_id=house.id, year=m.year, month=m.month, is_active=True)
            for m in months
        ]
        self.db.add(payment)
        return payment

    def _allocate_and_create(
        self,
        user_id: int,
        house: House,
        amount_months: int,
        proof_ref: str,
        today: date | None,
    ) -> Payment:
        """Allocate months from the next free month and persist the payment.

        A uniqueness violation from a concurrent submission triggers exactly one
        retry with freshly computed months before it surfaces as ConflictError.
        """
        house_id = house.id
        for attempt in (1, 2):
            occupied = load_occupied_months(self.db, house_id)
            start = compute_next_start_month(occupied, today)
            covered = compute_covered_months(start, amount_months)

            collisions = find_collisions(occupied, covered)
            if collisions:
                self.db.rollback()
                logger.warning(f"Month conflict for house {house_id}: {collisions}")
                raise ConflictError(
                    "The following months already have a pending or approved payment: "
                    f"{format_month_list(collisions)}",
                    months=collisions,
                )

            payment = self._new_payment(user_id, house, covered, proof_ref)
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                if attempt == 1:
                    logger.warning(
                        f"Concurrent claim on house {house_id} months {covered}; retrying once"
                    )
                    continue
                raise ConflictError(
                    "Months were claimed by a concurrent submission: "
                    f"{format_month_list(covered)}",
                    months=covered,
                )

            logger.info(
                f"Created payment {payment.id}: house_id={house_id} user_id={user_id} "
                f"months={covered} total={payment.total_amount}"
            )
            self.db.refresh(payment)
            return payment

    def submit_payment(
        self,
        resident_id: int,
        house_id: int,
        amount_months: int,
        proof_ref: str,
        today: date | None = None,
    ) -> Payment:
        """Resident-submitted payment (status PENDING).

        Raises:
            ValidationError: amount_months out of range or missing proof
            HouseOwnershipError: house is not assigned to the resident
            UploadWindowClosedError: submitted outside the upload window (non-admins)
            ConflictError: covered months collide with a live payment
            NotFoundError: resident or house does not exist
        """
        amount_months = self._validate_amount_months(amount_months)
        proof_ref = self._validate_proof_ref(proof_ref)
        resident = self._get_user(resident_id)
        house = self._get_house(house_id)
        if house.user_id != resident.id:
            raise HouseOwnershipError("House does not belong to you", field="house_id")
        if not resident.is_admin:
            self._check_upload_window(today)
        return self._allocate_and_create(resident.id, house, amount_months, proof_ref, today)

    def admin_create_payment(
        self,
        admin_id: int,
        resident_id: int,
        house_id: int,
        amount_months: int,
        proof_ref: str,
        today: date | None = None,
    ) -> Payment:
        """Administrator creates a PENDING payment for a resident; no upload window check."""
        self._require_admin(admin_id)
        amount_months = self._validate_amount_months(amount_months)
        proof_ref = self._validate_proof_ref(proof_ref)
        resident = self._get_user(resident_id)
        house = self._get_house(house_id)
        if house.user_id != resident.id:
            raise HouseOwnershipError(
                "House does not belong to the specified user", field="house_id"
            )
        logger.info(f"Admin {admin_id} creating payment for user {resident_id} house {house_id}")
        return self._allocate_and_create(resident.id, house, amount_months, proof_ref, today)

    def _bulk_create_for_house(
        self,
        house_id: int,
        months: list[YearMonth],
        admin: User,
        excluded_periods: frozenset[YearMonth],
        now: datetime,
    ) -> Payment:
        house = self._get_house(house_id)
        if house.user_id is None:
            raise ValidationError(f"House {house.label} has no resident", field="house_ids")

        collisions = find_collisions(load_occupied_months(self.db, house_id), months)
        if collisions:
            raise ConflictError(
                f"House {house.label} already has payments for: {format_month_list(collisions)}",
                months=collisions,
            )

        payment = self._new_payment(house.user_id, house, months, proof_ref=None)
        payment.status = PaymentStatus.APPROVED
        payment.approved_by = admin.id
        payment.approved_at = now
        self.db.flush()
        self.income_service.derive_for_payment(payment, excluded_periods, now, admin.id)
        return payment

    def bulk_create_payments(
        self,
        house_ids: list[int],
        target_months: list[dict[str, Any]],
        admin_id: int,
    ) -> BatchReport:
        """Book explicit months for many houses; one transaction per house.

        A house is skipped entirely if any target month is already claimed.
        Bulk bookings are administrator-confirmed, so they are created APPROVED
        with income derived in the same per-house transaction.

        Raises:
            ValidationError: empty inputs or malformed months (whole call)
            NotFoundError: administrator does not exist (whole call)
        """
        if not house_ids:
            raise ValidationError("house_ids must be a non-empty list", field="house_ids")
        if not target_months:
            raise ValidationError("months must be a non-empty list", field="months")
        months = sorted({validate_period(m.get("year"), m.get("month")) for m in target_months})
        admin = self._require_admin(admin_id)
        excluded = self.config_service.get_cached_excluded_income_periods()

        report = BatchReport(key_name="house_id")
        for house_id in dict.fromkeys(house_ids):
            now = datetime.now(timezone.utc)
            try:
                payment = self._bulk_create_for_house(house_id, months, admin, excluded, now)
                self.db.commit()
                report.outcomes.append(ItemOutcome(key=house_id, payment=payment))
                logger.info(f"Bulk-created payment {payment.id} for house {house_id}: {months}")
            except LedgerError as e:
                self.db.rollback()
                logger.warning(f"Bulk create skipped house {house_id}: {e.message}")
                report.outcomes.append(ItemOutcome(key=house_id, error=e))
            except IntegrityError:
                self.db.rollback()
                error = ConflictError(
                    f"Months for house {house_id} were claimed concurrently", months=months
                )
                logger.warning(error.message)
                report.outcomes.append(ItemOutcome(key=house_id, error=error))
        logger.info(f"Bulk create by admin {admin_id}: {report}")
        return report

    # Approval workflow

    def _approve_one(
        self,
        payment_id: int,
        admin: User,
        excluded_periods: frozenset[YearMonth],
    ) -> Payment:
        payment = self._get_payment(payment_id)
        if payment.status != PaymentStatus.PENDING:
            raise IllegalStateError(
                f"Payment already {payment.status.value.lower()}", status=payment.status.value
            )

        now = datetime.now(timezone.utc)
        # Compare-and-set so two concurrent approvals cannot both win
        result = self.db.execute(
            update(Payment)
            .where(Payment.id == payment_id, Payment.status == PaymentStatus.PENDING)
            .values(status=PaymentStatus.APPROVED, approved_by=admin.id, approved_at=now)
        )
        if result.rowcount != 1:
            raise IllegalStateError("Payment was decided concurrently")
        self.db.refresh(payment)

        self.income_service.derive_for_payment(payment, excluded_periods, now, admin.id)
        return payment

    def approve_payment(self, payment_id: int, admin_id: int) -> Payment:
        """Approve a PENDING payment and derive its income in one transaction.

        Raises:
            NotFoundError: payment or approver does not exist
            IllegalStateError: payment is not PENDING
        """
        admin = self._require_admin(admin_id)
        excluded = self.config_service.get_cached_excluded_income_periods()
        try:
            payment = self._approve_one(payment_id, admin, excluded)
            self.db.commit()
        except LedgerError:
            self.db.rollback()
            raise
        except IntegrityError:
            self.db.rollback()
            # Income for this payment was written by someone else; accept if it is approved
            payment = self._get_payment(payment_id)
            if payment.status == PaymentStatus.APPROVED and payment.income is not None:
                logger.info(f"Payment {payment_id} already approved with income; treating as success")
                return payment
            raise ConflictError(f"Income for payment {payment_id} could not be recorded")

        logger.info(f"Payment {payment_id} approved by admin {admin_id}")
        self.db.refresh(payment)
        return payment

    def bulk_approve_payments(self, payment_ids: list[int], admin_id: int) -> BatchReport:
        """Approve many payments; each id is its own transaction.

        Raises:
            ValidationError: empty id list (whole call)
            NotFoundError: approver does not exist (whole call)
        """
        if not payment_ids:
            raise ValidationError("payment_ids must be a non-empty list", field="payment_ids")
        admin = self._require_admin(admin_id)
        excluded = self.config_service.get_cached_excluded_income_periods()

        report = BatchReport(key_name="payment_id")
        for payment_id in dict.fromkeys(payment_ids):
            try:
                payment = self._approve_one(payment_id, admin, excluded)
                self.db.commit()
                report.outcomes.append(ItemOutcome(key=payment_id, payment=payment))
            except LedgerError as e:
                self.db.rollback()
                logger.warning(f"Bulk approve skipped payment {payment_id}: {e.message}")
                report.outcomes.append(ItemOutcome(key=payment_id, error=e))
            except IntegrityError:
                self.db.rollback()
                error = ConflictError(f"Income for payment {payment_id} already exists")
                logger.warning(error.message)
                report.outcomes.append(ItemOutcome(key=payment_id, error=error))
        logger.info(f"Bulk approve by admin {admin_id}: {report}")
        return report

    def reject_payment(self, payment_id: int, rejection_note: str) -> Payment:
        """Reject a PENDING payment and release its months.

        Raises:
            ValidationError: empty rejection note
            NotFoundError: payment does not exist
            IllegalStateError: payment is not PENDING
        """
        if not rejection_note or not rejection_note.strip():
            raise ValidationError("Rejection note is required", field="rejection_note")

        payment = self._get_payment(payment_id)
        if payment.status != PaymentStatus.PENDING:
            raise IllegalStateError(
                f"Payment already {payment.status.value.lower()}", status=payment.status.value
            )

        result = self.db.execute(
            update(Payment)
            .where(Payment.id == payment_id, Payment.status == PaymentStatus.PENDING)
            .values(status=PaymentStatus.REJECTED, rejection_note=rejection_note.strip())
        )
        if result.rowcount != 1:
            self.db.rollback()
            raise IllegalStateError("Payment was decided concurrently")
        self.db.execute(
            update(PaymentMonth)
            .where(PaymentMonth.payment_id == payment_id)
            .values(is_active=False)
        )
        self.db.commit()
        self.db.refresh(payment)
        logger.info(f"Payment {payment_id} rejected; months {payment.covered_months} released")
        return payment

    def delete_payment(self, payment_id: int) -> None:
        """Delete a payment and its months; any derived income is kept (link cleared)."""
        payment = self._get_payment(payment_id)
        self.db.delete(payment)
        self.db.commit()
        logger.info(f"Payment {payment_id} deleted")

    # Reporting helpers

    def get_payment_stats(self) -> PaymentStats:
        counts = dict(
            self.db.execute(select(Payment.status, func.count(Payment.id)).group_by(Payment.status)).all()
        )
        revenue = self.db.execute(
            select(func.coalesce(func.sum(Payment.total_amount), 0)).where(
                Payment.status == PaymentStatus.APPROVED
            )
        ).scalar_one()
        return PaymentStats(
            total=sum(counts.values()),
            pending=counts.get(PaymentStatus.PENDING, 0),
            approved=counts.get(PaymentStatus.APPROVED, 0),
            rejected=counts.get(PaymentStatus.REJECTED, 0),
            total_revenue=Decimal(revenue),
        )

    def _occupied_houses(self) -> list[House]:
        return list(
            self.db.execute(
                select(House).where(House.user_id.is_not(None)).order_by(House.block, House.house_number)
            ).scalars()
        )

    def get_house_payment_status_for_month(self, year: int, month: int) -> list[HousePaymentStatus]:
        """Every occupied house with APPROVED / PENDING / None for the month.

        If a house somehow has both, APPROVED wins.
        """
        period = validate_period(year, month)
        rows = self.db.execute(
            select(Payment.house_id, Payment.status)
            .join(PaymentMonth, PaymentMonth.payment_id == Payment.id)
            .where(
                PaymentMonth.year == period.year,
                PaymentMonth.month == period.month,
                PaymentMonth.is_active.is_(True),
            )
        ).all()
        status_map: dict[int, PaymentStatus] = {}
        for house_id, status in rows:
            if status_map.get(house_id) != PaymentStatus.APPROVED:
                status_map[house_id] = status
        return [HousePaymentStatus(house=h, status=status_map.get(h.id)) for h in self._occupied_houses()]

    def get_unpaid_houses_this_month(self, today: date | None = None) -> list[House]:
        """Occupied houses with no pending or approved payment for the current month."""
        current = YearMonth.from_date(today or date.today())
        return [
            entry.house
            for entry in self.get_house_payment_status_for_month(current.year, current.month)
            if entry.status is None
        ]


__all__ = [
    "PaymentService",
    "BatchReport",
    "ItemOutcome",
    "PaymentStats",
    "HousePaymentStatus",
]
