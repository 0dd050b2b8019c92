"""Integration tests for bulk create and bulk approve (per-item results)."""

from datetime import date

import pytest
from sqlalchemy import select

from src.models import Income, Payment, PaymentStatus
from src.services.errors import NotFoundError, ValidationError
from src.services.payment_service import PaymentService
from src.services.system_config_service import SystemConfigService

MARCH_5 = date(2026, 3, 5)
MARCH_APRIL = [{"year": 2026, "month": 3}, {"year": 2026, "month": 4}]


class TestBulkApprove:
    """Test bulk approval partial failure."""

    def test_second_of_three_already_rejected(self, db, admin, resident, house):
        """Test the two pending payments are approved and one error names the rejected id."""
        service = PaymentService(db)
        first = service.submit_payment(resident.id, house.id, 1, "p1.jpg", today=MARCH_5)
        second = service.submit_payment(resident.id, house.id, 1, "p2.jpg", today=MARCH_5)
        third = service.submit_payment(resident.id, house.id, 1, "p3.jpg", today=MARCH_5)
        service.reject_payment(second.id, "Duplikat")

        report = service.bulk_approve_payments([first.id, second.id, third.id], admin.id)

        assert [p.id for p in report.succeeded] == [first.id, third.id]
        assert len(report.errors) == 1
        assert report.errors[0]["payment_id"] == second.id
        assert report.errors[0]["code"] == "illegal_state"
        assert db.get(Payment, first.id).status == PaymentStatus.APPROVED
        assert db.get(Payment, third.id).status == PaymentStatus.APPROVED
        assert len(list(db.execute(select(Income)).scalars())) == 2

    def test_unknown_id_reported_not_raised(self, db, admin, resident, house):
        service = PaymentService(db)
        payment = service.submit_payment(resident.id, house.id, 1, "p1.jpg", today=MARCH_5)

        report = service.bulk_approve_payments([404, payment.id], admin.id)

        assert [p.id for p in report.succeeded] == [payment.id]
        assert report.errors[0]["payment_id"] == 404
        assert report.errors[0]["code"] == "not_found"

    def test_duplicate_ids_processed_once(self, db, admin, resident, house):
        service = PaymentService(db)
        payment = service.submit_payment(resident.id, house.id, 1, "p1.jpg", today=MARCH_5)

        report = service.bulk_approve_payments([payment.id, payment.id], admin.id)

        assert len(report.succeeded) == 1
        assert report.errors == []

    def test_empty_list_rejected(self, db, admin):
        with pytest.raises(ValidationError):
            PaymentService(db).bulk_approve_payments([], admin.id)

    def test_unknown_approver_fails_whole_call(self, db, resident, house):
        service = PaymentService(db)
        payment = service.submit_payment(resident.id, house.id, 1, "p1.jpg", today=MARCH_5)

        with pytest.raises(NotFoundError):
            service.bulk_approve_payments([payment.id], 999)
        assert db.get(Payment, payment.id).status == PaymentStatus.PENDING


class TestBulkCreate:
    """Test administrator bulk booking of explicit months."""

    def test_conflicting_house_skipped_others_created(self, db, admin, resident, house, other_house):
        """Test one house's overlap does not block the rest."""
        service = PaymentService(db)
        service.submit_payment(resident.id, house.id, 1, "p1.jpg", today=MARCH_5)

        report = service.bulk_create_payments([house.id, other_house.id], MARCH_APRIL, admin.id)

        assert len(report.succeeded) == 1
        created = report.succeeded[0]
        assert created.house_id == other_house.id
        assert created.user_id == other_house.user_id
        assert created.status == PaymentStatus.APPROVED
        assert created.approved_by == admin.id
        assert created.covered_months == [(2026, 3), (2026, 4)]
        assert created.total_amount == other_house.monthly_rate * 2

        assert report.errors == [
            {
                "house_id": house.id,
                "code": "month_conflict",
                "reason": report.outcomes[0].error.message,
            }
        ]
        assert "Maret 2026" in report.errors[0]["reason"]

    def test_income_created_for_booked_houses(self, db, admin, house, other_house):
        service = PaymentService(db)

        report = service.bulk_create_payments([house.id, other_house.id], MARCH_APRIL, admin.id)

        incomes = list(db.execute(select(Income)).scalars())
        assert len(report.succeeded) == 2
        assert {i.payment_id for i in incomes} == {p.id for p in report.succeeded}

    def test_excluded_months_book_without_income(self, db, admin, house):
        SystemConfigService(db).set_excluded_income_periods([{"year": 2026, "month": 3}], admin.id)

        report = PaymentService(db).bulk_create_payments([house.id], MARCH_APRIL, admin.id)

        assert len(report.succeeded) == 1
        assert list(db.execute(select(Income)).scalars()) == []

    def test_vacant_and_unknown_houses_reported(self, db, admin, house, vacant_house):
        report = PaymentService(db).bulk_create_payments(
            [vacant_house.id, 8080, house.id], MARCH_APRIL, admin.id
        )

        assert [p.house_id for p in report.succeeded] == [house.id]
        codes = {e["house_id"]: e["code"] for e in report.errors}
        assert codes == {vacant_house.id: "validation_error", 8080: "not_found"}

    def test_duplicate_months_collapsed(self, db, admin, house):
        report = PaymentService(db).bulk_create_payments(
            [house.id], MARCH_APRIL + [{"year": 2026, "month": 3}], admin.id
        )

        assert report.succeeded[0].amount_months == 2

    def test_non_contiguous_months(self, db, admin, house):
        """Test explicit targets need not be consecutive."""
        months = [{"year": 2026, "month": 1}, {"year": 2026, "month": 6}]

        report = PaymentService(db).bulk_create_payments([house.id], months, admin.id)

        assert report.succeeded[0].covered_months == [(2026, 1), (2026, 6)]

    @pytest.mark.parametrize(
        "house_ids,months",
        [
            ([], MARCH_APRIL),
            ([1], []),
            ([1], [{"year": 2026, "month": 13}]),
            ([1], [{"year": 1990, "month": 1}]),
        ],
    )
    def test_invalid_input_fails_whole_call(self, db, admin, house_ids, months):
        with pytest.raises(ValidationError):
            PaymentService(db).bulk_create_payments(house_ids, months, admin.id)

    def test_requires_administrator(self, db, resident, house):
        with pytest.raises(NotFoundError):
            PaymentService(db).bulk_create_payments([house.id], MARCH_APRIL, resident.id)


class TestReporting:
    """Test stats and house status queries."""

    def test_payment_stats(self, db, admin, resident, house, other_house):
        service = PaymentService(db)
        approved = service.submit_payment(resident.id, house.id, 2, "p1.jpg", today=MARCH_5)
        rejected = service.submit_payment(resident.id, house.id, 1, "p2.jpg", today=MARCH_5)
        service.submit_payment(other_house.user_id, other_house.id, 1, "p3.jpg", today=MARCH_5)
        service.approve_payment(approved.id, admin.id)
        service.reject_payment(rejected.id, "Salah rumah")

        stats = service.get_payment_stats()

        assert (stats.total, stats.pending, stats.approved, stats.rejected) == (3, 1, 1, 1)
        assert stats.total_revenue == approved.total_amount

    def test_house_status_for_month(self, db, admin, resident, house, other_house, vacant_house):
        """Test occupied houses are annotated; vacant houses are left out."""
        service = PaymentService(db)
        payment = service.submit_payment(resident.id, house.id, 1, "p1.jpg", today=MARCH_5)
        service.approve_payment(payment.id, admin.id)

        entries = service.get_house_payment_status_for_month(2026, 3)

        assert [(e.house.id, e.status) for e in entries] == [
            (house.id, PaymentStatus.APPROVED),
            (other_house.id, None),
        ]

    def test_unpaid_this_month(self, db, resident, house, other_house):
        service = PaymentService(db)
        service.submit_payment(resident.id, house.id, 1, "p1.jpg", today=MARCH_5)

        unpaid = service.get_unpaid_houses_this_month(today=MARCH_5)

        assert [h.id for h in unpaid] == [other_house.id]

    def test_list_payments_filters(self, db, admin, resident, house, other_house):
        service = PaymentService(db)
        mine = service.submit_payment(resident.id, house.id, 1, "p1.jpg", today=MARCH_5)
        theirs = service.submit_payment(other_house.user_id, other_house.id, 1, "p2.jpg", today=MARCH_5)
        service.approve_payment(theirs.id, admin.id)

        assert [p.id for p in service.list_payments(user_id=resident.id)] == [mine.id]
        assert [p.id for p in service.list_payments(status=PaymentStatus.APPROVED)] == [theirs.id]
        assert [p.id for p in service.list_payments()] == [theirs.id, mine.id]
