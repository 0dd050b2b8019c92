"""Integration tests: sessions from the shared session factory keep separate transactions."""

from datetime import date

from sqlalchemy import select
from sqlalchemy.pool import StaticPool

from src.models import Income, Payment, PaymentStatus, User
from src.services import SessionLocal, engine
from src.services.payment_service import PaymentService

MARCH_5 = date(2026, 3, 5)


class TestSessionIsolation:
    """Test one request's rollback never touches another request's work."""

    def test_file_database_uses_connection_pool(self):
        assert not isinstance(engine.pool, StaticPool)

    def test_rollback_in_other_session_keeps_approval(self, db, admin, resident, house):
        """Test an approval survives a conflicting bulk create rolled back in parallel."""
        payment_id = PaymentService(db).submit_payment(
            resident.id, house.id, 1, "proof.jpg", today=MARCH_5
        ).id
        admin_id, house_id = admin.id, house.id

        approving = SessionLocal()
        booking = SessionLocal()
        try:
            # Approval flushed but not yet committed
            PaymentService(approving)._approve_one(
                payment_id, approving.get(User, admin_id), frozenset()
            )

            report = PaymentService(booking).bulk_create_payments(
                [house_id], [{"year": 2026, "month": 3}], admin_id
            )
            assert report.outcomes[0].error is not None
            assert report.outcomes[0].error.code == "month_conflict"

            approving.commit()
        finally:
            booking.close()
            approving.close()

        with SessionLocal() as fresh:
            persisted = fresh.get(Payment, payment_id)
            incomes = list(
                fresh.execute(select(Income).where(Income.payment_id == payment_id)).scalars()
            )

        assert persisted.status == PaymentStatus.APPROVED
        assert persisted.approved_by == admin_id
        assert len(incomes) == 1
