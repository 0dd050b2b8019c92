"""Contract tests for the payment ledger HTTP API."""

from datetime import date
from decimal import Decimal
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from src.api.app import app
from src.models import Payment, PaymentStatus


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)


class FixedDate(date):
    @classmethod
    def today(cls):
        return cls(2026, 3, 15)


def _as(user):
    return {"X-User-Id": str(user.id)}


class TestAuthentication:
    """Test identity resolution and role checks."""

    def test_missing_header_is_401(self, client):
        response = client.get("/api/payments")
        assert response.status_code == 401

    def test_unknown_user_is_401(self, client):
        response = client.get("/api/payments", headers={"X-User-Id": "424242"})
        assert response.status_code == 401

    def test_resident_cannot_approve(self, client, resident, house):
        response = client.post("/api/payments/1/approve", headers=_as(resident))
        assert response.status_code == 403

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}


class TestSubmitEndpoint:
    """Test POST /api/payments."""

    def test_submit_ignores_client_total(self, client, resident, house):
        """Test totals come from the house rate, not the request body."""
        response = client.post(
            "/api/payments",
            headers=_as(resident),
            json={"house_id": house.id, "amount_months": 2, "proof_ref": "proof.jpg", "total_amount": 1},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "PENDING"
        assert Decimal(str(body["total_amount"])) == Decimal("300000.00")
        assert len(body["months"]) == 2

    def test_submit_for_foreign_house_is_403(self, client, resident, other_house):
        response = client.post(
            "/api/payments",
            headers=_as(resident),
            json={"house_id": other_house.id, "amount_months": 1, "proof_ref": "proof.jpg"},
        )

        assert response.status_code == 403
        assert response.json()["error"] == "house_not_owned"

    def test_amount_out_of_range_is_400(self, client, resident, house):
        response = client.post(
            "/api/payments",
            headers=_as(resident),
            json={"house_id": house.id, "amount_months": 13, "proof_ref": "proof.jpg"},
        )

        assert response.status_code == 400
        assert response.json() == {
            "error": "validation_error",
            "detail": "amount_months must be between 1 and 12",
            "field": "amount_months",
        }

    def test_upload_window_closed_is_403(self, client, admin, resident, house):
        """Test residents are turned away outside the configured days."""
        window = client.post(
            "/api/system-config/upload-window",
            headers=_as(admin),
            json={"enabled": True, "startDay": 1, "endDay": 10},
        )
        assert window.json() == {"enabled": True, "startDay": 1, "endDay": 10}

        with patch("src.services.system_config_service.date", FixedDate):
            response = client.post(
                "/api/payments",
                headers=_as(resident),
                json={"house_id": house.id, "amount_months": 1, "proof_ref": "proof.jpg"},
            )

        assert response.status_code == 403
        assert response.json()["error"] == "upload_window_closed"

    def test_invalid_window_is_400(self, client, admin):
        response = client.post(
            "/api/system-config/upload-window",
            headers=_as(admin),
            json={"enabled": True, "startDay": 20, "endDay": 10},
        )
        assert response.status_code == 400

    def test_excluded_periods_round_trip(self, client, admin, resident):
        stored = client.post(
            "/api/system-config/excluded-income-periods",
            headers=_as(admin),
            json={"periods": [{"year": 2025, "month": 12}, {"year": 2025, "month": 12}]},
        )

        assert stored.json() == {"periods": [{"year": 2025, "month": 12}]}
        assert client.get("/api/system-config/excluded-income-periods", headers=_as(admin)).json() == {
            "periods": [{"year": 2025, "month": 12}]
        }
        assert client.get(
            "/api/system-config/excluded-income-periods", headers=_as(resident)
        ).status_code == 403


class TestApprovalEndpoints:
    """Test approve, reject, bulk approve and delete."""

    @pytest.fixture
    def payment_id(self, client, resident, house):
        response = client.post(
            "/api/payments",
            headers=_as(resident),
            json={"house_id": house.id, "amount_months": 1, "proof_ref": "proof.jpg"},
        )
        return response.json()["id"]

    def test_approve_then_approve_again_is_409(self, client, admin, payment_id):
        first = client.post(f"/api/payments/{payment_id}/approve", headers=_as(admin))
        second = client.post(f"/api/payments/{payment_id}/approve", headers=_as(admin))

        assert first.status_code == 200
        assert first.json()["status"] == "APPROVED"
        assert first.json()["approved_by"] == admin.id
        assert second.status_code == 409
        assert second.json()["error"] == "illegal_state"

    def test_approve_unknown_is_404(self, client, admin):
        response = client.post("/api/payments/99999/approve", headers=_as(admin))
        assert response.status_code == 404

    def test_reject_without_note_is_400(self, client, admin, payment_id):
        response = client.post(
            f"/api/payments/{payment_id}/reject", headers=_as(admin), json={"rejection_note": ""}
        )

        assert response.status_code == 400
        assert response.json()["field"] == "rejection_note"

    def test_reject_with_note(self, client, admin, payment_id):
        response = client.post(
            f"/api/payments/{payment_id}/reject",
            headers=_as(admin),
            json={"rejection_note": "Bukti transfer tidak valid"},
        )

        assert response.status_code == 200
        assert response.json()["status"] == "REJECTED"
        assert response.json()["rejection_note"] == "Bukti transfer tidak valid"

    def test_bulk_approve_reports_per_item(self, client, admin, payment_id):
        response = client.post(
            "/api/payments/bulk-approve",
            headers=_as(admin),
            json={"payment_ids": [payment_id, 123456]},
        )

        assert response.status_code == 200
        body = response.json()
        assert [p["id"] for p in body["approved"]] == [payment_id]
        assert body["errors"][0]["payment_id"] == 123456
        assert body["errors"][0]["code"] == "not_found"

    def test_delete(self, client, db, admin, payment_id):
        response = client.delete(f"/api/payments/{payment_id}", headers=_as(admin))

        assert response.status_code == 204
        assert db.get(Payment, payment_id) is None

    def test_resident_sees_only_own_payments(self, client, resident, other_resident, payment_id):
        own = client.get("/api/payments", headers=_as(resident))
        foreign = client.get(f"/api/payments/{payment_id}", headers=_as(other_resident))

        assert [p["id"] for p in own.json()] == [payment_id]
        assert foreign.status_code == 403


class TestBulkCreateEndpoint:
    """Test POST /api/payments/bulk-create."""

    def test_partial_success(self, client, admin, resident, house, other_house):
        client.post(
            "/api/payments/bulk-create",
            headers=_as(admin),
            json={"house_ids": [house.id], "months": [{"year": 2030, "month": 1}]},
        )

        response = client.post(
            "/api/payments/bulk-create",
            headers=_as(admin),
            json={
                "house_ids": [house.id, other_house.id],
                "months": [{"year": 2030, "month": 1}, {"year": 2030, "month": 2}],
            },
        )

        assert response.status_code == 201
        body = response.json()
        assert [p["house_id"] for p in body["created"]] == [other_house.id]
        assert body["created"][0]["status"] == PaymentStatus.APPROVED.value
        assert body["errors"][0]["house_id"] == house.id
        assert body["errors"][0]["code"] == "month_conflict"

    def test_invalid_month_is_400(self, client, admin, house):
        response = client.post(
            "/api/payments/bulk-create",
            headers=_as(admin),
            json={"house_ids": [house.id], "months": [{"year": 2030, "month": 0}]},
        )

        assert response.status_code == 400


class TestMonthQueries:
    """Test occupied and available month endpoints."""

    def test_available_months_labels(self, client, resident, house):
        response = client.get(
            "/api/payments/available-months", params={"house_id": house.id, "count": 2}, headers=_as(resident)
        )

        assert response.status_code == 200
        body = response.json()
        assert len(body) == 2
        assert set(body[0]) == {"label", "value"}

    def test_occupied_months_after_submission(self, client, resident, house):
        created = client.post(
            "/api/payments",
            headers=_as(resident),
            json={"house_id": house.id, "amount_months": 2, "proof_ref": "proof.jpg"},
        ).json()

        response = client.get(
            "/api/payments/occupied-months", params={"house_id": house.id}, headers=_as(resident)
        )

        assert response.json() == [{"year": m["year"], "month": m["month"]} for m in created["months"]]

    def test_foreign_house_months_forbidden(self, client, resident, other_house):
        response = client.get(
            "/api/payments/occupied-months", params={"house_id": other_house.id}, headers=_as(resident)
        )
        assert response.status_code == 403

    def test_house_status_admin_only(self, client, admin, resident, house):
        assert client.get(
            "/api/payments/house-status", params={"year": 2030, "month": 1}, headers=_as(resident)
        ).status_code == 403

        response = client.get(
            "/api/payments/house-status", params={"year": 2030, "month": 1}, headers=_as(admin)
        )
        assert response.json() == [
            {"house_id": house.id, "label": "A 12", "user_id": resident.id, "status": None}
        ]

    def test_stats(self, client, admin):
        response = client.get("/api/payments/stats", headers=_as(admin))

        assert response.status_code == 200
        assert response.json()["total"] == 0
