"""Unit tests for the error taxonomy and its HTTP mapping."""

import pytest

from src.api.app import status_for_error
from src.services.errors import (
    BackfillValidationError,
    ConflictError,
    HouseOwnershipError,
    IllegalStateError,
    LedgerError,
    NotFoundError,
    UploadWindowClosedError,
    ValidationError,
)


class TestErrorTaxonomy:
    """Test codes and payloads of ledger errors."""

    def test_not_found_message(self):
        error = NotFoundError("Payment", 42)
        assert error.message == "Payment 42 not found"
        assert error.code == "not_found"

    def test_conflict_carries_months(self):
        error = ConflictError("taken", months=[(2026, 3)])
        assert error.months == [(2026, 3)]
        assert ConflictError("taken").months == []

    def test_window_closed_is_validation_error(self):
        """Test policy errors are catchable as ValidationError."""
        assert isinstance(UploadWindowClosedError("closed"), ValidationError)
        assert isinstance(HouseOwnershipError("not yours"), ValidationError)

    def test_backfill_validation_lists_issues(self):
        error = BackfillValidationError([(7, "Missing approved_at"), (9, "Approver user not found")])
        assert "payment 7: Missing approved_at" in error.message
        assert error.issues[1] == (9, "Approver user not found")


class TestStatusForError:
    """Test HTTP status mapping."""

    @pytest.mark.parametrize(
        "error,status",
        [
            (ValidationError("bad"), 400),
            (HouseOwnershipError("not yours"), 403),
            (UploadWindowClosedError("closed"), 403),
            (NotFoundError("House", 1), 404),
            (ConflictError("taken"), 409),
            (IllegalStateError("decided"), 409),
            (LedgerError("other"), 400),
        ],
    )
    def test_mapping(self, error, status):
        assert status_for_error(error) == status
