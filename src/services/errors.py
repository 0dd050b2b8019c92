"""Exception taxonomy for the payment ledger.

Every failure carries a stable ``code`` so callers (HTTP layer, bulk reports,
CLI) can report a typed reason instead of a bare message.
"""


class LedgerError(Exception):
    """Base exception for ledger errors."""

    code = "ledger_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError):
    """Bad input: amount_months out of range, empty rejection note, malformed period."""

    code = "validation_error"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class UploadWindowClosedError(ValidationError):
    """Resident submission outside the configured upload window."""

    code = "upload_window_closed"


class HouseOwnershipError(ValidationError):
    """House is not assigned to the resident the payment is for."""

    code = "house_not_owned"


class ConflictError(LedgerError):
    """Requested months are already claimed by a live payment for the house."""

    code = "month_conflict"

    def __init__(self, message: str, months: list[tuple[int, int]] | None = None):
        super().__init__(message)
        self.months = months or []


class IllegalStateError(LedgerError):
    """Transition not allowed from the payment's current status."""

    code = "illegal_state"

    def __init__(self, message: str, status: str | None = None):
        super().__init__(message)
        self.status = status


class NotFoundError(LedgerError):
    """Payment, house or user id does not resolve."""

    code = "not_found"

    def __init__(self, entity: str, entity_id: int):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class BackfillValidationError(LedgerError):
    """One or more backfill candidates failed validation; nothing was written."""

    code = "backfill_validation_failed"

    def __init__(self, issues: list[tuple[int, str]]):
        lines = ", ".join(f"payment {pid}: {reason}" for pid, reason in issues)
        super().__init__(f"Backfill aborted, {len(issues)} validation issue(s): {lines}")
        self.issues = issues


class BackfillTimeoutError(LedgerError):
    """Backfill exceeded its time budget and was rolled back."""

    code = "backfill_timeout"


__all__ = [
    "LedgerError",
    "ValidationError",
    "UploadWindowClosedError",
    "HouseOwnershipError",
    "ConflictError",
    "IllegalStateError",
    "NotFoundError",
    "BackfillValidationError",
    "BackfillTimeoutError",
]
