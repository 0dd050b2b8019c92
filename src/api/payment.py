"""Payment ledger API endpoints.

Handles:
- Resident submissions and administrator-created payments (single and bulk)
- Approval workflow (approve, bulk approve, reject) and deletion
- Month queries (occupied / available) and house payment status
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from src.models.house import House
from src.models.payment import PaymentStatus
from src.models.user import User
from src.services import get_db
from src.services.auth_service import get_authenticated_user, require_admin
from src.services.payment_service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments", tags=["payments"])


# Request schemas
class PeriodModel(BaseModel):
    """A calendar month."""

    year: int
    month: int


class SubmitPaymentRequest(BaseModel):
    """Resident submission. Any client-side total is ignored."""

    house_id: int
    amount_months: int
    proof_ref: str


class AdminCreatePaymentRequest(SubmitPaymentRequest):
    """Administrator creates a payment for a resident."""

    user_id: int


class BulkCreateRequest(BaseModel):
    house_ids: list[int]
    months: list[PeriodModel]


class BulkApproveRequest(BaseModel):
    payment_ids: list[int]


class RejectRequest(BaseModel):
    rejection_note: str = ""


# Response schemas
class PaymentMonthResponse(BaseModel):
    year: int
    month: int

    model_config = ConfigDict(from_attributes=True)


class PaymentResponse(BaseModel):
    """Payment with its covered months (ascending)."""

    id: int
    user_id: int
    house_id: int
    amount_months: int
    total_amount: Decimal
    status: PaymentStatus
    proof_ref: str | None = None
    rejection_note: str | None = None
    approved_by: int | None = None
    approved_at: datetime | None = None
    created_at: datetime
    months: list[PaymentMonthResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class BulkCreateResponse(BaseModel):
    created: list[PaymentResponse]
    errors: list[dict[str, Any]]


class BulkApproveResponse(BaseModel):
    approved: list[PaymentResponse]
    errors: list[dict[str, Any]]


class AvailableMonthResponse(BaseModel):
    label: str
    value: PeriodModel


class PaymentStatsResponse(BaseModel):
    total: int
    pending: int
    approved: int
    rejected: int
    total_revenue: Decimal

    model_config = ConfigDict(from_attributes=True)


class HouseStatusResponse(BaseModel):
    house_id: int
    label: str
    user_id: int | None
    status: PaymentStatus | None


def _authorize_house(db: Session, user: User, house_id: int) -> House:
    """Admins see any house; residents only their own."""
    house = db.get(House, house_id)
    if house is None:
        raise HTTPException(status_code=404, detail=f"House {house_id} not found")
    if not user.is_admin and house.user_id != user.id:
        raise HTTPException(status_code=403, detail="House does not belong to you")
    return house


@router.get("", response_model=list[PaymentResponse])
def list_payments(
    status: PaymentStatus | None = None,
    user_id: int | None = None,
    user: User = Depends(get_authenticated_user),
    db: Session = Depends(get_db),
):
    """Residents see only their own payments; administrators see all."""
    if not user.is_admin:
        user_id = user.id
    return PaymentService(db).list_payments(status=status, user_id=user_id)


@router.post("", response_model=PaymentResponse, status_code=201)
def submit_payment(
    body: SubmitPaymentRequest,
    user: User = Depends(get_authenticated_user),
    db: Session = Depends(get_db),
):
    payment = PaymentService(db).submit_payment(
        user.id, body.house_id, body.amount_months, body.proof_ref
    )
    logger.debug(f"submit_payment: user_id={user.id} payment_id={payment.id}")
    return payment


@router.post("/admin-create", response_model=PaymentResponse, status_code=201)
def admin_create_payment(
    body: AdminCreatePaymentRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return PaymentService(db).admin_create_payment(
        admin.id, body.user_id, body.house_id, body.amount_months, body.proof_ref
    )


@router.post("/bulk-create", response_model=BulkCreateResponse, status_code=201)
def bulk_create_payments(
    body: BulkCreateRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Per-house results; one house's conflict does not block the rest."""
    report = PaymentService(db).bulk_create_payments(
        body.house_ids, [m.model_dump() for m in body.months], admin.id
    )
    return BulkCreateResponse(
        created=[PaymentResponse.model_validate(p) for p in report.succeeded],
        errors=report.errors,
    )


@router.post("/bulk-approve", response_model=BulkApproveResponse)
def bulk_approve_payments(
    body: BulkApproveRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Per-payment results; not all-or-nothing."""
    report = PaymentService(db).bulk_approve_payments(body.payment_ids, admin.id)
    return BulkApproveResponse(
        approved=[PaymentResponse.model_validate(p) for p in report.succeeded],
        errors=report.errors,
    )


@router.get("/stats", response_model=PaymentStatsResponse)
def payment_stats(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return PaymentService(db).get_payment_stats()


@router.get("/occupied-months", response_model=list[PeriodModel])
def occupied_months(
    house_id: int,
    user: User = Depends(get_authenticated_user),
    db: Session = Depends(get_db),
):
    _authorize_house(db, user, house_id)
    return [{"year": m.year, "month": m.month} for m in PaymentService(db).get_occupied_months(house_id)]


@router.get("/available-months", response_model=list[AvailableMonthResponse])
def available_months(
    house_id: int,
    count: int = Query(default=12, ge=1, le=60),
    user: User = Depends(get_authenticated_user),
    db: Session = Depends(get_db),
):
    _authorize_house(db, user, house_id)
    return PaymentService(db).get_available_months(house_id, count)


@router.get("/house-status", response_model=list[HouseStatusResponse])
def house_status(
    year: int,
    month: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    entries = PaymentService(db).get_house_payment_status_for_month(year, month)
    return [
        HouseStatusResponse(
            house_id=e.house.id, label=e.house.label, user_id=e.house.user_id, status=e.status
        )
        for e in entries
    ]


@router.get("/unpaid-this-month", response_model=list[HouseStatusResponse])
def unpaid_this_month(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return [
        HouseStatusResponse(house_id=h.id, label=h.label, user_id=h.user_id, status=None)
        for h in PaymentService(db).get_unpaid_houses_this_month()
    ]


@router.get("/{payment_id}", response_model=PaymentResponse)
def get_payment(
    payment_id: int,
    user: User = Depends(get_authenticated_user),
    db: Session = Depends(get_db),
):
    payment = PaymentService(db).get_payment(payment_id)
    if payment is None:
        raise HTTPException(status_code=404, detail="Payment not found")
    if not user.is_admin and payment.user_id != user.id:
        raise HTTPException(status_code=403, detail="Forbidden")
    return payment


@router.post("/{payment_id}/approve", response_model=PaymentResponse)
def approve_payment(
    payment_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return PaymentService(db).approve_payment(payment_id, admin.id)


@router.post("/{payment_id}/reject", response_model=PaymentResponse)
def reject_payment(
    payment_id: int,
    body: RejectRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    logger.info(f"Admin {admin.id} rejecting payment {payment_id}")
    return PaymentService(db).reject_payment(payment_id, body.rejection_note)


@router.delete("/{payment_id}", status_code=204)
def delete_payment(
    payment_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    PaymentService(db).delete_payment(payment_id)
    return Response(status_code=204)
