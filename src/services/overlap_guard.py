"""Overlap guard: the single check for "no double-booked month".

The read of occupied months must happen in the same transaction as the insert
that follows; the partial unique index on payment_months backs this up when two
submissions race.
"""

from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.models.payment import PaymentMonth
from src.services.month_calculator import YearMonth, as_year_months


def find_collisions(occupied_months: Iterable, proposed_months: Iterable) -> list[YearMonth]:
    """Return the proposed months that are already occupied, sorted, without duplicates.

    An empty result means the proposal is free; anything else is a hard rejection.
    """
    occupied = as_year_months(occupied_months)
    return sorted(as_year_months(proposed_months) & occupied)


def load_occupied_months(db: Session, house_id: int) -> set[YearMonth]:
    """All months claimed for a house across non-rejected payments."""
    rows = db.execute(
        select(PaymentMonth.year, PaymentMonth.month).where(
            PaymentMonth.house_id == house_id,
            PaymentMonth.is_active.is_(True),
        )
    ).all()
    return {YearMonth(row.year, row.month) for row in rows}


__all__ = ["find_collisions", "load_occupied_months"]
