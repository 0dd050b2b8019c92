"""Month arithmetic for IPL payments.

Pure functions, no I/O:
- compute_next_start_month: first unclaimed month at or after the current month
- compute_covered_months: consecutive months a payment of N months covers
"""

from datetime import date
from typing import Iterable, NamedTuple


class YearMonth(NamedTuple):
    """Calendar month; month is 1-based (1 = January ... 12 = December)."""

    year: int
    month: int

    def next(self) -> "YearMonth":
        if self.month == 12:
            return YearMonth(self.year + 1, 1)
        return YearMonth(self.year, self.month + 1)

    @classmethod
    def from_date(cls, value: date) -> "YearMonth":
        return cls(value.year, value.month)


def as_year_months(months: Iterable) -> set[YearMonth]:
    """Normalize (year, month) pairs, objects with year/month attributes or dicts."""
    result = set()
    for m in months:
        if isinstance(m, dict):
            result.add(YearMonth(int(m["year"]), int(m["month"])))
        elif hasattr(m, "year") and hasattr(m, "month"):
            result.add(YearMonth(int(m.year), int(m.month)))
        else:
            year, month = m
            result.add(YearMonth(int(year), int(month)))
    return result


def compute_next_start_month(
    occupied_months: Iterable, today: date | None = None
) -> YearMonth:
    """Return the earliest month at or after the current month that is not occupied.

    Falls back to the current month if nothing is occupied.

    Args:
        occupied_months: Months already claimed for the house (non-rejected payments)
        today: Reference date (defaults to date.today())

    Example:
        >>> compute_next_start_month([(2026, 1), (2026, 2)], today=date(2026, 1, 15))
        YearMonth(year=2026, month=3)
    """
    occupied = as_year_months(occupied_months)
    current = YearMonth.from_date(today or date.today())
    while current in occupied:
        current = current.next()
    return current


def compute_covered_months(start_month, amount_months: int) -> list[YearMonth]:
    """Return exactly amount_months consecutive months beginning at start_month.

    Uses zero-based arithmetic so December -> January rolls the year uniformly.

    Example:
        >>> compute_covered_months((2026, 11), 3)
        [YearMonth(year=2026, month=11), YearMonth(year=2026, month=12), YearMonth(year=2027, month=1)]
    """
    start_year, start = start_month[0], start_month[1] - 1
    covered = []
    for i in range(amount_months):
        total_months = start + i
        covered.append(YearMonth(start_year + total_months // 12, total_months % 12 + 1))
    return covered


__all__ = [
    "YearMonth",
    "as_year_months",
    "compute_next_start_month",
    "compute_covered_months",
]
