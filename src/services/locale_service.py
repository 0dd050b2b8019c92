"""Centralized locale service for month labels and amounts.

Single source of truth for locale-related formatting, built on babel.

Configuration:
    LOCALE setting (default: id_ID) - determines month names and currency

Example:
    >>> from src.services.locale_service import format_payment_month, format_amount
    >>> format_payment_month(2026, 2)
    'Februari 2026'
"""

import logging
from datetime import date
from decimal import Decimal

from babel import Locale, UnknownLocaleError
from babel.dates import format_date as babel_format_date
from babel.numbers import format_currency as babel_format_currency
from babel.numbers import get_territory_currencies

from src.config.settings import get_settings

logger = logging.getLogger(__name__)

# Default locale if LOCALE setting is invalid or missing
DEFAULT_LOCALE = "id_ID"


def _get_locale() -> str:
    """Get locale from settings with validation and fallback."""
    locale_str = get_settings().locale
    try:
        Locale.parse(locale_str)
        return locale_str
    except (UnknownLocaleError, ValueError) as e:
        logger.warning(f"Invalid LOCALE '{locale_str}': {e}. Falling back to '{DEFAULT_LOCALE}'")
        return DEFAULT_LOCALE


def _get_currency_from_locale(locale_str: str) -> str:
    """Derive currency code from locale territory (falls back to IDR)."""
    try:
        territory = Locale.parse(locale_str).territory
        if territory:
            currencies = get_territory_currencies(territory)
            if currencies:
                return currencies[0]
    except (UnknownLocaleError, ValueError) as e:
        logger.warning(f"Could not derive currency from locale '{locale_str}': {e}")
    return "IDR"


# Module-level constants (computed once at import)
LOCALE = _get_locale()
CURRENCY = _get_currency_from_locale(LOCALE)


def format_payment_month(year: int, month: int, locale: str | None = None) -> str:
    """Format a covered month as full month name and year, e.g. 'Februari 2026'.

    Args:
        year: Calendar year
        month: 1-based month
        locale: Override for the configured locale
    """
    return babel_format_date(date(year, month, 1), "MMMM y", locale=locale or LOCALE)


def format_month_list(months: list[tuple[int, int]]) -> str:
    """Comma-separated month labels, used in conflict messages."""
    return ", ".join(format_payment_month(y, m) for y, m in months)


def format_amount(amount: float | Decimal) -> str:
    """Format monetary amount according to locale."""
    return babel_format_currency(float(amount), CURRENCY, locale=LOCALE)


__all__ = [
    "LOCALE",
    "CURRENCY",
    "format_payment_month",
    "format_month_list",
    "format_amount",
]
