"""Administrative configuration consumed by the ledger.

- Upload window: which days of the month residents may submit payments
- Excluded income periods: months for which approvals must not book income

Both are read through in-process TTL caches; every write invalidates its cache
synchronously after the commit.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.config.settings import get_settings
from src.models.system_config import SystemConfig
from src.services.config_cache import TTLCache
from src.services.errors import ValidationError
from src.services.month_calculator import YearMonth, as_year_months

logger = logging.getLogger(__name__)

UPLOAD_WINDOW_KEY = "upload_window"
EXCLUDED_INCOME_PERIODS_KEY = "excluded_income_periods"

MIN_PERIOD_YEAR = 2000
MAX_PERIOD_YEAR = 2100


@dataclass(frozen=True)
class UploadWindowConfig:
    """Upload window policy. Disabled by default."""

    enabled: bool = False
    start_day: int = 1
    end_day: int = 10

    def to_json(self) -> dict[str, Any]:
        return {"enabled": self.enabled, "startDay": self.start_day, "endDay": self.end_day}


@dataclass(frozen=True)
class WindowCheckResult:
    """Outcome of an upload window check."""

    allowed: bool
    reason: str | None = None


DEFAULT_UPLOAD_WINDOW = UploadWindowConfig()

upload_window_cache: TTLCache[UploadWindowConfig] = TTLCache(
    UPLOAD_WINDOW_KEY, get_settings().config_cache_ttl_seconds
)
excluded_periods_cache: TTLCache[frozenset[YearMonth]] = TTLCache(
    EXCLUDED_INCOME_PERIODS_KEY, get_settings().config_cache_ttl_seconds
)


def is_within_upload_window(
    config: UploadWindowConfig, on_date: date | None = None
) -> WindowCheckResult:
    """Check whether a date falls inside the upload window.

    A disabled window always allows; an enabled one allows start_day <= day <= end_day.
    """
    if not config.enabled:
        return WindowCheckResult(allowed=True)

    day = (on_date or date.today()).day
    if day < config.start_day or day > config.end_day:
        return WindowCheckResult(
            allowed=False,
            reason=(
                f"Payment submissions are only allowed from day {config.start_day} "
                f"to day {config.end_day} of each month"
            ),
        )
    return WindowCheckResult(allowed=True)


def is_excluded(periods: Iterable, year: int, month: int) -> bool:
    """True if (year, month) is one of the excluded income periods."""
    return YearMonth(year, month) in as_year_months(periods)


def validate_period(year: Any, month: Any) -> YearMonth:
    """Validate a single (year, month) target; year 2000-2100, month 1-12."""
    if (
        not isinstance(year, int)
        or not isinstance(month, int)
        or isinstance(year, bool)
        or isinstance(month, bool)
        or not 1 <= month <= 12
        or not MIN_PERIOD_YEAR <= year <= MAX_PERIOD_YEAR
    ):
        raise ValidationError(
            f"Each period must have a valid year ({MIN_PERIOD_YEAR}-{MAX_PERIOD_YEAR}) "
            "and month (1-12)",
            field="months",
        )
    return YearMonth(year, month)


class SystemConfigService:
    """Read and write administrative configuration."""

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db

    def _get_value(self, key: str) -> dict[str, Any] | None:
        row = self.db.execute(select(SystemConfig).where(SystemConfig.key == key)).scalar_one_or_none()
        return row.value if row else None

    def set_config(self, key: str, value: dict[str, Any], updated_by: int | None) -> SystemConfig:
        """Insert or update a configuration key and commit."""
        row = self.db.execute(select(SystemConfig).where(SystemConfig.key == key)).scalar_one_or_none()
        if row is None:
            row = SystemConfig(key=key, value=value, updated_by=updated_by)
            self.db.add(row)
        else:
            row.value = value
            row.updated_by = updated_by
        self.db.commit()
        logger.info(f"System config '{key}' updated by user_id={updated_by}: {value}")
        return row

    # Upload window

    def get_upload_window_config(self) -> UploadWindowConfig:
        """Load upload window from storage, falling back to defaults per field."""
        value = self._get_value(UPLOAD_WINDOW_KEY)
        if not value:
            return DEFAULT_UPLOAD_WINDOW
        return UploadWindowConfig(
            enabled=bool(value.get("enabled", DEFAULT_UPLOAD_WINDOW.enabled)),
            start_day=int(value.get("startDay", DEFAULT_UPLOAD_WINDOW.start_day)),
            end_day=int(value.get("endDay", DEFAULT_UPLOAD_WINDOW.end_day)),
        )

    def get_cached_upload_window_config(self) -> UploadWindowConfig:
        return upload_window_cache.get(self.get_upload_window_config)

    def set_upload_window_config(
        self, enabled: bool, start_day: int, end_day: int, updated_by: int | None
    ) -> UploadWindowConfig:
        """Validate, persist and invalidate the cache.

        Raises:
            ValidationError: If days are outside 1-31 or start_day > end_day
        """
        if not 1 <= start_day <= 31 or not 1 <= end_day <= 31:
            raise ValidationError("startDay and endDay must be between 1 and 31", field="startDay")
        if start_day > end_day:
            raise ValidationError("startDay must be less than or equal to endDay", field="endDay")

        config = UploadWindowConfig(enabled=enabled, start_day=start_day, end_day=end_day)
        self.set_config(UPLOAD_WINDOW_KEY, config.to_json(), updated_by)
        upload_window_cache.invalidate()
        return config

    # Excluded income periods

    def get_excluded_income_periods(self) -> frozenset[YearMonth]:
        value = self._get_value(EXCLUDED_INCOME_PERIODS_KEY)
        if not value:
            return frozenset()
        return frozenset(as_year_months(value.get("periods", [])))

    def get_cached_excluded_income_periods(self) -> frozenset[YearMonth]:
        return excluded_periods_cache.get(self.get_excluded_income_periods)

    def set_excluded_income_periods(
        self, periods: Iterable[dict[str, Any]], updated_by: int | None
    ) -> list[YearMonth]:
        """Validate, de-duplicate (keeping first occurrence), persist and invalidate.

        Returns:
            The unique periods that were stored
        """
        unique: list[YearMonth] = []
        for p in periods:
            period = validate_period(p.get("year"), p.get("month"))
            if period not in unique:
                unique.append(period)

        self.set_config(
            EXCLUDED_INCOME_PERIODS_KEY,
            {"periods": [{"year": p.year, "month": p.month} for p in unique]},
            updated_by,
        )
        excluded_periods_cache.invalidate()
        return unique


__all__ = [
    "UploadWindowConfig",
    "WindowCheckResult",
    "SystemConfigService",
    "is_within_upload_window",
    "is_excluded",
    "validate_period",
    "upload_window_cache",
    "excluded_periods_cache",
]
