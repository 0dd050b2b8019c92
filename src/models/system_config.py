"""System configuration ORM model (administrative key/value settings)."""

from typing import Any

from sqlalchemy import JSON, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from src.models import Base, BaseModel


class SystemConfig(Base, BaseModel):
    """Single-row-per-key administrative configuration.

    Known keys: "upload_window", "excluded_income_periods".
    """

    __tablename__ = "system_configs"

    key: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
    """Configuration key."""

    value: Mapped[Any] = mapped_column(JSON, nullable=False)
    """JSON payload; shape depends on the key."""

    updated_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    """Administrator who last wrote this key."""

    def __repr__(self) -> str:
        return f"<SystemConfig(key={self.key!r}, value={self.value!r})>"


__all__ = ["SystemConfig"]
