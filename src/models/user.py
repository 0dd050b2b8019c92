"""User ORM model for residents and administrators."""

from enum import Enum

from sqlalchemy import Enum as SQLEnum
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models import Base, BaseModel


class UserRole(str, Enum):
    """Role of a user in the community."""

    ADMIN = "ADMIN"
    USER = "USER"


class User(Base, BaseModel):
    """Person known to the system.

    Residents (USER) submit proof of payment for their house; administrators (ADMIN)
    approve or reject submissions and may book payments on a resident's behalf.
    Identity and role checks happen at the auth boundary; the ledger only reads them.
    """

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Display name used in income descriptions",
    )
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
    )
    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole),
        nullable=False,
        default=UserRole.USER,
    )

    # Relationships
    houses: Mapped[list["House"]] = relationship(  # noqa: F821
        "House",
        back_populates="user",
    )
    payments: Mapped[list["Payment"]] = relationship(  # noqa: F821
        "Payment",
        back_populates="user",
        foreign_keys="Payment.user_id",
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name={self.name!r}, role={self.role})>"


__all__ = ["User", "UserRole"]
