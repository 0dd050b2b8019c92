"""House and HouseType ORM models (billable units and their monthly rate)."""

from decimal import Decimal

from sqlalchemy import ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models import Base, BaseModel


class HouseType(Base, BaseModel):
    """Rate class shared by houses of the same kind.

    The price is the monthly IPL fee. Changing it does not touch existing payments:
    each payment stores its own total computed at submission time.
    """

    __tablename__ = "house_types"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    price: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        comment="Monthly IPL fee",
    )

    houses: Mapped[list["House"]] = relationship("House", back_populates="house_type")

    def __repr__(self) -> str:
        return f"<HouseType(id={self.id}, name={self.name!r}, price={self.price})>"


class House(Base, BaseModel):
    """Billable unit with at most one occupying resident."""

    __tablename__ = "houses"

    block: Mapped[str] = mapped_column(String(20), nullable=False)
    house_number: Mapped[str] = mapped_column(String(20), nullable=False)
    house_type_id: Mapped[int] = mapped_column(
        ForeignKey("house_types.id"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id"),
        nullable=True,
        index=True,
        comment="Occupying resident (null when vacant)",
    )

    # Relationships
    house_type: Mapped["HouseType"] = relationship("HouseType", back_populates="houses")
    user: Mapped["User | None"] = relationship(  # noqa: F821
        "User",
        back_populates="houses",
    )

    __table_args__ = (
        UniqueConstraint("block", "house_number", name="uq_houses_block_number"),
    )

    @property
    def label(self) -> str:
        """Human-readable identifier, e.g. 'A 12'."""
        return f"{self.block} {self.house_number}"

    @property
    def monthly_rate(self) -> Decimal:
        return self.house_type.price

    def __repr__(self) -> str:
        return (
            f"<House(id={self.id}, block={self.block!r}, house_number={self.house_number!r}, "
            f"user_id={self.user_id})>"
        )


__all__ = ["HouseType", "House"]
