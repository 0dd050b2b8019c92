"""Pytest configuration for tests - builds the schema on a throwaway SQLite file."""

import os
from decimal import Decimal

# Set test database URL BEFORE any imports from src
# This ensures the SessionLocal and engine use the test database
os.environ["DATABASE_URL"] = "sqlite:///./test_ipl.db"
os.environ["LOCALE"] = "id_ID"

import pytest  # noqa: E402

from src.models import Base, House, HouseType, User, UserRole  # noqa: E402
from src.services import SessionLocal, engine  # noqa: E402
from src.services.system_config_service import (  # noqa: E402
    excluded_periods_cache,
    upload_window_cache,
)

MONTHLY_RATE = Decimal("150000.00")


@pytest.fixture(scope="session", autouse=True)
def schema():
    """Create all tables once per test session."""
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture(autouse=True)
def clean_db():
    """Empty every table and drop cached configuration before each test."""
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())
    upload_window_cache.invalidate()
    excluded_periods_cache.invalidate()
    yield


@pytest.fixture
def db():
    """Database session for one test."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def admin(db):
    user = User(name="Pengurus RT", email="admin@example.com", role=UserRole.ADMIN)
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def resident(db):
    user = User(name="Budi Santoso", email="budi@example.com", role=UserRole.USER)
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def other_resident(db):
    user = User(name="Siti Aminah", email="siti@example.com", role=UserRole.USER)
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def house_type(db):
    house_type = HouseType(name="Tipe 36", price=MONTHLY_RATE)
    db.add(house_type)
    db.commit()
    return house_type


@pytest.fixture
def house(db, house_type, resident):
    """House A 12, occupied by the resident."""
    house = House(block="A", house_number="12", house_type_id=house_type.id, user_id=resident.id)
    db.add(house)
    db.commit()
    return house


@pytest.fixture
def other_house(db, house_type, other_resident):
    """House B 3, occupied by the other resident."""
    house = House(
        block="B", house_number="3", house_type_id=house_type.id, user_id=other_resident.id
    )
    db.add(house)
    db.commit()
    return house


@pytest.fixture
def vacant_house(db, house_type):
    house = House(block="C", house_number="1", house_type_id=house_type.id, user_id=None)
    db.add(house)
    db.commit()
    return house
