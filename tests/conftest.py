"""Shared test fixtures: in-memory database, frozen clock and a seeded tenant."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DB_LOG_SLOW_QUERIES", "false")
os.environ["REDIS_URL"] = ""

from datetime import datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app import rate_limiter
from app.auth import create_access_token
from app.database import Base, get_db
from app.main import app
from app.models import Appointment, AppointmentStatus, Business, Customer, Service, Vehicle
from app.shared.clock import FixedClock, get_clock

OWNER_ID = "owner-1"

# Monday 2025-03-10; the business wall clock reads 09:00
NOW_UTC = datetime(2025, 3, 10, 12, 0)
NOW_LOCAL = datetime(2025, 3, 10, 9, 0)
TODAY = "2025-03-10"
TUESDAY = "2025-03-11"
SATURDAY = "2025-03-15"


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FixedClock(NOW_UTC, NOW_LOCAL)


@pytest.fixture(autouse=True)
def reset_rate_limits():
    rate_limiter.memory_cache.clear()
    yield
    rate_limiter.memory_cache.clear()


def make_business(db, owner_id=OWNER_ID, slug="lava-rapido-centro", **overrides) -> Business:
    data = {
        "owner_id": owner_id,
        "name": "Lava Rapido Centro",
        "phone": "11933334444",
        "address": "Rua das Flores, 100",
        "slug": slug,
        "working_days": ["MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY"],
        "open_time": "08:00",
        "close_time": "18:00",
        "slot_duration": 60,
        "is_onboarded": True,
    }
    data.update(overrides)
    business = Business(**data)
    db.add(business)
    db.commit()
    db.refresh(business)
    return business


def make_service(db, business, name="Lavagem completa", price="50.00", duration=60, **overrides) -> Service:
    service = Service(
        business_id=business.id, name=name, price=Decimal(price), duration=duration, **overrides
    )
    db.add(service)
    db.commit()
    db.refresh(service)
    return service


def make_customer(db, business, name="Maria Silva", phone="11987654321") -> Customer:
    customer = Customer(business_id=business.id, name=name, phone=phone)
    db.add(customer)
    db.commit()
    db.refresh(customer)
    return customer


def make_vehicle(db, customer, brand="Honda", model="Civic", color="Prata", is_default=True) -> Vehicle:
    vehicle = Vehicle(
        customer_id=customer.id, brand=brand, model=model, color=color, is_default=is_default
    )
    db.add(vehicle)
    db.commit()
    db.refresh(vehicle)
    return vehicle


def make_appointment(
    db,
    business,
    customer,
    service,
    day,
    start_time="10:00",
    end_time="11:00",
    status=AppointmentStatus.PENDING,
) -> Appointment:
    """Insert an appointment row directly, bypassing booking rules"""
    appointment = Appointment(
        business_id=business.id,
        customer_id=customer.id,
        service_id=service.id,
        date=datetime.strptime(day, "%Y-%m-%d").date(),
        start_time=start_time,
        end_time=end_time,
        status=status,
    )
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    return appointment


@pytest.fixture
def business(db):
    return make_business(db)


@pytest.fixture
def service(db, business):
    return make_service(db, business)


@pytest.fixture
def customer(db, business):
    return make_customer(db, business)


@pytest.fixture
def client(session_factory, clock):
    """API client authenticated as OWNER_ID, sharing the test database"""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock

    test_client = TestClient(app)
    test_client.headers.update({"Authorization": f"Bearer {create_access_token(OWNER_ID)}"})
    yield test_client

    app.dependency_overrides.clear()
