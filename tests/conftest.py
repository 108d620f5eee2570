import os
import sys
from pathlib import Path

# Add project root to Python path so the suite also runs from a plain checkout
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Must be set before the application settings are imported
os.environ["TESTING"] = "1"
os.environ["TEST_DATABASE_URL"] = "sqlite:///./test.db"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from medbook.main import app  # noqa: E402
from medbook.core.database import Base, get_db, get_redis  # noqa: E402
from medbook.core.security import access_claims, create_access_token, get_password_hash  # noqa: E402
from medbook.models.appointment import Appointment, AppointmentStatus  # noqa: E402
from medbook.models.doctor import Doctor, TimeSlot  # noqa: E402
from medbook.models.user import User, UserRole  # noqa: E402

SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TEST_PASSWORD = "Secret123"
TEST_PASSWORD_HASH = get_password_hash(TEST_PASSWORD)

def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

app.dependency_overrides[get_db] = override_get_db

class InMemoryRedis:
    """The handful of Redis commands the rate limiter uses."""

    def __init__(self):
        self.data = {}

    def setex(self, key, seconds, value):
        self.data[key] = str(value)
        return True

    def get(self, key):
        return self.data.get(key)

    def incr(self, key):
        self.data[key] = str(int(self.data.get(key, "0")) + 1)
        return int(self.data[key])

@pytest.fixture(scope="function")
def test_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def redis_stub():
    stub = InMemoryRedis()
    app.dependency_overrides[get_redis] = lambda: stub
    yield stub
    app.dependency_overrides.pop(get_redis, None)

@pytest.fixture
def client(test_db, redis_stub):
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client

@pytest.fixture
def db_session(test_db):
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

def create_user(db, email, role=UserRole.PATIENT, name="Test Patient", phone="555-0100"):
    user = User(
        name=name,
        email=email,
        password_hash=TEST_PASSWORD_HASH,
        role=role,
        phone=phone,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user

def create_doctor(db, slots=(("2025-01-10", "09:00"), ("2025-01-10", "10:00")), name="Dr. Maria Lopez",
                  specialization="Cardiology"):
    doctor = Doctor(name=name, specialization=specialization)
    for position, (slot_date, slot_time) in enumerate(slots):
        doctor.time_slots.append(TimeSlot(date=slot_date, time=slot_time, position=position))
    db.add(doctor)
    db.commit()
    db.refresh(doctor)
    return doctor

def auth_headers(user):
    token = create_access_token(access_claims(user))
    return {"Authorization": f"Bearer {token}"}

def slot_is_available(db, slot_id):
    db.expire_all()
    return db.query(TimeSlot).filter(TimeSlot.id == slot_id).one().is_available

def assert_slot_invariant(db):
    """Every slot is unavailable exactly when a non-cancelled appointment holds it."""
    db.expire_all()
    for slot in db.query(TimeSlot).all():
        holders = db.query(Appointment).filter(
            Appointment.doctor_id == slot.doctor_id,
            Appointment.time_slot_id == slot.id,
            Appointment.status != AppointmentStatus.CANCELLED,
        ).count()
        assert holders <= 1, f"slot {slot.id} held by {holders} appointments"
        assert slot.is_available == (holders == 0), f"slot {slot.id} flag disagrees with appointments"

@pytest.fixture
def patient(db_session):
    return create_user(db_session, "patient@example.com", name="Alice Patient", phone="555-0101")

@pytest.fixture
def other_patient(db_session):
    return create_user(db_session, "bob@example.com", name="Bob Patient", phone="555-0102")

@pytest.fixture
def admin(db_session):
    return create_user(db_session, "admin@example.com", role=UserRole.ADMIN, name="Site Admin")

@pytest.fixture
def doctor(db_session):
    return create_doctor(db_session)
