from sqlalchemy import (
    Column, Integer, String, ForeignKey, DateTime, Boolean, Text, Float,
    CheckConstraint, Enum as SQLEnum
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
import uuid

from ..core.database import Base

DEFAULT_DOCTOR_IMAGE = "https://placehold.co/150x150/cccccc/ffffff?text=Doctor"

class DoctorAvailability(str, enum.Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    ON_LEAVE = "on-leave"

def _new_slot_id() -> str:
    return uuid.uuid4().hex

class Doctor(Base):
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, index=True)

    # Profile
    name = Column(String(100), nullable=False, index=True)
    specialization = Column(String(100), nullable=False, index=True)
    image = Column(String(500), default=DEFAULT_DOCTOR_IMAGE)
    education = Column(String(255), nullable=True)
    about = Column(Text, nullable=True)
    rating = Column(Float, default=0)
    experience = Column(Integer, default=0)

    # Coarse status, independent of per-slot flags
    availability = Column(
        SQLEnum(DoctorAvailability, values_callable=lambda values: [v.value for v in values]),
        default=DoctorAvailability.AVAILABLE,
        nullable=False,
    )

    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    time_slots = relationship(
        "TimeSlot",
        back_populates="doctor",
        order_by="TimeSlot.position",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint("rating >= 0 AND rating <= 5", name="ck_doctors_rating_range"),
        CheckConstraint("experience >= 0", name="ck_doctors_experience_positive"),
    )

    def __repr__(self):
        return f"<Doctor(id={self.id}, name='{self.name}', specialization='{self.specialization}')>"

class TimeSlot(Base):
    __tablename__ = "time_slots"

    id = Column(String(32), primary_key=True, default=_new_slot_id)
    doctor_id = Column(Integer, ForeignKey("doctors.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    date = Column(String(10), nullable=False)  # YYYY-MM-DD
    time = Column(String(8), nullable=False)   # HH:MM
    is_available = Column(Boolean, nullable=False, default=True)

    doctor = relationship("Doctor", back_populates="time_slots")

    def __repr__(self):
        return f"<TimeSlot(id='{self.id}', doctor_id={self.doctor_id}, available={self.is_available})>"
