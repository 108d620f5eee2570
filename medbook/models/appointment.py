from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Enum as SQLEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from ..core.database import Base

class AppointmentStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)

    # doctor_id and time_slot_id are lookup keys, not owning foreign keys:
    # an appointment outlives the doctor record it points to.
    doctor_id = Column(Integer, nullable=False, index=True)
    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    time_slot_id = Column(String(32), nullable=False, index=True)

    # Contact snapshot taken at booking time
    patient_name = Column(String(100), nullable=False)
    patient_email = Column(String(255), nullable=False)
    patient_phone = Column(String(30), nullable=False)

    appointment_date_time = Column(DateTime, nullable=False, index=True)
    status = Column(
        SQLEnum(AppointmentStatus, values_callable=lambda values: [v.value for v in values]),
        default=AppointmentStatus.PENDING,
        nullable=False,
    )

    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    doctor = relationship(
        "Doctor",
        primaryjoin="foreign(Appointment.doctor_id) == Doctor.id",
        viewonly=True,
    )
    patient = relationship("User", viewonly=True)

    @property
    def is_active(self) -> bool:
        """True while the appointment holds its time slot."""
        return self.status != AppointmentStatus.CANCELLED

    def __repr__(self):
        return f"<Appointment(id={self.id}, patient_id={self.patient_id}, doctor_id={self.doctor_id}, date='{self.appointment_date_time}')>"
