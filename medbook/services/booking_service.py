"""
Booking coordinator.

A booking is one transaction: the slot is flipped with a conditional UPDATE and
the appointment row is inserted behind it. Either both are committed or the
session is rolled back and nothing is left behind. Two requests racing for the
same slot are separated by the database: the loser's UPDATE matches no
available row and the booking fails with a conflict.
"""
from datetime import datetime
from typing import NamedTuple, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.errors import (
    ServiceError, conflict, internal_error, not_found, parse_identifier, validation_error
)
from ..models.appointment import Appointment, AppointmentStatus
from ..models.user import User
from ..schemas.appointment import AppointmentCreate
from ..schemas.common import is_valid_email
from .appointment_ledger import AppointmentLedger
from .availability_store import AvailabilityStore

logger = logging.getLogger(__name__)

SLOT_NOT_AVAILABLE = "Selected time slot is not available."

_DATE_FORMAT = "%Y-%m-%d"
_TIME_FORMATS = ("%H:%M", "%H:%M:%S")

class PatientContact(NamedTuple):
    name: str
    email: str
    phone: str

def _clean(value: Optional[str]) -> str:
    return value.strip() if isinstance(value, str) else ""

def combine_date_time(appointment_date: str, appointment_time: str) -> datetime:
    """Combine ``YYYY-MM-DD`` and ``HH:MM`` into one timestamp."""
    try:
        day = datetime.strptime(appointment_date.strip(), _DATE_FORMAT).date()
    except ValueError:
        raise validation_error("Invalid appointment date. Use YYYY-MM-DD.") from None

    for time_format in _TIME_FORMATS:
        try:
            moment = datetime.strptime(appointment_time.strip(), time_format).time()
            return datetime.combine(day, moment)
        except ValueError:
            continue

    raise validation_error("Invalid appointment time. Use HH:MM.")

def resolve_patient_contact(request: AppointmentCreate, patient: User) -> PatientContact:
    """Fill missing contact fields from the authenticated user's profile."""
    name = _clean(request.patient_name) or _clean(patient.name)
    email = _clean(request.patient_email) or _clean(patient.email)
    phone = _clean(request.patient_phone) or _clean(patient.phone)

    if not name:
        raise validation_error("Patient name is required")
    if not email:
        raise validation_error("Patient email is required")
    if not is_valid_email(email):
        raise validation_error("Please fill a valid email address")
    if not phone:
        raise validation_error("Patient phone number is required")

    return PatientContact(name=name, email=email, phone=phone)

class BookingCoordinator:
    def __init__(self, db: Session):
        self.db = db
        self.slots = AvailabilityStore(db)
        self.ledger = AppointmentLedger(db)

    def reserve_and_book(self, request: AppointmentCreate, patient: User) -> Appointment:
        """Reserve the requested slot and record a confirmed appointment for it."""
        doctor_ref = "" if request.doctor_id is None else str(request.doctor_id).strip()
        slot_id = _clean(request.time_slot_id)
        if not all((doctor_ref, _clean(request.appointment_date), _clean(request.appointment_time), slot_id)):
            raise validation_error("Doctor, date, and time slot are required.")

        doctor_id = parse_identifier(request.doctor_id, "Doctor")
        contact = resolve_patient_contact(request, patient)
        appointment_date_time = combine_date_time(request.appointment_date, request.appointment_time)

        try:
            doctor = self.slots.get_doctor(doctor_id)
            if not doctor:
                raise not_found("Doctor not found.")

            slot = self.slots.find_slot(doctor.id, slot_id)
            if not slot:
                raise not_found("Selected time slot was not found.")
            if not slot.is_available:
                raise conflict(SLOT_NOT_AVAILABLE)

            # The read above may already be stale; the conditional write decides.
            if not self.slots.reserve_slot(doctor.id, slot_id):
                raise conflict(SLOT_NOT_AVAILABLE)

            appointment = self._create_appointment(
                doctor_id=doctor.id,
                patient_id=patient.id,
                contact=contact,
                appointment_date_time=appointment_date_time,
                slot_id=slot_id,
            )

            self.db.commit()
        except ServiceError as exc:
            self.db.rollback()
            logger.info(f"Booking rejected for doctor {doctor_id}, slot {slot_id}: {exc.message}")
            raise
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error(f"Booking transaction failed for doctor {doctor_id}, slot {slot_id}: {str(exc)}")
            raise internal_error("Appointment booking failed.") from exc

        self.db.refresh(appointment)
        logger.info(f"Appointment {appointment.id} booked: doctor {doctor_id}, slot {slot_id}, patient {patient.id}")
        return appointment

    def _create_appointment(
        self,
        doctor_id: int,
        patient_id: int,
        contact: PatientContact,
        appointment_date_time: datetime,
        slot_id: str,
    ) -> Appointment:
        appointment = Appointment(
            doctor_id=doctor_id,
            patient_id=patient_id,
            patient_name=contact.name,
            patient_email=contact.email,
            patient_phone=contact.phone,
            appointment_date_time=appointment_date_time,
            time_slot_id=slot_id,
            status=AppointmentStatus.CONFIRMED,
        )
        return self.ledger.add(appointment)
