from typing import List, Optional, Union
import logging

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.errors import internal_error, not_found, parse_identifier
from ..models.doctor import DEFAULT_DOCTOR_IMAGE, Doctor, TimeSlot
from ..schemas.doctor import DoctorCreate, DoctorUpdate, TimeSlotCreate
from .availability_store import AvailabilityStore

logger = logging.getLogger(__name__)

class DoctorService:
    def __init__(self, db: Session):
        self.db = db
        self.slots = AvailabilityStore(db)

    def _load(self, doctor_id: Union[str, int]) -> Doctor:
        key = parse_identifier(doctor_id, "Doctor")
        doctor = self.slots.get_doctor(key)
        if not doctor:
            raise not_found(f"Doctor not found with ID of {doctor_id}")
        return doctor

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error(f"Failed to {action}: {str(exc)}")
            raise internal_error(f"Failed to {action}.") from exc

    def list_doctors(self, search: Optional[str] = None) -> List[Doctor]:
        """All doctors, or those whose name or specialization contains ``search``."""
        query = self.db.query(Doctor)
        if search and search.strip():
            pattern = f"%{search.strip().lower()}%"
            query = query.filter(or_(
                Doctor.name.ilike(pattern),
                Doctor.specialization.ilike(pattern)
            ))

        doctors = query.order_by(Doctor.name, Doctor.id).all()
        if not doctors:
            raise not_found("No doctors found matching your criteria.")
        return doctors

    def get_doctor(self, doctor_id: Union[str, int]) -> Doctor:
        return self._load(doctor_id)

    def get_availability(self, doctor_id: Union[str, int]) -> List[TimeSlot]:
        doctor = self._load(doctor_id)
        return self.slots.available_slots(doctor.id)

    def create_doctor(self, data: DoctorCreate) -> Doctor:
        doctor = Doctor(
            name=data.name,
            specialization=data.specialization,
            image=data.image or DEFAULT_DOCTOR_IMAGE,
            availability=data.availability,
            rating=data.rating,
            experience=data.experience,
            education=data.education,
            about=data.about,
        )
        self.db.add(doctor)
        self.slots.add_slots(doctor, [slot.model_dump() for slot in data.time_slots])

        self._commit("create doctor")
        self.db.refresh(doctor)
        logger.info(f"Doctor {doctor.id} created with {len(data.time_slots)} time slots")
        return doctor

    def update_doctor(self, doctor_id: Union[str, int], data: DoctorUpdate) -> Doctor:
        """Update profile fields. Slot flags are only ever changed by bookings."""
        doctor = self._load(doctor_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field in ("name", "specialization", "availability", "rating", "experience"):
                continue
            setattr(doctor, field, value)

        self._commit("update doctor")
        self.db.refresh(doctor)
        return doctor

    def add_time_slots(self, doctor_id: Union[str, int], slots: List[TimeSlotCreate]) -> Doctor:
        doctor = self._load(doctor_id)
        self.slots.add_slots(doctor, [slot.model_dump() for slot in slots])

        self._commit("add time slots")
        self.db.refresh(doctor)
        logger.info(f"Added {len(slots)} time slots to doctor {doctor.id}")
        return doctor

    def delete_doctor(self, doctor_id: Union[str, int]) -> None:
        doctor = self._load(doctor_id)
        self.db.delete(doctor)
        self._commit("delete doctor")
        logger.info(f"Doctor {doctor_id} deleted")
