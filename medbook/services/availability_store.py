"""
Availability store: doctors and their time slots.

Slot flags only change through ``reserve_slot`` and ``release_slot``. Both are
single conditional UPDATE statements, so the database row is the only thing
that arbitrates between concurrent bookings of the same slot.
"""
from enum import Enum
from typing import Iterable, List, Optional

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from ..models.doctor import Doctor, TimeSlot

class SlotRelease(str, Enum):
    RELEASED = "released"
    NOT_FOUND = "not_found"
    FAILED = "failed"
    SKIPPED = "skipped"

class AvailabilityStore:
    def __init__(self, db: Session):
        self.db = db

    def get_doctor(self, doctor_id: int) -> Optional[Doctor]:
        return self.db.query(Doctor).filter(Doctor.id == doctor_id).first()

    def find_slot(self, doctor_id: int, slot_id: str) -> Optional[TimeSlot]:
        """Locate a slot inside the given doctor's schedule."""
        return self.db.query(TimeSlot).filter(
            TimeSlot.doctor_id == doctor_id,
            TimeSlot.id == slot_id
        ).first()

    def available_slots(self, doctor_id: int) -> List[TimeSlot]:
        return self.db.query(TimeSlot).filter(
            TimeSlot.doctor_id == doctor_id,
            TimeSlot.is_available.is_(True)
        ).order_by(TimeSlot.position).all()

    def reserve_slot(self, doctor_id: int, slot_id: str) -> bool:
        """Test-and-set the slot to unavailable.

        Returns False when no available row matched, i.e. the slot is gone or
        somebody else holds it. Does not commit.
        """
        result = self.db.execute(
            update(TimeSlot)
            .where(
                TimeSlot.doctor_id == doctor_id,
                TimeSlot.id == slot_id,
                TimeSlot.is_available.is_(True),
            )
            .values(is_available=False)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount == 1

    def release_slot(self, doctor_id: int, slot_id: str) -> bool:
        """Mark the slot bookable again. Returns False if the slot no longer exists. Does not commit."""
        result = self.db.execute(
            update(TimeSlot)
            .where(
                TimeSlot.doctor_id == doctor_id,
                TimeSlot.id == slot_id,
            )
            .values(is_available=True)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount == 1

    def add_slots(self, doctor: Doctor, slots: Iterable[dict]) -> List[TimeSlot]:
        """Append new, available slots at the end of the doctor's schedule."""
        last_position = self.db.query(func.max(TimeSlot.position)).filter(
            TimeSlot.doctor_id == doctor.id
        ).scalar()
        position = last_position + 1 if last_position is not None else 0

        created = []
        for slot in slots:
            time_slot = TimeSlot(
                date=slot["date"],
                time=slot["time"],
                is_available=True,
                position=position,
            )
            doctor.time_slots.append(time_slot)
            created.append(time_slot)
            position += 1

        return created
