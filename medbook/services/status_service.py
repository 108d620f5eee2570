"""
Status transitions and deletion of appointments.

The status write is committed on its own. Releasing the slot afterwards is a
separate best-effort step: its outcome is logged and returned, and a failed
release never undoes the status change. Restoring a cancelled appointment is
the opposite case: the slot has to be taken back first, inside the same
transaction, or the status stays cancelled.
"""
from typing import NamedTuple, Optional, Union
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.errors import (
    ServiceError, conflict, internal_error, not_found, parse_identifier, validation_error
)
from ..models.appointment import Appointment, AppointmentStatus
from .appointment_ledger import AppointmentLedger
from .availability_store import AvailabilityStore, SlotRelease

logger = logging.getLogger(__name__)

INVALID_STATUS = "Invalid status provided. Must be pending, confirmed, cancelled, or completed."

class TransitionResult(NamedTuple):
    appointment: Optional[Appointment]
    slot_release: SlotRelease

def parse_status(raw: Optional[str]) -> AppointmentStatus:
    try:
        return AppointmentStatus((raw or "").strip())
    except ValueError:
        raise validation_error(INVALID_STATUS) from None

class StatusTransitionHandler:
    def __init__(self, db: Session):
        self.db = db
        self.slots = AvailabilityStore(db)
        self.ledger = AppointmentLedger(db)

    def _load(self, appointment_id: Union[str, int]) -> Appointment:
        key = parse_identifier(appointment_id, "Appointment")
        appointment = self.ledger.get(key)
        if not appointment:
            raise not_found(f"Appointment not found with ID of {appointment_id}")
        return appointment

    def update_status(self, appointment_id: Union[str, int], new_status: Optional[str]) -> TransitionResult:
        status = parse_status(new_status)
        appointment = self._load(appointment_id)
        previous = appointment.status

        try:
            if previous == AppointmentStatus.CANCELLED and status != AppointmentStatus.CANCELLED:
                self._reclaim_slot(appointment)

            appointment.status = status
            self.db.commit()
        except ServiceError:
            self.db.rollback()
            raise
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error(f"Status update failed for appointment {appointment_id}: {str(exc)}")
            raise internal_error("Appointment status update failed.") from exc

        self.db.refresh(appointment)
        logger.info(f"Appointment {appointment.id} status {previous.value} -> {status.value}")

        release = SlotRelease.SKIPPED
        if status == AppointmentStatus.CANCELLED and previous != AppointmentStatus.CANCELLED:
            release = self._release_slot(appointment.doctor_id, appointment.time_slot_id, appointment.id)

        return TransitionResult(appointment, release)

    def delete_appointment(self, appointment_id: Union[str, int]) -> TransitionResult:
        appointment = self._load(appointment_id)
        doctor_id, slot_id, key = appointment.doctor_id, appointment.time_slot_id, appointment.id
        held_slot = appointment.is_active

        try:
            self.ledger.delete(appointment)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error(f"Deleting appointment {key} failed: {str(exc)}")
            raise internal_error("Appointment deletion failed.") from exc

        logger.info(f"Appointment {key} deleted")

        # A cancelled appointment already gave its slot back; it may belong to someone else now
        release = SlotRelease.SKIPPED
        if held_slot:
            release = self._release_slot(doctor_id, slot_id, key)

        return TransitionResult(None, release)

    def _reclaim_slot(self, appointment: Appointment) -> None:
        if self.slots.reserve_slot(appointment.doctor_id, appointment.time_slot_id):
            return
        if not self.slots.find_slot(appointment.doctor_id, appointment.time_slot_id):
            raise not_found("The time slot for this appointment no longer exists.")
        raise conflict("The time slot for this appointment has been booked by someone else.")

    def _release_slot(self, doctor_id: int, slot_id: str, appointment_id: int) -> SlotRelease:
        try:
            released = self.slots.release_slot(doctor_id, slot_id)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(
                f"Could not release slot {slot_id} of doctor {doctor_id} for appointment {appointment_id}"
            )
            return SlotRelease.FAILED

        if not released:
            logger.warning(
                f"Slot {slot_id} of doctor {doctor_id} no longer exists; nothing to release for appointment {appointment_id}"
            )
            return SlotRelease.NOT_FOUND

        logger.info(f"Slot {slot_id} of doctor {doctor_id} released by appointment {appointment_id}")
        return SlotRelease.RELEASED
