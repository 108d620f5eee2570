from typing import List, Optional, Tuple

from sqlalchemy.orm import Session, selectinload

from ..models.appointment import Appointment
from .appointment_query import AppointmentQuery

def _with_parties():
    """Load doctor and patient summaries with the page instead of once per row."""
    return selectinload(Appointment.doctor), selectinload(Appointment.patient)

class AppointmentLedger:
    """Persistence for appointment records. Never commits; callers own the transaction."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, appointment_id: int) -> Optional[Appointment]:
        return self.db.query(Appointment).filter(Appointment.id == appointment_id).first()

    def add(self, appointment: Appointment) -> Appointment:
        self.db.add(appointment)
        self.db.flush()
        return appointment

    def delete(self, appointment: Appointment) -> None:
        self.db.delete(appointment)
        self.db.flush()

    def list_for_patient(self, patient_id: int) -> List[Appointment]:
        """A patient's appointments, newest first."""
        return self.db.query(Appointment).options(*_with_parties()).filter(
            Appointment.patient_id == patient_id
        ).order_by(
            Appointment.appointment_date_time.desc(),
            Appointment.id.desc()
        ).all()

    def search(self, query: AppointmentQuery) -> Tuple[List[Appointment], int]:
        """Return one page of matching appointments and the total match count."""
        base = self.db.query(Appointment).filter(*query.filters)
        total = base.count()

        items = base.options(*_with_parties()).order_by(*query.order_by).offset(query.offset).limit(query.limit).all()

        return items, total
