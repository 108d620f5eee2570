from typing import Iterable, List, NamedTuple, Optional, Set, Tuple, Union

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.errors import not_found, parse_identifier
from ..models.appointment import Appointment
from ..models.user import User
from .appointment_ledger import AppointmentLedger
from .appointment_query import build_pagination, parse_appointment_query

class AppointmentPage(NamedTuple):
    items: List[Appointment]
    total: int
    pagination: dict
    select: Optional[Set[str]]

class AppointmentService:
    """Read side of the appointment ledger."""

    def __init__(self, db: Session):
        self.db = db
        self.ledger = AppointmentLedger(db)

    def get_appointment_by_id(self, appointment_id: Union[str, int]) -> Appointment:
        key = parse_identifier(appointment_id, "Appointment")
        appointment = self.ledger.get(key)
        if not appointment:
            raise not_found(f"Appointment not found with ID of {appointment_id}")
        return appointment

    def get_all_appointments(self, params: Iterable[Tuple[str, str]]) -> AppointmentPage:
        query = parse_appointment_query(
            params,
            default_limit=settings.DEFAULT_PAGE_SIZE,
            max_limit=settings.MAX_PAGE_SIZE
        )
        items, total = self.ledger.search(query)
        return AppointmentPage(
            items=items,
            total=total,
            pagination=build_pagination(query.page, query.limit, total),
            select=query.select,
        )

    def get_my_history(self, patient: User) -> List[Appointment]:
        return self.ledger.list_for_patient(patient.id)
