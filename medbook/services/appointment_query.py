"""
Translate listing query strings into SQLAlchemy criteria.

Every parameter other than ``select``, ``sort``, ``page`` and ``limit`` is a
filter: ``status=confirmed`` is an equality test, ``appointmentDateTime[gte]=2025-01-01``
a comparison and ``status[in]=pending,confirmed`` a membership test.
"""
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional, Set, Tuple
import operator
import re

from ..core.errors import MAX_DB_INTEGER, validation_error
from ..models.appointment import Appointment, AppointmentStatus
from ..schemas.appointment import APPOINTMENT_FIELD_NAMES

RESERVED_PARAMS = ("select", "sort", "page", "limit")
DEFAULT_SORT = "-appointmentDateTime"
DEFAULT_MAX_LIMIT = 100

_COMPARISONS = {
    "gt": operator.gt,
    "gte": operator.ge,
    "lt": operator.lt,
    "lte": operator.le,
}

_KEY_PATTERN = re.compile(r"^(?P<field>[A-Za-z_]+)(?:\[(?P<op>[A-Za-z]+)\])?$")

def _parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value)

def _parse_key(value: str) -> int:
    number = int(value)
    if abs(number) > MAX_DB_INTEGER:
        raise ValueError(value)
    return number

FILTERABLE_FIELDS: Dict[str, Tuple[Any, Callable[[str], Any]]] = {
    "doctorId": (Appointment.doctor_id, _parse_key),
    "patientId": (Appointment.patient_id, _parse_key),
    "patientName": (Appointment.patient_name, str),
    "patientEmail": (Appointment.patient_email, str),
    "patientPhone": (Appointment.patient_phone, str),
    "appointmentDateTime": (Appointment.appointment_date_time, _parse_datetime),
    "timeSlotId": (Appointment.time_slot_id, str),
    "status": (Appointment.status, AppointmentStatus),
    "createdAt": (Appointment.created_at, _parse_datetime),
    "updatedAt": (Appointment.updated_at, _parse_datetime),
}

class AppointmentQuery(NamedTuple):
    filters: List[Any]
    order_by: List[Any]
    page: int
    limit: int
    select: Optional[Set[str]]

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

def _coerce(field: str, raw: str, convert: Callable[[str], Any]) -> Any:
    try:
        return convert(raw.strip())
    except ValueError:
        raise validation_error(f"Invalid value '{raw}' for filter '{field}'.") from None

def _build_filter(key: str, raw: str):
    match = _KEY_PATTERN.match(key)
    if not match or match.group("field") not in FILTERABLE_FIELDS:
        raise validation_error(f"Unknown filter field: {key}")

    field, op = match.group("field"), match.group("op")
    column, convert = FILTERABLE_FIELDS[field]

    if op is None:
        return column == _coerce(field, raw, convert)
    if op == "in":
        values = [_coerce(field, part, convert) for part in raw.split(",") if part.strip()]
        if not values:
            raise validation_error(f"Filter '{key}' needs at least one value.")
        return column.in_(values)
    if op in _COMPARISONS:
        return _COMPARISONS[op](column, _coerce(field, raw, convert))

    raise validation_error(f"Unsupported filter operator: {op}")

def _build_order_by(sort: str) -> List[Any]:
    clauses = []
    for token in sort.split(","):
        token = token.strip()
        if not token:
            continue
        descending = token.startswith("-")
        field = token.lstrip("-+")
        if field not in FILTERABLE_FIELDS:
            raise validation_error(f"Unknown sort field: {field}")
        column = FILTERABLE_FIELDS[field][0]
        clauses.append(column.desc() if descending else column.asc())
    # stable pages when the sort key ties
    clauses.append(Appointment.id.asc())
    return clauses

def _positive_int(raw: Optional[str], default: int) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default

def _build_select(raw: Optional[str]) -> Optional[Set[str]]:
    if not raw:
        return None
    selected = set()
    for name in raw.split(","):
        name = name.strip()
        if not name:
            continue
        if name not in APPOINTMENT_FIELD_NAMES:
            raise validation_error(f"Unknown select field: {name}")
        selected.add(APPOINTMENT_FIELD_NAMES[name])
    selected.add("id")
    return selected

def parse_appointment_query(
    params: Iterable[Tuple[str, str]],
    default_limit: int = 25,
    max_limit: int = DEFAULT_MAX_LIMIT,
) -> AppointmentQuery:
    """Build an AppointmentQuery from raw (key, value) query pairs.

    ``limit`` is capped at ``max_limit``; a page whose offset the database
    cannot represent is a validation error.
    """
    reserved: Dict[str, str] = {}
    filters = []

    for key, value in params:
        if key in RESERVED_PARAMS:
            reserved[key] = value
            continue
        filters.append(_build_filter(key, value))

    page = _positive_int(reserved.get("page"), 1)
    limit = min(_positive_int(reserved.get("limit"), default_limit), max_limit)
    if (page - 1) * limit > MAX_DB_INTEGER:
        raise validation_error(f"Page {page} is out of range.")

    return AppointmentQuery(
        filters=filters,
        order_by=_build_order_by(reserved.get("sort") or DEFAULT_SORT),
        page=page,
        limit=limit,
        select=_build_select(reserved.get("select")),
    )

def build_pagination(page: int, limit: int, total: int) -> dict:
    """Links to neighbouring pages, omitted at either end."""
    pagination = {}
    if page * limit < total:
        pagination["next"] = {"page": page + 1, "limit": limit}
    if page > 1:
        pagination["prev"] = {"page": page - 1, "limit": limit}
    return pagination
