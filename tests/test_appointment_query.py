from datetime import datetime

import pytest
from sqlalchemy import event

from medbook.core.errors import MAX_DB_INTEGER, ErrorKind, ServiceError
from medbook.models.appointment import Appointment, AppointmentStatus
from medbook.schemas.appointment import AppointmentCreate, AppointmentDetail
from medbook.services.appointment_ledger import AppointmentLedger
from medbook.services.appointment_query import build_pagination, parse_appointment_query
from medbook.services.booking_service import BookingCoordinator

from .conftest import TestingSessionLocal, create_doctor, engine

def compiled(clause):
    return str(clause.compile(compile_kwargs={"literal_binds": True}))

def test_defaults():
    query = parse_appointment_query([])

    assert query.filters == []
    assert query.page == 1
    assert query.limit == 25
    assert query.offset == 0
    assert query.select is None
    assert compiled(query.order_by[0]) == "appointments.appointment_date_time DESC"

def test_equality_and_comparison_filters():
    query = parse_appointment_query([
        ("status", "confirmed"),
        ("appointmentDateTime[gte]", "2025-01-10T09:00"),
        ("doctorId[lt]", "7"),
    ])

    equality, lower_bound, doctor_bound = query.filters
    assert equality.right.value == AppointmentStatus.CONFIRMED
    assert lower_bound.right.value == datetime(2025, 1, 10, 9, 0)
    assert compiled(doctor_bound) == "appointments.doctor_id < 7"

def test_in_filter_splits_values():
    query = parse_appointment_query([("status[in]", "pending,confirmed")])

    clause = query.filters[0]
    assert clause.left.key == Appointment.status.key
    assert "IN" in str(clause)

def test_reserved_params_are_not_filters():
    query = parse_appointment_query([("page", "3"), ("limit", "10"), ("sort", "status,-createdAt")])

    assert query.filters == []
    assert query.offset == 20
    assert [compiled(c) for c in query.order_by[:2]] == [
        "appointments.status ASC",
        "appointments.created_at DESC",
    ]

@pytest.mark.parametrize("page, limit", [("abc", "x"), ("0", "-5"), ("", "")])
def test_bad_paging_falls_back_to_defaults(page, limit):
    query = parse_appointment_query([("page", page), ("limit", limit)], default_limit=25)

    assert (query.page, query.limit) == (1, 25)

@pytest.mark.parametrize("params", [
    [("password", "x")],
    [("status[regex]", "conf")],
    [("status", "archived")],
    [("appointmentDateTime[gt]", "yesterday")],
    [("doctorId", "abc")],
    [("sort", "nope")],
    [("select", "patientName,secret")],
])
def test_invalid_queries_are_validation_errors(params):
    with pytest.raises(ServiceError) as exc_info:
        parse_appointment_query(params)

    assert exc_info.value.kind == ErrorKind.VALIDATION

def test_select_maps_wire_names_and_keeps_id():
    query = parse_appointment_query([("select", "patientName,appointmentDateTime")])

    assert query.select == {"id", "patient_name", "appointment_date_time"}

def test_pagination_links():
    assert build_pagination(page=1, limit=2, total=5) == {"next": {"page": 2, "limit": 2}}
    assert build_pagination(page=2, limit=2, total=5) == {
        "next": {"page": 3, "limit": 2},
        "prev": {"page": 1, "limit": 2},
    }
    assert build_pagination(page=3, limit=2, total=5) == {"prev": {"page": 2, "limit": 2}}
    assert build_pagination(page=1, limit=25, total=0) == {}

def test_limit_is_capped():
    query = parse_appointment_query([("limit", "5000")], default_limit=25, max_limit=100)

    assert query.limit == 100

def test_page_beyond_database_range_is_rejected():
    with pytest.raises(ServiceError) as exc_info:
        parse_appointment_query([("page", str(10 ** 20))])

    assert exc_info.value.kind == ErrorKind.VALIDATION

def test_largest_representable_page_is_accepted():
    query = parse_appointment_query([("page", str(MAX_DB_INTEGER // 25 + 1)), ("limit", "25")])

    assert query.offset <= MAX_DB_INTEGER

@pytest.mark.parametrize("key", ["doctorId", "patientId[gte]", "doctorId[in]"])
def test_out_of_range_keys_are_validation_errors(key):
    with pytest.raises(ServiceError) as exc_info:
        parse_appointment_query([(key, str(10 ** 20))])

    assert exc_info.value.kind == ErrorKind.VALIDATION

def test_listing_loads_related_records_in_bulk(db_session, patient):
    doctors = [create_doctor(db_session, slots=(("2025-01-10", "09:00"),), name=f"Dr. {n}") for n in "ABC"]
    for doctor in doctors:
        slot = doctor.time_slots[0]
        BookingCoordinator(db_session).reserve_and_book(
            AppointmentCreate(
                doctorId=doctor.id, timeSlotId=slot.id, appointmentDate=slot.date, appointmentTime=slot.time
            ),
            patient
        )

    session = TestingSessionLocal()
    statements = []

    def count(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    event.listen(engine, "before_cursor_execute", count)
    try:
        items, total = AppointmentLedger(session).search(parse_appointment_query([]))
        serialized = [AppointmentDetail.model_validate(item).model_dump() for item in items]
    finally:
        event.remove(engine, "before_cursor_execute", count)
        session.close()

    assert total == 3
    assert sorted(item["doctor"]["name"] for item in serialized) == ["Dr. A", "Dr. B", "Dr. C"]
    # count, page, doctors, patients
    assert len(statements) <= 4
