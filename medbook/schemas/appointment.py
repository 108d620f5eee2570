from datetime import datetime
from typing import Optional, Union

from pydantic import Field

from ..models.appointment import AppointmentStatus
from .common import CamelModel
from .doctor import DoctorSummary

class AppointmentCreate(CamelModel):
    # Presence is checked by the booking coordinator so that a missing field
    # gets the same answer as an empty one.
    doctor_id: Optional[Union[int, str]] = None
    appointment_date: Optional[str] = None
    appointment_time: Optional[str] = None
    time_slot_id: Optional[str] = None
    patient_name: Optional[str] = None
    patient_email: Optional[str] = None
    patient_phone: Optional[str] = None

class AppointmentStatusUpdate(CamelModel):
    status: Optional[str] = Field(None, description="pending, confirmed, cancelled or completed")

class PatientSummary(CamelModel):
    id: int
    name: str

class AppointmentOut(CamelModel):
    id: int
    doctor_id: int
    patient_id: int
    patient_name: str
    patient_email: str
    patient_phone: str
    appointment_date_time: datetime
    time_slot_id: str
    status: AppointmentStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class AppointmentDetail(AppointmentOut):
    doctor: Optional[DoctorSummary] = None
    patient: Optional[PatientSummary] = None

# Wire name -> attribute name, used to honour ?select=
APPOINTMENT_FIELD_NAMES = {
    field.alias or name: name for name, field in AppointmentDetail.model_fields.items()
}
