from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from ..models.doctor import DoctorAvailability
from .common import CamelModel

class TimeSlotCreate(CamelModel):
    date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    time: str = Field(..., pattern=r"^\d{2}:\d{2}$")

class TimeSlotPublic(CamelModel):
    """Slot as shown in directory listings, without its booking flag."""
    id: str
    date: str
    time: str

class TimeSlotOut(TimeSlotPublic):
    is_available: bool

class DoctorCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    specialization: str = Field(..., min_length=1, max_length=100)
    image: Optional[str] = None
    availability: DoctorAvailability = DoctorAvailability.AVAILABLE
    rating: float = Field(0, ge=0, le=5)
    experience: int = Field(0, ge=0)
    education: Optional[str] = None
    about: Optional[str] = None
    time_slots: List[TimeSlotCreate] = Field(default_factory=list)

    @field_validator("name", "specialization")
    @classmethod
    def strip_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

class DoctorUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    specialization: Optional[str] = Field(None, min_length=1, max_length=100)
    image: Optional[str] = None
    availability: Optional[DoctorAvailability] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    experience: Optional[int] = Field(None, ge=0)
    education: Optional[str] = None
    about: Optional[str] = None

class DoctorSummary(CamelModel):
    id: int
    name: str
    specialization: str

class DoctorListItem(DoctorSummary):
    image: Optional[str] = None
    availability: DoctorAvailability
    rating: float
    experience: int
    education: Optional[str] = None
    about: Optional[str] = None
    time_slots: List[TimeSlotPublic] = []

class DoctorOut(DoctorListItem):
    time_slots: List[TimeSlotOut] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
