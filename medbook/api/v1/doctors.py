from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from ...core.database import get_db
from ...api.deps import get_admin_user
from ...models.user import User
from ...schemas.common import ApiResponse
from ...schemas.doctor import (
    DoctorCreate, DoctorListItem, DoctorOut, DoctorUpdate, TimeSlotCreate, TimeSlotOut
)
from ...services.doctor_service import DoctorService

router = APIRouter(prefix="/doctors", tags=["Doctors"])

@router.get("")
async def list_doctors(
    search: Optional[str] = Query(None, description="Matches name or specialization"),
    db: Session = Depends(get_db)
):
    """List doctors, optionally searching by name or specialization."""
    doctors = DoctorService(db).list_doctors(search)
    return {
        "success": True,
        "count": len(doctors),
        "data": [
            DoctorListItem.model_validate(doctor).model_dump(mode="json", by_alias=True)
            for doctor in doctors
        ],
        "message": "Doctors fetched successfully.",
    }

@router.get("/{doctor_id}", response_model=ApiResponse[DoctorOut])
async def get_doctor(doctor_id: str, db: Session = Depends(get_db)):
    doctor = DoctorService(db).get_doctor(doctor_id)
    return ApiResponse(
        message="Doctor details fetched successfully.",
        data=DoctorOut.model_validate(doctor)
    )

@router.get("/{doctor_id}/availability", response_model=ApiResponse[List[TimeSlotOut]])
async def get_doctor_availability(doctor_id: str, db: Session = Depends(get_db)):
    """Only the slots that can still be booked."""
    slots = DoctorService(db).get_availability(doctor_id)
    return ApiResponse(
        message="Doctor availability fetched successfully.",
        data=[TimeSlotOut.model_validate(slot) for slot in slots]
    )

@router.post("", response_model=ApiResponse[DoctorOut], status_code=status.HTTP_201_CREATED)
async def create_doctor(
    data: DoctorCreate,
    _: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    doctor = DoctorService(db).create_doctor(data)
    return ApiResponse(message="Doctor created successfully.", data=DoctorOut.model_validate(doctor))

@router.put("/{doctor_id}", response_model=ApiResponse[DoctorOut])
async def update_doctor(
    doctor_id: str,
    data: DoctorUpdate,
    _: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    doctor = DoctorService(db).update_doctor(doctor_id, data)
    return ApiResponse(message="Doctor updated successfully.", data=DoctorOut.model_validate(doctor))

@router.post(
    "/{doctor_id}/time-slots",
    response_model=ApiResponse[DoctorOut],
    status_code=status.HTTP_201_CREATED
)
async def add_time_slots(
    doctor_id: str,
    slots: List[TimeSlotCreate],
    _: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    doctor = DoctorService(db).add_time_slots(doctor_id, slots)
    return ApiResponse(message="Time slots added successfully.", data=DoctorOut.model_validate(doctor))

@router.delete("/{doctor_id}", response_model=ApiResponse[dict])
async def delete_doctor(
    doctor_id: str,
    _: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    DoctorService(db).delete_doctor(doctor_id)
    return ApiResponse(message="Doctor deleted successfully.", data={})
