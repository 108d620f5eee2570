from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session
from typing import List, Optional, Set

from ...core.database import get_db
from ...api.deps import get_admin_user, get_current_user, get_doctor_user
from ...models.appointment import Appointment
from ...models.user import User
from ...schemas.appointment import (
    AppointmentCreate, AppointmentDetail, AppointmentOut, AppointmentStatusUpdate
)
from ...schemas.common import ApiResponse
from ...services.appointment_service import AppointmentService
from ...services.booking_service import BookingCoordinator
from ...services.status_service import StatusTransitionHandler

router = APIRouter(prefix="/appointments", tags=["Appointments"])

def _serialize(appointment: Appointment, select: Optional[Set[str]] = None) -> dict:
    return AppointmentDetail.model_validate(appointment).model_dump(
        mode="json", by_alias=True, include=select
    )

@router.post(
    "",
    response_model=ApiResponse[AppointmentOut],
    status_code=status.HTTP_201_CREATED
)
async def book_appointment(
    booking: AppointmentCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Book a time slot for the authenticated patient."""
    appointment = BookingCoordinator(db).reserve_and_book(booking, current_user)
    return ApiResponse(
        message="Appointment booked successfully!",
        data=AppointmentOut.model_validate(appointment)
    )

@router.get("/my-history")
async def get_my_history(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Appointments of the logged-in user, newest first."""
    appointments = AppointmentService(db).get_my_history(current_user)
    return {
        "success": True,
        "count": len(appointments),
        "data": [_serialize(appointment) for appointment in appointments],
    }

@router.get("")
async def get_all_appointments(
    request: Request,
    _: User = Depends(get_doctor_user),
    db: Session = Depends(get_db)
):
    """Filter, sort and paginate all appointments."""
    page = AppointmentService(db).get_all_appointments(request.query_params.multi_items())
    data: List[dict] = [_serialize(appointment, page.select) for appointment in page.items]
    return {
        "success": True,
        "count": len(data),
        "total": page.total,
        "pagination": page.pagination,
        "data": data,
    }

@router.get("/{appointment_id}", response_model=ApiResponse[AppointmentDetail])
async def get_appointment(
    appointment_id: str,
    _: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get a single appointment."""
    appointment = AppointmentService(db).get_appointment_by_id(appointment_id)
    return ApiResponse(
        message="Appointment details fetched successfully.",
        data=AppointmentDetail.model_validate(appointment)
    )

@router.put("/{appointment_id}", response_model=ApiResponse[AppointmentOut])
async def update_appointment_status(
    appointment_id: str,
    update: AppointmentStatusUpdate,
    _: User = Depends(get_doctor_user),
    db: Session = Depends(get_db)
):
    """Change an appointment's status; cancelling gives the slot back."""
    result = StatusTransitionHandler(db).update_status(appointment_id, update.status)
    return ApiResponse(
        message=f"Appointment status updated to {result.appointment.status.value}.",
        data=AppointmentOut.model_validate(result.appointment)
    )

@router.delete("/{appointment_id}", response_model=ApiResponse[dict])
async def delete_appointment(
    appointment_id: str,
    _: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """Delete an appointment and give its slot back."""
    StatusTransitionHandler(db).delete_appointment(appointment_id)
    return ApiResponse(message="Appointment deleted successfully.", data={})
