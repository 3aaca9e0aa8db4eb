from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import Optional

from ...core.database import get_db
from ...core.pubsub import NotificationChannel
from ...api.deps import get_bearer_token, get_identity_client, get_notification_channel
from ...services.booking_service import BookingService
from ...services.identity_client import IdentityClient
from ...schemas.appointment import (
    AppointmentCreate, AppointmentStatusUpdate, AppointmentResponse,
    AppointmentEnvelope, AppointmentListEnvelope
)

router = APIRouter(prefix="/appointments", tags=["Appointments"])

def get_booking_service(
    db: Session = Depends(get_db),
    identity_client: IdentityClient = Depends(get_identity_client),
    channel: Optional[NotificationChannel] = Depends(get_notification_channel)
) -> BookingService:
    return BookingService(db, identity_client, channel)

@router.post("", response_model=AppointmentEnvelope, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    appointment_data: AppointmentCreate,
    token: str = Depends(get_bearer_token),
    booking: BookingService = Depends(get_booking_service)
):
    """Book an appointment with a doctor."""
    appointment = await booking.create_appointment(token, appointment_data)
    return AppointmentEnvelope(
        message="Appointment created successfully",
        appointment=AppointmentResponse.model_validate(appointment)
    )

@router.get("", response_model=AppointmentListEnvelope)
async def list_appointments(
    token: str = Depends(get_bearer_token),
    booking: BookingService = Depends(get_booking_service)
):
    """List the caller's appointments, latest first."""
    appointments = await booking.list_appointments(token)
    return AppointmentListEnvelope(
        message="Appointments retrieved successfully",
        appointments=[AppointmentResponse.model_validate(a) for a in appointments]
    )

@router.patch("/{appointment_id}", response_model=AppointmentEnvelope)
async def update_appointment_status(
    appointment_id: str,
    status_update: AppointmentStatusUpdate,
    token: str = Depends(get_bearer_token),
    booking: BookingService = Depends(get_booking_service)
):
    """Change the status of an appointment."""
    appointment = await booking.update_status(token, appointment_id, status_update.status)
    return AppointmentEnvelope(
        message="Appointment status updated successfully",
        appointment=AppointmentResponse.model_validate(appointment)
    )
