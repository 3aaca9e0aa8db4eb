from pydantic import Field, field_serializer, field_validator
from typing import Optional, List
from datetime import datetime

from .common import CamelModel, as_utc, to_utc_naive
from ..models.appointment import AppointmentStatus


class AppointmentCreate(CamelModel):
    doctor_id: str = Field(..., min_length=1)
    date_time: datetime
    notes: Optional[str] = None

    @field_validator("date_time")
    @classmethod
    def must_be_in_future(cls, value: datetime) -> datetime:
        value = to_utc_naive(value)
        if value <= datetime.utcnow():
            raise ValueError("dateTime must be in the future")
        return value


class AppointmentStatusUpdate(CamelModel):
    status: AppointmentStatus


class AppointmentResponse(CamelModel):
    id: str
    patient_id: str
    doctor_id: str
    date_time: datetime
    status: AppointmentStatus
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_serializer("date_time", "created_at", "updated_at")
    def serialize_utc(self, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)


class AppointmentEnvelope(CamelModel):
    message: str
    appointment: AppointmentResponse


class AppointmentListEnvelope(CamelModel):
    message: str
    appointments: List[AppointmentResponse]
