from typing import Optional, List
from datetime import datetime
from pydantic import field_serializer

from .common import CamelModel, as_utc
from ..models.notification import NotificationType, DeliveryStatus


class NotificationEvent(CamelModel):
    """Message carried on the notification channel."""

    appointment_id: str
    patient_id: str
    doctor_id: str
    message: str
    type: NotificationType
    timestamp: Optional[datetime] = None


class NotificationResponse(CamelModel):
    id: str
    appointment_id: str
    patient_id: str
    doctor_id: str
    message: str
    type: NotificationType
    status: DeliveryStatus
    read: bool
    created_at: datetime

    @field_serializer("created_at")
    def serialize_utc(self, value: datetime) -> datetime:
        return as_utc(value)


class NotificationListResponse(CamelModel):
    success: bool = True
    data: List[NotificationResponse]
    count: int


class NotificationEnvelope(CamelModel):
    success: bool = True
    data: NotificationResponse


class NotificationStats(CamelModel):
    total: int
    sent: int
    read: int
    unread: int


class NotificationStatsResponse(CamelModel):
    success: bool = True
    data: NotificationStats
