from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
import logging

from ...core.database import get_db
from ...core.security import UserRole, AuthorizationError
from ...api.deps import get_current_identity, get_admin_identity
from ...models.notification import NotificationType
from ...services.notification_service import NotificationService
from ...schemas.auth import Identity
from ...schemas.notification import (
    NotificationResponse, NotificationListResponse,
    NotificationEnvelope, NotificationStatsResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["Notifications"])

# Declared before /{user_id} so "stats" is not taken for a user id
@router.get("/stats", response_model=NotificationStatsResponse)
async def get_stats(
    db: Session = Depends(get_db),
    admin: Identity = Depends(get_admin_identity)
):
    """Notification counters (admin only)."""
    stats = NotificationService(db).get_stats()
    logger.info(f"Notification stats fetched by {admin.id}: {stats.model_dump()}")
    return NotificationStatsResponse(data=stats)

@router.get("/{user_id}", response_model=NotificationListResponse)
async def get_user_notifications(
    user_id: str,
    type: Optional[NotificationType] = Query(None),
    read: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity)
):
    """Latest notifications for a user (the user themself or an admin)."""
    if identity.id != user_id and identity.role != UserRole.ADMIN:
        logger.warning(f"User {identity.id} denied access to notifications of {user_id}")
        raise AuthorizationError("Not authorized to access this resource")

    notifications = NotificationService(db).get_user_notifications(user_id, type=type, read=read)
    data = [NotificationResponse.model_validate(n) for n in notifications]
    return NotificationListResponse(data=data, count=len(data))

@router.patch("/{notification_id}/read", response_model=NotificationEnvelope)
async def mark_notification_read(
    notification_id: str,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity)
):
    """Mark a notification as read."""
    notification = NotificationService(db).mark_as_read(notification_id, identity)
    return NotificationEnvelope(data=NotificationResponse.model_validate(notification))
