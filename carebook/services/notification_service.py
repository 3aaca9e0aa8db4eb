from typing import List, Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session
import logging

from ..models.notification import Notification, NotificationType, DeliveryStatus
from ..core.security import UserRole, AuthorizationError
from ..core.exceptions import NotFoundError
from ..schemas.auth import Identity
from ..schemas.notification import NotificationStats

logger = logging.getLogger(__name__)

MAX_NOTIFICATIONS = 50


class NotificationService:
    def __init__(self, db: Session):
        self.db = db

    def get_user_notifications(
        self,
        user_id: str,
        type: Optional[NotificationType] = None,
        read: Optional[bool] = None,
    ) -> List[Notification]:
        """Most recent notifications where the user is patient or doctor."""
        query = self.db.query(Notification).filter(
            or_(Notification.patient_id == user_id, Notification.doctor_id == user_id)
        )

        if type:
            query = query.filter(Notification.type == type)
        if read is not None:
            query = query.filter(Notification.read == read)

        notifications = query.order_by(
            Notification.created_at.desc()
        ).limit(MAX_NOTIFICATIONS).all()

        logger.info(f"Fetched {len(notifications)} notifications for {user_id}")
        return notifications

    def get_stats(self) -> NotificationStats:
        total = self.db.query(Notification).count()
        sent = self.db.query(Notification).filter(
            Notification.status == DeliveryStatus.SENT
        ).count()
        read = self.db.query(Notification).filter(
            Notification.read == True  # noqa: E712
        ).count()

        return NotificationStats(total=total, sent=sent, read=read, unread=total - read)

    def mark_as_read(self, notification_id: str, user: Identity) -> Notification:
        notification = self.db.query(Notification).filter(
            Notification.id == notification_id
        ).first()
        if not notification:
            raise NotFoundError("Notification not found")

        if user.role != UserRole.ADMIN and user.id not in (
            notification.patient_id, notification.doctor_id
        ):
            logger.warning(f"User {user.id} not authorized to read notification {notification_id}")
            raise AuthorizationError("Not authorized to access this resource")

        notification.read = True
        self.db.commit()
        self.db.refresh(notification)
        return notification
