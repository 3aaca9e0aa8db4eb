"""
Notification delivery worker.

Listens on the notification channel, stores every well-formed event as a
PENDING notification and then attempts delivery once. The outcome is
recorded as SENT or FAILED; nothing is retried.
"""
from typing import Callable, Optional, Union
import asyncio
import logging

from pydantic import ValidationError
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.pubsub import NotificationChannel
from ..models.notification import Notification, DeliveryStatus
from ..schemas.notification import NotificationEvent

logger = logging.getLogger(__name__)


class SimulatedDeliverySender:
    """Stands in for an email/SMS provider by waiting a fixed delay."""

    def __init__(self, delay_seconds: float = settings.NOTIFICATION_DELIVERY_DELAY_SECONDS):
        self.delay_seconds = delay_seconds

    async def send(self, notification: Notification):
        await asyncio.sleep(self.delay_seconds)
        logger.info(f"Notification sent: {notification.message}")


class NotificationWorker:
    def __init__(
        self,
        channel: NotificationChannel,
        session_factory: Callable[[], Session],
        sender=None,
    ):
        self.channel = channel
        self.session_factory = session_factory
        self.sender = sender or SimulatedDeliverySender()

    async def run(self):
        """Consume the channel until cancelled, one message at a time."""
        pubsub = self.channel.pubsub()
        await pubsub.subscribe(self.channel.channel_name)
        logger.info(f"Listening for notifications on '{self.channel.channel_name}'...")
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    await self.handle_message(message["data"])
                except Exception:
                    logger.exception("Unexpected error while processing notification")
        except Exception:
            logger.exception(f"Notification listener on '{self.channel.channel_name}' failed")
            raise
        finally:
            try:
                await pubsub.unsubscribe(self.channel.channel_name)
                await pubsub.aclose()
            except RedisError as e:
                logger.warning(f"Error closing notification subscription: {e}")
            logger.info("Notification listener stopped")

    async def handle_message(self, raw: Union[str, bytes]) -> Optional[Notification]:
        """Persist and deliver one channel message.

        Returns the stored notification, or ``None`` when the payload was
        malformed or could not be saved.
        """
        try:
            event = NotificationEvent.model_validate_json(raw)
        except ValidationError as e:
            logger.error(f"Dropping malformed notification payload: {e.error_count()} error(s): {raw!r}")
            return None

        logger.info(f"Processing notification: {event.type.value} for appointment {event.appointment_id}")

        db = self.session_factory()
        try:
            notification = Notification(
                appointment_id=event.appointment_id,
                patient_id=event.patient_id,
                doctor_id=event.doctor_id,
                message=event.message,
                type=event.type,
                status=DeliveryStatus.PENDING,
            )
            try:
                db.add(notification)
                db.commit()
                db.refresh(notification)
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Error saving notification for appointment {event.appointment_id}: {e}")
                return None

            logger.info(f"Notification saved: {notification.id}")
            await self.deliver(db, notification)
            return notification
        finally:
            db.close()

    async def deliver(self, db: Session, notification: Notification):
        notification_id = notification.id
        try:
            await self.sender.send(notification)
            notification.status = DeliveryStatus.SENT
        except Exception as e:
            notification.status = DeliveryStatus.FAILED
            logger.error(f"Failed to send notification {notification_id}: {e}")

        try:
            db.commit()
            db.refresh(notification)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error recording delivery status for notification {notification_id}: {e}")
