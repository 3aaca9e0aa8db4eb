"""
Redis pub/sub channel carrying notification events between services.

One ``NotificationChannel`` is created per process at startup, stored on
``app.state`` and closed at shutdown. Publishing is at-most-once and never
raises: callers get a ``DispatchOutcome`` back and log it.
"""
from datetime import datetime
from enum import Enum
from typing import Optional
import asyncio
import logging

import redis.asyncio as redis
from redis.exceptions import RedisError

from .config import settings

logger = logging.getLogger(__name__)


class DispatchOutcome(str, Enum):
    ENQUEUED = "enqueued"
    ENQUEUE_FAILED = "enqueue_failed"


class NotificationChannel:
    def __init__(
        self,
        redis_url: str = settings.REDIS_URL,
        channel_name: str = settings.NOTIFICATION_CHANNEL,
        client: Optional[redis.Redis] = None,
        publish_timeout: float = settings.NOTIFICATION_PUBLISH_TIMEOUT_SECONDS,
    ):
        self.redis_url = redis_url
        self.channel_name = channel_name
        self.publish_timeout = publish_timeout
        self._client = client
        self.connected = False

    async def connect(self):
        """Open the Redis connection; raises if Redis is unreachable."""
        if self._client is None:
            # No socket_timeout: the subscriber connection idles between messages
            self._client = redis.from_url(
                self.redis_url,
                decode_responses=True,
                socket_connect_timeout=self.publish_timeout,
            )
        await self._client.ping()
        self.connected = True
        logger.info(f"Redis connected for notifications on channel '{self.channel_name}'")

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        self.connected = False
        logger.info("Redis notification channel closed")

    async def publish(self, event) -> DispatchOutcome:
        """Publish a notification event (a ``NotificationEvent`` schema)."""
        if not self.connected or self._client is None:
            logger.warning(
                f"Redis not connected - notification skipped: "
                f"{event.type.value} for appointment {event.appointment_id}"
            )
            return DispatchOutcome.ENQUEUE_FAILED

        if event.timestamp is None:
            event = event.model_copy(update={"timestamp": datetime.utcnow()})

        try:
            await asyncio.wait_for(
                self._client.publish(self.channel_name, event.model_dump_json(by_alias=True)),
                timeout=self.publish_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Timed out after {self.publish_timeout}s queueing notification "
                f"{event.type.value} for appointment {event.appointment_id}"
            )
            return DispatchOutcome.ENQUEUE_FAILED
        except RedisError as e:
            logger.warning(
                f"Failed to queue notification {event.type.value} "
                f"for appointment {event.appointment_id}: {e}"
            )
            return DispatchOutcome.ENQUEUE_FAILED

        logger.info(
            f"Notification queued: {event.type.value} for appointment {event.appointment_id}"
        )
        return DispatchOutcome.ENQUEUED

    def pubsub(self):
        if self._client is None:
            raise RuntimeError("Notification channel is not connected")
        return self._client.pubsub()
