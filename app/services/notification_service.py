"""
Real-time order notifications over Redis Pub/Sub.

Publishing happens after the order transaction has committed. Every failure
is logged and swallowed: a dashboard that misses an event must never turn a
committed sale into an error.
"""

import logging
import json
import time
from typing import Any, Optional, Dict
from datetime import datetime, date
from decimal import Decimal

import redis
from redis.exceptions import RedisError, ConnectionError, TimeoutError
from flask import Flask

logger = logging.getLogger(__name__)

ORDER_CREATED = 'order:created'
ORDER_PAID = 'order:paid'


class NotificationService:
    """
    Redis publisher for order events.

    Channel pattern: {prefix}:orders
    Message: {"event": ..., "ts_ms": ..., "payload": {...order...}}
    """

    def __init__(self, app: Optional[Flask] = None, client: Optional[redis.Redis] = None):
        """Initialize notification service."""
        self.client: Optional[redis.Redis] = client
        self._enabled: bool = client is not None
        self._channel: str = "pos:orders"

        if app:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        """Initialize Redis client from Flask app config."""
        self._enabled = app.config.get('NOTIFICATIONS_ENABLED', True)
        self._channel = f"{app.config.get('NOTIFICATIONS_CHANNEL_PREFIX', 'pos')}:orders"
        redis_url = app.config.get('REDIS_URL')

        if not self._enabled or not redis_url:
            logger.info("[NOTIFY] Notifications are DISABLED via config")
            self._enabled = False
            return

        try:
            self.client = redis.from_url(
                redis_url,
                socket_connect_timeout=2,
                socket_timeout=2,
                retry_on_timeout=False,
                health_check_interval=30
            )
            self.client.ping()
            logger.info(f"[NOTIFY] ✓ Redis connected, publishing order events on '{self._channel}'")
        except (ConnectionError, TimeoutError, RedisError, ValueError) as e:
            logger.warning(f"[NOTIFY] ⚠ Redis unavailable: {e}. Notifications DISABLED.")
            self._enabled = False
            self.client = None

    @property
    def enabled(self) -> bool:
        return self._enabled and self.client is not None

    @property
    def channel(self) -> str:
        return self._channel

    def _serialize(self, value: Any) -> str:
        """Serialize payload to JSON, Decimals as strings."""
        def default_handler(obj: Any) -> Any:
            if isinstance(obj, (datetime, date)):
                return obj.isoformat()
            elif isinstance(obj, Decimal):
                return str(obj)
            raise TypeError(f"Object of type {type(obj)} is not JSON serializable")
        return json.dumps(value, default=default_handler)

    def publish(self, event: str, payload: Dict[str, Any]) -> bool:
        """
        Best-effort publish. Returns True if Redis accepted the message.

        Never raises.
        """
        if not self.enabled:
            return False
        try:
            message = self._serialize({
                'event': event,
                'ts_ms': int(time.time() * 1000),
                'payload': payload,
            })
            receivers = self.client.publish(self._channel, message)
            logger.debug(f"[NOTIFY] {event} delivered to {receivers} subscriber(s)")
            return True
        except (RedisError, TypeError, ValueError) as e:
            logger.warning(f"[NOTIFY] ✗ Publish of {event} failed: {e}")
            return False
        except Exception as e:
            logger.exception(f"[NOTIFY] ✗ Unexpected error publishing {event}: {e}")
            return False


_notification_service: Optional[NotificationService] = None


def init_notifications(app: Flask) -> None:
    """Initialize notification service singleton."""
    global _notification_service
    _notification_service = NotificationService(app)
    if not hasattr(app, 'extensions'):
        app.extensions = {}
    app.extensions['notifications'] = _notification_service


def get_notifier() -> NotificationService:
    """Get notification service instance (a disabled one if never initialized)."""
    if _notification_service is None:
        return NotificationService()
    return _notification_service
