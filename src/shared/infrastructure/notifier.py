"""Real-time event fan-out to per-party channels.

Channels are plain room names (``vendor-<id>``, ``customer-<id>``,
``delivery-<id>``).  A transport moves ``(room, event, payload)`` triples
to whatever is listening: an in-process broker for a single-process
deployment, Redis pub/sub when several web and worker processes must reach
the same socket gateway.

Publishing is best-effort.  ``EventNotifier.publish`` never raises: a
transport failure is logged and dropped so it cannot fail or roll back the
order transition that produced the event.
"""

from __future__ import annotations

import json
import threading
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional, Protocol, Tuple
from uuid import UUID

import redis
import structlog
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.utils.module_loading import import_string

logger = structlog.get_logger(__name__)

Subscriber = Callable[[str, Dict[str, Any]], None]
PublishedMessage = Tuple[str, str, Dict[str, Any]]


def vendor_channel(vendor_id: UUID | str) -> str:
    return f"vendor-{vendor_id}"


def customer_channel(customer_id: UUID | str) -> str:
    return f"customer-{customer_id}"


def delivery_channel(partner_id: UUID | str) -> str:
    return f"delivery-{partner_id}"


class IChannelTransport(Protocol):
    """Pub/sub transport keyed by room name.  No acknowledgement."""

    def emit(self, room: str, event_name: str, payload: Dict[str, Any]) -> None: ...


class InMemoryChannelTransport:
    """Process-local broker.

    Keeps a bounded log of everything emitted (newest last) and calls the
    callbacks subscribed to a room synchronously.
    """

    def __init__(self, history_size: int = 1000) -> None:
        self._subscribers: Dict[str, List[Subscriber]] = {}
        self._lock = threading.Lock()
        self.published: Deque[PublishedMessage] = deque(maxlen=history_size)

    def subscribe(self, room: str, callback: Subscriber) -> None:
        with self._lock:
            self._subscribers.setdefault(room, []).append(callback)

    def unsubscribe(self, room: str, callback: Subscriber) -> None:
        with self._lock:
            callbacks = self._subscribers.get(room, [])
            if callback in callbacks:
                callbacks.remove(callback)

    def emit(self, room: str, event_name: str, payload: Dict[str, Any]) -> None:
        with self._lock:
            self.published.append((room, event_name, payload))
            callbacks = list(self._subscribers.get(room, []))
        for callback in callbacks:
            callback(event_name, payload)

    def messages_for(self, room: str) -> List[Tuple[str, Dict[str, Any]]]:
        """``(event_name, payload)`` pairs emitted to *room*, oldest first."""
        return [(event, payload) for r, event, payload in self.published if r == room]

    def clear(self) -> None:
        self.published.clear()


class RedisChannelTransport:
    """Redis pub/sub transport.

    Each message is a JSON envelope ``{"event": ..., "payload": ...}``
    published on the room name; the socket gateway subscribes with a
    ``vendor-*`` / ``customer-*`` / ``delivery-*`` pattern.
    """

    def __init__(self, url: Optional[str] = None, timeout: Optional[float] = None) -> None:
        timeout = timeout if timeout is not None else settings.NOTIFIER_REDIS_TIMEOUT
        # Publishing runs after commit; an unreachable Redis must fail fast.
        self._client = redis.Redis.from_url(
            url or settings.NOTIFIER_REDIS_URL,
            socket_connect_timeout=timeout,
            socket_timeout=timeout,
        )

    def emit(self, room: str, event_name: str, payload: Dict[str, Any]) -> None:
        message = json.dumps(
            {"event": event_name, "payload": payload}, cls=DjangoJSONEncoder
        )
        self._client.publish(room, message)


class EventNotifier:
    """Fire-and-forget publisher on top of an ``IChannelTransport``."""

    def __init__(self, transport: IChannelTransport) -> None:
        self.transport = transport

    def publish(self, channel: str, event_name: str, payload: Dict[str, Any]) -> bool:
        """Emit *event_name* on *channel*.

        Returns ``False`` when the transport failed; never raises.
        """
        try:
            self.transport.emit(channel, event_name, payload)
        except Exception as exc:
            logger.warning(
                "notifier.publish_failed",
                channel=channel,
                event_name=event_name,
                error=str(exc),
            )
            return False
        logger.debug("notifier.published", channel=channel, event_name=event_name)
        return True

    def publish_many(
        self, channels: List[str], event_name: str, payload: Dict[str, Any]
    ) -> int:
        """Emit the same event on several channels; returns how many succeeded."""
        return sum(self.publish(channel, event_name, payload) for channel in channels)


_notifier: Optional[EventNotifier] = None
_notifier_lock = threading.Lock()


def get_notifier() -> EventNotifier:
    """Process-wide notifier built from ``settings.NOTIFIER_TRANSPORT``."""
    global _notifier
    if _notifier is None:
        with _notifier_lock:
            if _notifier is None:
                transport_class = import_string(settings.NOTIFIER_TRANSPORT)
                _notifier = EventNotifier(transport_class())
    return _notifier


def configure_notifier(transport: IChannelTransport) -> EventNotifier:
    """Replace the process-wide notifier (startup wiring and tests)."""
    global _notifier
    with _notifier_lock:
        _notifier = EventNotifier(transport)
    return _notifier
