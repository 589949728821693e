"""
Broadcaster backends.

A broadcaster delivers one event to every connection currently in a room.
Delivery is best-effort and at-most-once: nothing is queued for
disconnected clients, and a failing backend only logs.

The backend used by the HTTP views is selected with the
``REALTIME_BROADCASTER`` setting, in the same way Django selects an
``EMAIL_BACKEND``.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from asgiref.sync import async_to_sync
from django.conf import settings
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)


# Events recorded by InMemoryBroadcaster, inspected by tests.
outbox: list[dict[str, Any]] = []


class Broadcaster(Protocol):
    def publish(self, room: str, event: str, payload: dict[str, Any]) -> None:
        ...


class NullBroadcaster:
    """Drops every event. Used when no gateway is running."""

    def publish(self, room: str, event: str, payload: dict[str, Any]) -> None:
        logger.debug("Realtime disabled, dropping %s for %s", event, room)


class InMemoryBroadcaster:
    """Appends published events to ``apps.realtime.broadcasters.outbox``."""

    def publish(self, room: str, event: str, payload: dict[str, Any]) -> None:
        outbox.append({'room': room, 'event': event, 'payload': payload})


class SocketIOBroadcaster:
    """Emit through the in-process Socket.IO server from sync Django code."""

    def __init__(self, server=None):
        if server is None:
            from apps.realtime.gateway import sio
            server = sio
        self.server = server

    def publish(self, room: str, event: str, payload: dict[str, Any]) -> None:
        try:
            async_to_sync(self.server.emit)(event, payload, room=room)
        except Exception:
            logger.exception("Failed to emit %s to room %s", event, room)
            return
        logger.debug("Emitted %s to room %s", event, room)


def get_broadcaster(path: str | None = None) -> Broadcaster:
    """Instantiate the broadcaster configured in settings."""
    backend = path or getattr(
        settings,
        'REALTIME_BROADCASTER',
        'apps.realtime.broadcasters.NullBroadcaster',
    )
    return import_string(backend)()
