"""In-process event broadcast for import progress.

Subscribers (a UI, a log tailer, tests) receive events for:
- Batch lifecycle (started -> progress/cooldown ticks -> completed)
- Flight list refreshes
- Background sync status changes
- Sync failures and flight deletions
"""

from __future__ import annotations

import asyncio
import json
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from enum import Enum
from typing import Any, AsyncGenerator

from pydantic import BaseModel

from logbook.core.logging import get_logger

logger = get_logger(__name__)

# Per-subscriber queue bound; a slow subscriber loses events, never blocks imports
DEFAULT_QUEUE_SIZE = 256


class EventType(str, Enum):
    """Types of events that can be broadcast."""

    # Batch events
    BATCH_STARTED = "batch_started"
    BATCH_PROGRESS = "batch_progress"
    COOLDOWN_TICK = "cooldown_tick"
    BATCH_REFRESH = "batch_refresh"
    BATCH_COMPLETED = "batch_completed"

    # Sync events
    BACKGROUND_SYNC_STATUS = "background_sync_status"
    SYNC_FAILED = "sync_failed"

    # Library events
    FLIGHT_DELETED = "flight_deleted"


class Event(BaseModel):
    """Event payload."""

    type: EventType
    payload: dict[str, Any]
    timestamp: datetime = None

    def __init__(self, **data):
        if "timestamp" not in data or data["timestamp"] is None:
            data["timestamp"] = datetime.now(timezone.utc)
        super().__init__(**data)

    def to_json(self) -> str:
        """Serialize the event as a JSON line."""
        return json.dumps(
            {
                "type": self.type.value,
                "payload": self.payload,
                "timestamp": self.timestamp.isoformat(),
            }
        )


class EventBroadcaster:
    """Fans events out to every subscribed queue."""

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE):
        self.queue_size = queue_size
        self._clients: list[asyncio.Queue[Event]] = []
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def subscribe(self) -> AsyncGenerator[asyncio.Queue[Event], None]:
        """Subscribe to events.

        Usage:
            async with broadcaster.subscribe() as queue:
                event = await queue.get()
        """
        queue: asyncio.Queue[Event] = asyncio.Queue(maxsize=self.queue_size)
        async with self._lock:
            self._clients.append(queue)
            client_count = len(self._clients)

        logger.debug("event_subscriber_added", client_count=client_count)

        try:
            yield queue
        finally:
            async with self._lock:
                self._clients.remove(queue)
                client_count = len(self._clients)
            logger.debug("event_subscriber_removed", client_count=client_count)

    async def broadcast(self, event_type: EventType, payload: dict[str, Any] | None = None) -> None:
        """Broadcast an event to all subscribers.

        Args:
            event_type: Kind of event.
            payload: JSON-serializable event data.
        """
        async with self._lock:
            clients = list(self._clients)

        if not clients:
            return

        event = Event(type=event_type, payload=payload or {})
        for queue in clients:
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.debug("event_subscriber_queue_full", event_type=event_type.value)

    @property
    def client_count(self) -> int:
        """Get the number of subscribers."""
        return len(self._clients)
