"""Presentation notifications: advisory events pushed to the UI.

The engine emits events after an action has been committed:

    BranchEvent   a choice forked the story ({timeline_name, source_text})
    LoopEvent     a choice led back to the node it was made on

Notifiers match the protocol:

    async def __call__(self, event: EngineEvent) -> None: ...

Delivery is best-effort. A notifier that raises is logged and ignored; it
can never fail or roll back the action that produced the event.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from neural_echo.models import BranchEvent, EngineEvent, LoopEvent

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def __call__(self, event: EngineEvent) -> None: ...


class LoggingNotifier:
    """Writes every event to the log. The default notifier."""

    async def __call__(self, event: EngineEvent) -> None:
        if isinstance(event, BranchEvent):
            logger.info(
                "Timeline branch created: %s (%s)", event.timeline_name, event.source_text
            )
        elif isinstance(event, LoopEvent):
            logger.warning(
                "Strange temporal loop detected at node %r (choice %r)",
                event.node_id, event.choice_id,
            )


class QueueNotifier:
    """Buffers events on an asyncio.Queue for a UI to drain. Never blocks.

    When the queue is full the event is dropped with a warning.
    """

    def __init__(self, maxsize: int = 0) -> None:
        self.queue: asyncio.Queue[EngineEvent] = asyncio.Queue(maxsize=maxsize)

    async def __call__(self, event: EngineEvent) -> None:
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning("Notification queue full, dropped %s", event.kind)

    def drain(self) -> list[EngineEvent]:
        events = []
        while not self.queue.empty():
            events.append(self.queue.get_nowait())
        return events


class FanoutNotifier:
    """Delivers each event to several notifiers, isolating their failures."""

    def __init__(self, *notifiers: Notifier) -> None:
        self._notifiers = list(notifiers)

    def add(self, notifier: Notifier) -> None:
        self._notifiers.append(notifier)

    async def __call__(self, event: EngineEvent) -> None:
        for notifier in self._notifiers:
            await deliver(notifier, event)


async def deliver(notifier: Notifier, event: EngineEvent) -> None:
    """Call *notifier*, logging instead of raising on failure."""
    try:
        await notifier(event)
    except Exception:
        logger.warning("Notifier %r failed on %s", notifier, event.kind, exc_info=True)
