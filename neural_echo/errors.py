"""Engine error taxonomy.

Every failure the engine reports to a caller is an ``EngineError``. All of
them except ``ContentIntegrityError`` are recoverable: the action that raised
them has left GameState, the history log, the timeline tree and the
relationship graph exactly as they were.
"""

from __future__ import annotations

from typing import Any


class EngineError(RuntimeError):
    """Base class for all narrative engine failures."""


class UnknownChoice(EngineError):
    """The choice id is not available on the current node."""

    def __init__(self, choice_id: Any, node_id: Any) -> None:
        super().__init__(f"Choice {choice_id!r} not found for node {node_id!r}")
        self.choice_id = choice_id
        self.node_id = node_id


class UnknownTimeline(EngineError):
    def __init__(self, timeline_id: Any) -> None:
        super().__init__(f"Timeline {timeline_id!r} not found")
        self.timeline_id = timeline_id


class UnknownEntity(EngineError):
    def __init__(self, entity_id: Any) -> None:
        super().__init__(f"Entity {entity_id!r} not found")
        self.entity_id = entity_id


class NoNextNode(EngineError):
    """Auto-advance was requested past the end of the defined content."""

    def __init__(self, node_id: Any) -> None:
        super().__init__(f"No node follows {node_id!r}")
        self.node_id = node_id


class ContentIntegrityError(EngineError):
    """Loaded content references something that does not exist.

    Fatal at startup: the content is malformed and the engine refuses to
    initialise rather than dead-end mid-playthrough.
    """


class PersistenceError(EngineError):
    """The state store could not read or write."""
