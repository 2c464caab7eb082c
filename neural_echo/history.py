"""HistoryLog: append-only record of node/choice visits.

Entries get monotonically increasing ids in insertion order. There is no
update or delete API; the only way entries disappear is the engine rolling
back an action whose commit failed (``_truncate``), which never touches
entries that were already committed.
"""

from __future__ import annotations

import logging

from neural_echo.models import ChoiceId, HistoryEntry, NodeId

logger = logging.getLogger(__name__)


class HistoryLog:
    def __init__(self, entries: list[HistoryEntry] | None = None) -> None:
        self._entries: list[HistoryEntry] = sorted(entries or [], key=lambda e: e.id)

    def append(
        self, state_id: int, node_id: NodeId, choice_id: ChoiceId | None = None
    ) -> HistoryEntry:
        entry = HistoryEntry(
            id=self._next_id(),
            state_id=state_id,
            node_id=node_id,
            choice_id=choice_id,
        )
        self._entries.append(entry)
        logger.debug("history #%d node=%r choice=%r", entry.id, node_id, choice_id)
        return entry

    def all(self) -> list[HistoryEntry]:
        return list(self._entries)

    def last(self) -> HistoryEntry | None:
        return self._entries[-1] if self._entries else None

    def visits(self, node_id: NodeId) -> int:
        """How many times *node_id* has been entered."""
        return sum(1 for e in self._entries if e.node_id == node_id and e.choice_id is None)

    def __len__(self) -> int:
        return len(self._entries)

    def _next_id(self) -> int:
        return self._entries[-1].id + 1 if self._entries else 1

    def _truncate(self, length: int) -> None:
        del self._entries[length:]
