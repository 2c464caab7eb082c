"""State store: where the engine loads content and persists play state.

The engine depends only on the ``StateStore`` protocol:

    async def load_game_state(self) -> GameState | None: ...
    async def commit(self, batch: CommitBatch) -> None: ...
    ...

Every engine action buffers its writes into one ``CommitBatch`` and hands it
to ``commit``, which must apply all of it or none of it. The single-record
helpers (``append_history``, ``save_timeline``...) are one-item commits.

Two implementations are provided:

    JsonStateStore    flat JSON files under a base directory, validated
                      with pydantic on every read.
    MemoryStateStore  keeps everything in process. Useful for tests and for
                      embedding the engine without a data directory.

Directory layout of a JsonStateStore:

    {base}/
      content.json         ← storylines, nodes, choices (read-only)
      entities.json        ← world-model entities (read-only)
      relationships.json   ← relationship rows, upserted by id
      timelines.json       ← timeline tree
      history.json         ← append-only history entries
      game_state.json      ← the live GameState
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, ValidationError

from neural_echo.errors import PersistenceError
from neural_echo.models import (
    CommitBatch,
    Entity,
    GameState,
    HistoryEntry,
    NarrativeContent,
    Relationship,
    Timeline,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol: every store implementation must match these signatures
# ---------------------------------------------------------------------------

class StateStore(Protocol):
    async def load_narrative_graph(self) -> NarrativeContent: ...
    async def load_entities(self) -> list[Entity]: ...
    async def load_relationships(self) -> list[Relationship]: ...
    async def load_timelines(self) -> list[Timeline]: ...
    async def load_history(self) -> list[HistoryEntry]: ...
    async def load_game_state(self) -> GameState | None: ...
    async def save_game_state(self, state: GameState) -> None: ...
    async def append_history(self, entry: HistoryEntry) -> None: ...
    async def save_timeline(self, timeline: Timeline) -> None: ...
    async def save_relationship(self, relationship: Relationship) -> None: ...
    async def commit(self, batch: CommitBatch) -> None: ...


def _upsert_by_id(rows: list, updates: list) -> list:
    merged = {row.id: row for row in rows}
    for row in updates:
        merged[row.id] = row
    return list(merged.values())


# ---------------------------------------------------------------------------
# JsonStateStore
# ---------------------------------------------------------------------------

class JsonStateStore:
    def __init__(self, base_path: Path) -> None:
        self._base = Path(base_path)
        self._base.mkdir(parents=True, exist_ok=True)

    @property
    def base_path(self) -> Path:
        return self._base

    # ------------------------------------------------------------------
    # Internal file helpers
    # ------------------------------------------------------------------

    def _path(self, name: str) -> Path:
        return self._base / f"{name}.json"

    def _read_json(self, name: str, default: Any) -> Any:
        path = self._path(name)
        if not path.is_file():
            return default
        try:
            return json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Cannot read {path}: {e}") from e

    def _read_models(self, name: str, model: type[BaseModel]) -> list:
        try:
            return [model.model_validate(row) for row in self._read_json(name, [])]
        except ValidationError as e:
            raise PersistenceError(f"Invalid data in {self._path(name)}: {e}") from e

    def _dump(self, data: Any) -> str:
        if isinstance(data, BaseModel):
            return data.model_dump_json(indent=2)
        return json.dumps(
            [row.model_dump(mode="json") for row in data], indent=2
        )

    def _write_files(self, files: dict[str, Any]) -> None:
        """Stage every file as a temp sibling, then swap them all in.

        The previous contents of each target are kept in memory. If any swap
        fails, the targets already swapped are put back, so the directory
        holds either the whole write or none of it.
        """
        staged: list[tuple[Path, Path]] = []
        previous: dict[Path, bytes | None] = {}
        swapped: list[Path] = []
        try:
            for name, data in files.items():
                target = self._path(name)
                tmp = target.with_name(target.name + ".tmp")
                tmp.write_text(self._dump(data))
                staged.append((tmp, target))
                previous[target] = target.read_bytes() if target.is_file() else None
            for tmp, target in staged:
                os.replace(tmp, target)
                swapped.append(target)
        except OSError as e:
            for tmp, _ in staged:
                tmp.unlink(missing_ok=True)
            self._restore_files(swapped, previous)
            raise PersistenceError(f"Cannot write state to {self._base}: {e}") from e

    def _restore_files(self, targets: list[Path], previous: dict[Path, bytes | None]) -> None:
        for target in reversed(targets):
            old = previous[target]
            try:
                if old is None:
                    target.unlink(missing_ok=True)
                else:
                    target.write_bytes(old)
            except OSError:
                logger.error("Could not restore %s after a failed write", target, exc_info=True)

    # ------------------------------------------------------------------
    # Content (read-only)
    # ------------------------------------------------------------------

    async def load_narrative_graph(self) -> NarrativeContent:
        raw = self._read_json("content", {})
        try:
            return NarrativeContent.model_validate(raw)
        except ValidationError as e:
            raise PersistenceError(f"Invalid data in {self._path('content')}: {e}") from e

    async def load_entities(self) -> list[Entity]:
        return self._read_models("entities", Entity)

    # ------------------------------------------------------------------
    # Play state
    # ------------------------------------------------------------------

    async def load_relationships(self) -> list[Relationship]:
        return self._read_models("relationships", Relationship)

    async def load_timelines(self) -> list[Timeline]:
        return self._read_models("timelines", Timeline)

    async def load_history(self) -> list[HistoryEntry]:
        return self._read_models("history", HistoryEntry)

    async def load_game_state(self) -> GameState | None:
        raw = self._read_json("game_state", None)
        if raw is None:
            return None
        try:
            return GameState.model_validate(raw)
        except ValidationError as e:
            raise PersistenceError(f"Invalid data in {self._path('game_state')}: {e}") from e

    async def save_game_state(self, state: GameState) -> None:
        await self.commit(CommitBatch(game_state=state))

    async def append_history(self, entry: HistoryEntry) -> None:
        await self.commit(CommitBatch(history=[entry]))

    async def save_timeline(self, timeline: Timeline) -> None:
        await self.commit(CommitBatch(timelines=[timeline]))

    async def save_relationship(self, relationship: Relationship) -> None:
        await self.commit(CommitBatch(relationships=[relationship]))

    async def commit(self, batch: CommitBatch) -> None:
        files: dict[str, Any] = {}
        if batch.history:
            files["history"] = await self.load_history() + batch.history
        if batch.timelines:
            files["timelines"] = _upsert_by_id(await self.load_timelines(), batch.timelines)
        if batch.relationships:
            files["relationships"] = _upsert_by_id(
                await self.load_relationships(), batch.relationships
            )
        if batch.game_state is not None:
            files["game_state"] = batch.game_state
        if files:
            self._write_files(files)
            logger.debug("committed %s to %s", sorted(files), self._base)

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def seed(
        self,
        content: NarrativeContent,
        entities: list[Entity],
        relationships: list[Relationship],
    ) -> None:
        """Write fresh content and wipe any saved play state."""
        for name in ("timelines", "history", "game_state"):
            self._path(name).unlink(missing_ok=True)
        self._write_files({
            "content": content,
            "entities": entities,
            "relationships": relationships,
        })
        logger.info("Seeded state store at %s", self._base)


# ---------------------------------------------------------------------------
# MemoryStateStore
# ---------------------------------------------------------------------------

class MemoryStateStore:
    """Keeps content and play state in process. No I/O."""

    def __init__(
        self,
        content: NarrativeContent | None = None,
        entities: list[Entity] | None = None,
        relationships: list[Relationship] | None = None,
        timelines: list[Timeline] | None = None,
        history: list[HistoryEntry] | None = None,
        game_state: GameState | None = None,
    ) -> None:
        self.content = content or NarrativeContent()
        self.entities = list(entities or [])
        self.relationships = list(relationships or [])
        self.timelines = list(timelines or [])
        self.history = list(history or [])
        self.game_state = game_state

    async def load_narrative_graph(self) -> NarrativeContent:
        return self.content

    async def load_entities(self) -> list[Entity]:
        return list(self.entities)

    async def load_relationships(self) -> list[Relationship]:
        return list(self.relationships)

    async def load_timelines(self) -> list[Timeline]:
        return list(self.timelines)

    async def load_history(self) -> list[HistoryEntry]:
        return list(self.history)

    async def load_game_state(self) -> GameState | None:
        return self.game_state

    async def save_game_state(self, state: GameState) -> None:
        await self.commit(CommitBatch(game_state=state))

    async def append_history(self, entry: HistoryEntry) -> None:
        await self.commit(CommitBatch(history=[entry]))

    async def save_timeline(self, timeline: Timeline) -> None:
        await self.commit(CommitBatch(timelines=[timeline]))

    async def save_relationship(self, relationship: Relationship) -> None:
        await self.commit(CommitBatch(relationships=[relationship]))

    async def commit(self, batch: CommitBatch) -> None:
        self.history = self.history + batch.history
        self.timelines = _upsert_by_id(self.timelines, batch.timelines)
        self.relationships = _upsert_by_id(self.relationships, batch.relationships)
        if batch.game_state is not None:
            self.game_state = batch.game_state
