"""Bundled "Neural Echo: Parallel Minds" story for development and testing."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from neural_echo.config import PRESETS_DIR
from neural_echo.errors import ContentIntegrityError
from neural_echo.models import Entity, NarrativeContent, Relationship
from neural_echo.storage import JsonStateStore, MemoryStateStore

logger = logging.getLogger(__name__)

DEMO_PRESET = PRESETS_DIR / "neural-echo.json"


class Preset(BaseModel):
    """A story preset: narrative content plus the initial world model."""

    content: NarrativeContent
    entities: list[Entity] = Field(default_factory=list)
    relationships: list[Relationship] = Field(default_factory=list)


def load_preset(path: Path = DEMO_PRESET) -> Preset:
    try:
        raw = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise ContentIntegrityError(f"Cannot read preset {path}: {e}") from e
    try:
        return Preset(
            content=NarrativeContent(
                storylines=raw.get("storylines", []),
                nodes=raw.get("nodes", []),
                choices=raw.get("choices", []),
            ),
            entities=raw.get("entities", []),
            relationships=raw.get("relationships", []),
        )
    except ValidationError as e:
        raise ContentIntegrityError(f"Invalid preset {path}: {e}") from e


def create_demo_data(store: JsonStateStore, path: Path = DEMO_PRESET) -> None:
    """Wipe saved play state and seed *store* with the bundled story."""
    preset = load_preset(path)
    store.seed(preset.content, preset.entities, preset.relationships)
    logger.info(
        "Demo story seeded: %d nodes, %d choices",
        len(preset.content.nodes), len(preset.content.choices),
    )


def demo_memory_store(path: Path = DEMO_PRESET) -> MemoryStateStore:
    preset = load_preset(path)
    return MemoryStateStore(
        content=preset.content,
        entities=preset.entities,
        relationships=preset.relationships,
    )
