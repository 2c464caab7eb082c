"""Core domain models.

Every engine component and the state store operate on these types.
Pydantic is used for validation and serialisation at every data boundary.
Story content (nodes, choices, storylines, entities) is frozen after load;
GameState is replaced wholesale on every merge so readers never observe a
half-updated record.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Node, choice, timeline and entity ids are integers in the bundled story,
# but authored content may use string keys.
NodeId = Union[int, str]
ChoiceId = Union[int, str]
TimelineId = Union[int, str]
EntityId = Union[int, str]


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Narrative content
# ---------------------------------------------------------------------------

class Storyline(BaseModel):
    """A narrative thread grouping nodes (Clinical, AI, Family...)."""

    model_config = ConfigDict(frozen=True)

    id: int | str
    name: str
    description: str = ""


class Node(BaseModel):
    """A single story beat."""

    model_config = ConfigDict(frozen=True)

    id: NodeId
    storyline_id: int | str
    title: str
    content: str  # opaque to the engine
    is_choice_node: bool = True
    is_ending: bool = False
    image_path: str | None = None


class RelationshipEffect(BaseModel):
    """A relationship upsert applied when a choice is taken."""

    model_config = ConfigDict(frozen=True)

    from_entity_id: EntityId
    to_entity_id: EntityId
    type: str
    strength: float


class ChoiceEffects(BaseModel):
    model_config = ConfigDict(frozen=True)

    set_variables: dict[str, Any] = Field(default_factory=dict)
    relationships: list[RelationshipEffect] = Field(default_factory=list)


class Choice(BaseModel):
    """A player-selectable edge from one node to another."""

    model_config = ConfigDict(frozen=True)

    id: ChoiceId
    node_id: NodeId
    text: str
    next_node_id: NodeId
    # variable name -> required value; None means always available
    condition: dict[str, Any] | None = None
    effects: ChoiceEffects | None = None

    def is_available(self, variables: dict[str, Any]) -> bool:
        if not self.condition:
            return True
        return all(variables.get(k) == v for k, v in self.condition.items())


class NarrativeContent(BaseModel):
    """Static story content as delivered by a state store."""

    storylines: list[Storyline] = Field(default_factory=list)
    nodes: list[Node] = Field(default_factory=list)
    choices: list[Choice] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Mutable world state
# ---------------------------------------------------------------------------

class GameState(BaseModel):
    """The single current-position record."""

    id: int = 1
    current_node_id: NodeId
    current_timeline_id: TimelineId
    variables: dict[str, Any] = Field(default_factory=dict)

    def merged(self, update: dict[str, Any]) -> GameState:
        """Return a copy with *update* merged in.

        Top-level fields are replaced; ``variables`` is deep-merged so keys
        set earlier survive.
        """
        data = self.model_dump()
        for key, value in update.items():
            if key == "variables":
                data["variables"] = _deep_merge(data["variables"], value or {})
            else:
                data[key] = value
        return GameState.model_validate(data)


def _deep_merge(base: dict[str, Any], extra: dict[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in extra.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


class Timeline(BaseModel):
    """A branch in the tree of alternate story paths."""

    model_config = ConfigDict(frozen=True)

    id: TimelineId
    name: str
    description: str = ""
    parent_id: TimelineId | None = None
    divergence_point_node_id: NodeId | None = None


class Entity(BaseModel):
    """A character, location or AI in the world model."""

    model_config = ConfigDict(frozen=True)

    id: EntityId
    name: str
    type: str  # character | location | ai | ...
    description: str = ""


class Relationship(BaseModel):
    """Directed, typed, weighted edge between two entities."""

    id: int
    from_entity_id: EntityId
    to_entity_id: EntityId
    type: str
    strength: float
    state_id: int = 1

    @field_validator("strength")
    @classmethod
    def _clamp(cls, value: float) -> float:
        return clamp_strength(value)

    @property
    def key(self) -> tuple[EntityId, EntityId, str]:
        return (self.from_entity_id, self.to_entity_id, self.type)


def clamp_strength(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


class HistoryEntry(BaseModel):
    """One append-only visit record."""

    model_config = ConfigDict(frozen=True)

    id: int
    state_id: int
    node_id: NodeId
    choice_id: ChoiceId | None = None  # None for arrivals
    timestamp: str = Field(default_factory=_utcnow)


# ---------------------------------------------------------------------------
# Engine results and advisory events
# ---------------------------------------------------------------------------

class BranchEvent(BaseModel):
    """Emitted when a choice forks the story into a new timeline."""

    kind: Literal["branch_created"] = "branch_created"
    timeline_id: TimelineId
    timeline_name: str
    source_text: str
    divergence_point_node_id: NodeId


class LoopEvent(BaseModel):
    """Emitted when a choice leads back to the node it was made on."""

    kind: Literal["loop_detected"] = "loop_detected"
    node_id: NodeId
    choice_id: ChoiceId


EngineEvent = Union[BranchEvent, LoopEvent]


class ChoiceResult(BaseModel):
    node: Node
    branch_event: BranchEvent | None = None
    loop_event: LoopEvent | None = None


StrengthBucket = Literal["weak", "neutral", "strong"]


class RelationshipDescription(BaseModel):
    """Structured, render-ready summary of one relationship of an entity."""

    direction: Literal["outgoing", "incoming"]
    type: str
    counterpart: Entity
    strength: float
    strength_bucket: StrengthBucket


class CommitBatch(BaseModel):
    """Writes produced by one engine action, committed all-or-nothing."""

    history: list[HistoryEntry] = Field(default_factory=list)
    timelines: list[Timeline] = Field(default_factory=list)
    relationships: list[Relationship] = Field(default_factory=list)
    game_state: GameState | None = None

    def is_empty(self) -> bool:
        return not (
            self.history or self.timelines or self.relationships
            or self.game_state is not None
        )
