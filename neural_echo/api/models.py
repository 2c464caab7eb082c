"""Pydantic request/response models for API endpoints."""

from typing import Any

from pydantic import BaseModel

from neural_echo.models import Choice, GameState, Node, Storyline, Timeline


class AdvanceBody(BaseModel):
    from_node_id: int | str | None = None


class UpdateRelationship(BaseModel):
    from_entity_id: int | str
    to_entity_id: int | str
    type: str
    strength: float


class UpdateVariables(BaseModel):
    variables: dict[str, Any]


class StateView(BaseModel):
    """Everything a UI needs to render the current position."""

    game_state: GameState
    node: Node
    choices: list[Choice]
    timeline: Timeline
    storyline: Storyline | None = None


def coerce_id(raw: str) -> int | str:
    """Path parameters arrive as strings; numeric ones address integer ids."""
    return int(raw) if raw.lstrip("-").isdigit() else raw
