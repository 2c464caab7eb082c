"""RelationshipGraph: the world model of entities and weighted relationships.

Entities are loaded once and never created at runtime. Relationships are
upserted by (from, to, type): updating an existing triple overwrites its
strength, anything else creates a new row stamped with the current state id.
Strength is always clamped to [0, 1].

Relationship values are shared by every timeline; branching the story does
not fork the world model.
"""

from __future__ import annotations

import logging

from neural_echo.errors import UnknownEntity
from neural_echo.models import (
    Entity,
    EntityId,
    Relationship,
    RelationshipDescription,
    StrengthBucket,
    clamp_strength,
)
from neural_echo.state import LiveState

logger = logging.getLogger(__name__)

WEAK_BELOW = 0.3
STRONG_ABOVE = 0.8


def strength_bucket(strength: float) -> StrengthBucket:
    if strength < WEAK_BELOW:
        return "weak"
    if strength > STRONG_ABOVE:
        return "strong"
    return "neutral"


class RelationshipGraph:
    def __init__(
        self,
        entities: list[Entity],
        relationships: list[Relationship],
        state: LiveState,
    ) -> None:
        self._entities: dict[EntityId, Entity] = {e.id: e for e in entities}
        self._relationships: list[Relationship] = list(relationships)
        self._state = state

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_entities(self) -> list[Entity]:
        return list(self._entities.values())

    def get_entity(self, entity_id: EntityId) -> Entity | None:
        return self._entities.get(entity_id)

    def get_relationships(self) -> list[Relationship]:
        return list(self._relationships)

    def get_relationships_for(self, entity_id: EntityId) -> list[Relationship]:
        """Relationships where *entity_id* is either endpoint."""
        return [
            r for r in self._relationships
            if r.from_entity_id == entity_id or r.to_entity_id == entity_id
        ]

    def find_relationship(
        self, from_id: EntityId, to_id: EntityId, type: str
    ) -> Relationship | None:
        for rel in self._relationships:
            if rel.key == (from_id, to_id, type):
                return rel
        return None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def update_relationship(
        self, from_id: EntityId, to_id: EntityId, type: str, strength: float
    ) -> Relationship:
        """Upsert the (from, to, type) relationship. Raises UnknownEntity."""
        for entity_id in (from_id, to_id):
            if entity_id not in self._entities:
                raise UnknownEntity(entity_id)

        strength = clamp_strength(strength)
        for i, rel in enumerate(self._relationships):
            if rel.key == (from_id, to_id, type):
                updated = Relationship.model_validate(
                    {**rel.model_dump(), "strength": strength}
                )
                self._relationships[i] = updated
                logger.debug(
                    "relationship %r %s %r strength %.2f -> %.2f",
                    from_id, type, to_id, rel.strength, strength,
                )
                return updated

        created = Relationship(
            id=self._next_id(),
            from_entity_id=from_id,
            to_entity_id=to_id,
            type=type,
            strength=strength,
            state_id=self._state.current.id,
        )
        self._relationships.append(created)
        logger.debug(
            "relationship %r %s %r created with strength %.2f",
            from_id, type, to_id, strength,
        )
        return created

    # ------------------------------------------------------------------
    # Summaries
    # ------------------------------------------------------------------

    def describe_relationships(self, entity_id: EntityId) -> list[RelationshipDescription]:
        """Direction, type, counterpart and strength bucket per relationship.

        Relationships whose counterpart is not a known entity are skipped.
        Raises UnknownEntity for an unknown *entity_id*.
        """
        if entity_id not in self._entities:
            raise UnknownEntity(entity_id)

        descriptions = []
        for rel in self.get_relationships_for(entity_id):
            outgoing = rel.from_entity_id == entity_id
            other_id = rel.to_entity_id if outgoing else rel.from_entity_id
            counterpart = self._entities.get(other_id)
            if counterpart is None:
                continue
            descriptions.append(RelationshipDescription(
                direction="outgoing" if outgoing else "incoming",
                type=rel.type,
                counterpart=counterpart,
                strength=rel.strength,
                strength_bucket=strength_bucket(rel.strength),
            ))
        return descriptions

    def _next_id(self) -> int:
        return max((r.id for r in self._relationships), default=0) + 1

    def _snapshot(self) -> list[Relationship]:
        return list(self._relationships)

    def _restore(self, relationships: list[Relationship]) -> None:
        self._relationships = list(relationships)
