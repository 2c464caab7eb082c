import random

import pytest

from neural_echo.config import EngineConfig
from neural_echo.engine import EngineContext
from neural_echo.models import (
    Choice,
    ChoiceEffects,
    Entity,
    NarrativeContent,
    Node,
    Relationship,
    RelationshipEffect,
    Storyline,
)
from neural_echo.storage import MemoryStateStore


class FixedRoll(random.Random):
    """random() always returns the same value: 0.0 forks, 0.99 never does."""

    def __init__(self, value: float) -> None:
        super().__init__(0)
        self.value = value
        self.rolls = 0

    def random(self) -> float:
        self.rolls += 1
        return self.value


def _story() -> NarrativeContent:
    """Small test story.

    1 (two choices) ─1→ 2, ─2→ 3; hidden choice 7 → 5 needs has_key
    2 (two choices) ─3→ 2 (self-loop), ─4→ 4 (sets variables + trust)
    3 non-choice, no choices → auto-advances to 4 by id
    4 non-choice, one choice 5 → 6
    5 single choice 6 → 1
    6 ending
    """
    return NarrativeContent(
        storylines=[
            Storyline(id=1, name="Clinical"),
            Storyline(id=2, name="AI"),
        ],
        nodes=[
            Node(id=1, storyline_id=1, title="Morning Rounds", content="Corridor."),
            Node(id=2, storyline_id=1, title="Room 342", content="Sarah Chen."),
            Node(id=3, storyline_id=1, title="Rounds", content="Checkups.",
                 is_choice_node=False),
            Node(id=4, storyline_id=2, title="Sentinel", content="Blue screens.",
                 is_choice_node=False),
            Node(id=5, storyline_id=2, title="Vault", content="A locked room."),
            Node(id=6, storyline_id=2, title="Ending", content="Fin.",
                 is_choice_node=False, is_ending=True),
        ],
        choices=[
            Choice(id=1, node_id=1, text="Examine the case", next_node_id=2),
            Choice(id=2, node_id=1, text="Do rounds first", next_node_id=3),
            Choice(id=7, node_id=1, text="Open the vault", next_node_id=5,
                   condition={"has_key": True}),
            Choice(id=3, node_id=2, text="Look again", next_node_id=2),
            Choice(
                id=4, node_id=2, text="Consult Sentinel", next_node_id=4,
                effects=ChoiceEffects(
                    set_variables={"met_sentinel": True, "flags": {"ai": 1}},
                    relationships=[
                        RelationshipEffect(
                            from_entity_id=1, to_entity_id=3, type="trusts", strength=0.7
                        ),
                    ],
                ),
            ),
            Choice(id=5, node_id=4, text="Continue", next_node_id=6),
            Choice(id=6, node_id=5, text="Leave", next_node_id=1),
        ],
    )


@pytest.fixture
def story() -> NarrativeContent:
    return _story()


@pytest.fixture
def entities() -> list[Entity]:
    return [
        Entity(id=1, name="Dr. Elias Reeves", type="character"),
        Entity(id=2, name="Maya", type="character"),
        Entity(id=3, name="Sentinel AI", type="ai"),
    ]


@pytest.fixture
def memory_store(story: NarrativeContent, entities: list[Entity]) -> MemoryStateStore:
    return MemoryStateStore(
        content=story,
        entities=entities,
        relationships=[
            Relationship(id=1, from_entity_id=1, to_entity_id=2, type="parent_of", strength=1.0),
        ],
    )


@pytest.fixture
def never_branch() -> FixedRoll:
    return FixedRoll(0.99)


@pytest.fixture
def always_branch() -> FixedRoll:
    return FixedRoll(0.0)


@pytest.fixture
async def engine(memory_store: MemoryStateStore, never_branch: FixedRoll) -> EngineContext:
    return await EngineContext.load(memory_store, EngineConfig(), rng=never_branch)


@pytest.fixture
async def branching_engine(memory_store: MemoryStateStore, always_branch: FixedRoll) -> EngineContext:
    return await EngineContext.load(memory_store, EngineConfig(), rng=always_branch)
