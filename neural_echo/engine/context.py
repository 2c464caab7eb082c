"""EngineContext: one object holding every engine component.

Built once per game by ``EngineContext.load`` and passed to whatever drives
the engine (HTTP routes, the terminal player, tests). There is no module-level
engine state anywhere in the package.

Load order:
  1. Content from the store → NarrativeGraph (validated).
  2. Entities, relationships, timelines, history, game state.
  3. Cross-checks: current node, current timeline, timeline divergence points
     and choice relationship effects must all resolve, else
     ContentIntegrityError.
  4. A fresh save gets the root timeline and an initial GameState at
     ``config.start_node_id``; both are committed before play starts.
  5. The arrival at the opening node is logged if history is empty.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass

from neural_echo.config import EngineConfig
from neural_echo.engine.controller import StateController
from neural_echo.errors import ContentIntegrityError
from neural_echo.history import HistoryLog
from neural_echo.models import CommitBatch, GameState, NarrativeContent
from neural_echo.narrative import NarrativeGraph
from neural_echo.notifications import Notifier
from neural_echo.relationships import RelationshipGraph
from neural_echo.state import LiveState
from neural_echo.storage import StateStore
from neural_echo.timelines import TimelineBranchManager, root_timeline

logger = logging.getLogger(__name__)


@dataclass
class EngineContext:
    store: StateStore
    graph: NarrativeGraph
    state: LiveState
    history: HistoryLog
    timelines: TimelineBranchManager
    relationships: RelationshipGraph
    controller: StateController

    @classmethod
    async def load(
        cls,
        store: StateStore,
        config: EngineConfig | None = None,
        *,
        rng: random.Random | None = None,
        notifier: Notifier | None = None,
    ) -> EngineContext:
        config = config or EngineConfig()
        content = await store.load_narrative_graph()
        graph = NarrativeGraph.load(content)
        entities = await store.load_entities()
        relationship_rows = await store.load_relationships()
        timeline_rows = await store.load_timelines()
        history_rows = await store.load_history()
        game_state = await store.load_game_state()

        fresh = CommitBatch()
        if not timeline_rows:
            timeline_rows = [root_timeline()]
            fresh.timelines = list(timeline_rows)
        if game_state is None:
            root = next(t for t in timeline_rows if t.parent_id is None)
            game_state = GameState(
                current_node_id=config.start_node_id,
                current_timeline_id=root.id,
            )
            fresh.game_state = game_state

        state = LiveState(game_state)
        if rng is None:
            rng = random.Random(config.random_seed)
        timelines = TimelineBranchManager(
            timeline_rows, state, rng=rng, branch_probability=config.branch_probability
        )
        relationships = RelationshipGraph(entities, relationship_rows, state)
        _cross_check(graph, content, timelines, relationships, game_state)

        if not fresh.is_empty():
            await store.commit(fresh)
            logger.info("Started new game at node %r", game_state.current_node_id)

        history = HistoryLog(history_rows)
        controller = StateController(
            graph=graph,
            history=history,
            timelines=timelines,
            relationships=relationships,
            state=state,
            store=store,
            notifier=notifier,
        )
        await controller.start()
        logger.info(
            "Engine ready: node %r, timeline %r, %d history entries",
            game_state.current_node_id, game_state.current_timeline_id, len(history),
        )
        return cls(
            store=store,
            graph=graph,
            state=state,
            history=history,
            timelines=timelines,
            relationships=relationships,
            controller=controller,
        )


def _cross_check(
    graph: NarrativeGraph,
    content: NarrativeContent,
    timelines: TimelineBranchManager,
    relationships: RelationshipGraph,
    game_state: GameState,
) -> None:
    if not graph.has_node(game_state.current_node_id):
        raise ContentIntegrityError(
            f"Game state points at unknown node {game_state.current_node_id!r}"
        )
    if timelines.get_timeline(game_state.current_timeline_id) is None:
        raise ContentIntegrityError(
            f"Game state points at unknown timeline {game_state.current_timeline_id!r}"
        )
    for timeline in timelines.timelines():
        point = timeline.divergence_point_node_id
        if point is not None and not graph.has_node(point):
            raise ContentIntegrityError(
                f"Timeline {timeline.id!r} diverges at unknown node {point!r}"
            )
    for choice in content.choices:
        if choice.effects is None:
            continue
        for effect in choice.effects.relationships:
            for entity_id in (effect.from_entity_id, effect.to_entity_id):
                if relationships.get_entity(entity_id) is None:
                    raise ContentIntegrityError(
                        f"Choice {choice.id!r} affects unknown entity {entity_id!r}"
                    )
