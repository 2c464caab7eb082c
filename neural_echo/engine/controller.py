"""StateController: the single authority for advancing narrative position.

apply_choice flow (strict order):
  1. Resolve the choice among those the current node offers right now.
     Unknown → UnknownChoice, nothing mutated.
  2. Append a history entry for the node being left, with the choice id.
  3. Roll for a timeline branch. A fork is created *before* the node
     pointer moves, so its divergence point is the node being left.
  4. Merge the new node (and the choice's variable effects) into GameState;
     apply the choice's relationship effects.
  5. Append an arrival history entry for the new node (no choice id).
  6. Return the target node plus any branch / loop event.

Atomicity:
  One action runs at a time (asyncio.Lock). Steps 1–5 mutate the in-memory
  components against a snapshot; everything they wrote is then handed to the
  store as a single CommitBatch. If the commit raises, every component is
  restored to its snapshot and the error propagates, so readers never see a
  half-applied action. The locked work runs shielded from cancellation.
  Notifications go out only after a successful commit.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, TypeVar

from neural_echo.errors import NoNextNode, UnknownChoice
from neural_echo.history import HistoryLog
from neural_echo.models import (
    BranchEvent,
    Choice,
    ChoiceId,
    ChoiceResult,
    CommitBatch,
    EntityId,
    GameState,
    LoopEvent,
    Node,
    NodeId,
    Relationship,
    Timeline,
    TimelineId,
)
from neural_echo.narrative import NarrativeGraph
from neural_echo.notifications import LoggingNotifier, Notifier, deliver
from neural_echo.relationships import RelationshipGraph
from neural_echo.state import LiveState
from neural_echo.storage import StateStore
from neural_echo.timelines import TimelineBranchManager

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StateController:
    def __init__(
        self,
        *,
        graph: NarrativeGraph,
        history: HistoryLog,
        timelines: TimelineBranchManager,
        relationships: RelationshipGraph,
        state: LiveState,
        store: StateStore,
        notifier: Notifier | None = None,
    ) -> None:
        self._graph = graph
        self._history = history
        self._timelines = timelines
        self._relationships = relationships
        self._state = state
        self._store = store
        self._notifier = notifier or LoggingNotifier()
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def state(self) -> GameState:
        return self._state.current

    def current_node(self) -> Node:
        node = self._graph.get_node(self._state.current.current_node_id)
        assert node is not None, "current node missing from narrative graph"
        return node

    def current_choices(self) -> list[Choice]:
        """Choices the player can pick right now."""
        state = self._state.current
        return self._graph.available_choices(state.current_node_id, state.variables)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def start(self) -> Node:
        """Log the arrival at the opening node if nothing has been logged yet."""
        def _start() -> Node:
            node = self.current_node()
            if len(self._history) == 0:
                self._history.append(self._state.current.id, node.id)
            return node

        return await self._run(_start)

    async def apply_choice(self, choice_id: ChoiceId) -> ChoiceResult:
        result = await self._run(lambda: self._apply_choice(choice_id))
        if result.branch_event is not None:
            await deliver(self._notifier, result.branch_event)
        if result.loop_event is not None:
            await deliver(self._notifier, result.loop_event)
        return result

    async def advance(self, from_node_id: NodeId | None = None) -> Node:
        """Auto-advance a non-choice node. Raises NoNextNode at the end."""
        return await self._run(lambda: self._advance(from_node_id))

    async def switch_timeline(self, timeline_id: TimelineId) -> Timeline:
        return await self._run(lambda: self._timelines.switch_timeline(timeline_id))

    async def update_relationship(
        self, from_id: EntityId, to_id: EntityId, type: str, strength: float
    ) -> Relationship:
        return await self._run(
            lambda: self._relationships.update_relationship(from_id, to_id, type, strength)
        )

    async def set_variables(self, variables: dict[str, Any]) -> GameState:
        return await self._run(lambda: self._state.merge(variables=variables))

    # ------------------------------------------------------------------
    # Step logic (runs under the lock, inside a transaction)
    # ------------------------------------------------------------------

    def _apply_choice(self, choice_id: ChoiceId) -> ChoiceResult:
        state = self._state.current
        node = self.current_node()
        offered = self._graph.available_choices(node.id, state.variables)
        chosen = next((c for c in offered if c.id == choice_id), None)
        if chosen is None:
            raise UnknownChoice(choice_id, node.id)

        self._history.append(state.id, node.id, chosen.id)

        branch_event = None
        if self._timelines.should_branch(node, offered, chosen):
            timeline = self._timelines.create_branch(
                self._timelines.generate_name(),
                f'Timeline created by choosing "{chosen.text}"',
                node.id,
            )
            branch_event = BranchEvent(
                timeline_id=timeline.id,
                timeline_name=timeline.name,
                source_text=chosen.text,
                divergence_point_node_id=node.id,
            )

        update: dict[str, Any] = {"current_node_id": chosen.next_node_id}
        if chosen.effects and chosen.effects.set_variables:
            update["variables"] = chosen.effects.set_variables
        self._state.merge(**update)
        if chosen.effects:
            for effect in chosen.effects.relationships:
                self._relationships.update_relationship(
                    effect.from_entity_id, effect.to_entity_id, effect.type, effect.strength
                )

        target = self._graph.get_node(chosen.next_node_id)
        assert target is not None, "choice target validated at load"
        self._history.append(state.id, target.id)

        loop_event = None
        if target.id == node.id:
            loop_event = LoopEvent(node_id=node.id, choice_id=chosen.id)

        logger.debug("choice %r: node %r -> %r", chosen.id, node.id, target.id)
        return ChoiceResult(node=target, branch_event=branch_event, loop_event=loop_event)

    def _advance(self, from_node_id: NodeId | None) -> Node:
        source = self._state.current.current_node_id if from_node_id is None else from_node_id
        target = self._graph.successor(source)
        if target is None:
            raise NoNextNode(source)
        self._state.merge(current_node_id=target.id)
        self._history.append(self._state.current.id, target.id)
        logger.debug("advance: node %r -> %r", source, target.id)
        return target

    # ------------------------------------------------------------------
    # Serialisation and commit
    # ------------------------------------------------------------------

    async def _run(self, step: Callable[[], T]) -> T:
        # A cancelled caller must not abandon the action mid-commit.
        task = asyncio.ensure_future(self._locked(step))
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            task.add_done_callback(_log_abandoned_failure)
            raise

    async def _locked(self, step: Callable[[], T]) -> T:
        async with self._lock:
            tx = _Transaction(self)
            try:
                result = step()
                batch = tx.batch()
                if not batch.is_empty():
                    await self._store.commit(batch)
            except Exception:
                tx.rollback()
                raise
            return result


class _Transaction:
    """Snapshot of every mutable component taken before an action."""

    def __init__(self, controller: StateController) -> None:
        self._c = controller
        self._state = controller._state.current
        self._history_len = len(controller._history)
        self._timelines_len = len(controller._timelines)
        self._relationships = controller._relationships._snapshot()

    def batch(self) -> CommitBatch:
        c = self._c
        before = {r.id: r for r in self._relationships}
        changed = [
            r for r in c._relationships.get_relationships() if before.get(r.id) != r
        ]
        state = c._state.current
        return CommitBatch(
            history=c._history.all()[self._history_len:],
            timelines=c._timelines.timelines()[self._timelines_len:],
            relationships=changed,
            game_state=state if state != self._state else None,
        )

    def rollback(self) -> None:
        c = self._c
        c._state._restore(self._state)
        c._history._truncate(self._history_len)
        c._timelines._truncate(self._timelines_len)
        c._relationships._restore(self._relationships)


def _log_abandoned_failure(task: asyncio.Task) -> None:
    """Report an action that failed after its caller stopped waiting."""
    if task.cancelled() or task.exception() is None:
        return
    logger.error(
        "Action failed after its caller was cancelled", exc_info=task.exception()
    )
