"""TimelineBranchManager: the tree of alternate story paths.

Timelines are branch metadata over the single node graph, not copies of it.
A branch always hangs off the current timeline, so the tree can never grow a
second root or a cycle. Switching timelines only moves the pointer in
GameState; the player's node is left where it is.

Branch decision:
  A choice can fork the story only when its node offered more than one
  choice. Each eligible application is an independent Bernoulli trial with
  probability ``branch_probability`` (0.2 by default), drawn from the
  injected ``random.Random`` so tests can force either outcome.
"""

from __future__ import annotations

import logging
import random

from neural_echo.errors import ContentIntegrityError, UnknownTimeline
from neural_echo.models import Choice, Node, NodeId, Timeline, TimelineId
from neural_echo.state import LiveState

logger = logging.getLogger(__name__)

TIMELINE_NAMES = ["Alpha", "Beta", "Gamma", "Delta", "Epsilon", "Zeta", "Eta", "Theta"]

DEFAULT_BRANCH_PROBABILITY = 0.2


def root_timeline() -> Timeline:
    return Timeline(id=1, name=TIMELINE_NAMES[0], description="Primary timeline")


class TimelineBranchManager:
    def __init__(
        self,
        timelines: list[Timeline],
        state: LiveState,
        rng: random.Random | None = None,
        branch_probability: float = DEFAULT_BRANCH_PROBABILITY,
    ) -> None:
        _validate_tree(timelines)
        self._timelines = list(timelines)
        self._state = state
        self._rng = rng or random.Random()
        self.branch_probability = branch_probability

    # ------------------------------------------------------------------
    # Branching
    # ------------------------------------------------------------------

    def should_branch(self, node: Node, choices: list[Choice], chosen: Choice) -> bool:
        """Roll for a fork. Only nodes offering 2+ choices are eligible."""
        if len(choices) < 2:
            return False
        roll = self._rng.random()
        fork = roll < self.branch_probability
        logger.debug(
            "branch roll node=%r choice=%r roll=%.3f fork=%s",
            node.id, chosen.id, roll, fork,
        )
        return fork

    def generate_name(self) -> str:
        return TIMELINE_NAMES[len(self._timelines) % len(TIMELINE_NAMES)]

    def create_branch(
        self, name: str, description: str, divergence_node_id: NodeId
    ) -> Timeline:
        """Attach a new timeline under the current one and switch to it."""
        timeline = Timeline(
            id=self._next_id(),
            name=name,
            description=description,
            parent_id=self._state.current.current_timeline_id,
            divergence_point_node_id=divergence_node_id,
        )
        self._timelines.append(timeline)
        self._state.merge(current_timeline_id=timeline.id)
        logger.info(
            "Timeline branch created: %s (id=%r, parent=%r, diverged at node %r)",
            timeline.name, timeline.id, timeline.parent_id, divergence_node_id,
        )
        return timeline

    # ------------------------------------------------------------------
    # Lookup and navigation
    # ------------------------------------------------------------------

    def get_current_timeline(self) -> Timeline:
        current = self.get_timeline(self._state.current.current_timeline_id)
        assert current is not None, "current timeline missing from tree"
        return current

    def get_timeline(self, timeline_id: TimelineId) -> Timeline | None:
        for timeline in self._timelines:
            if timeline.id == timeline_id:
                return timeline
        return None

    def timelines(self) -> list[Timeline]:
        return list(self._timelines)

    def root(self) -> Timeline:
        return next(t for t in self._timelines if t.parent_id is None)

    def children(self, timeline_id: TimelineId) -> list[Timeline]:
        return [t for t in self._timelines if t.parent_id == timeline_id]

    def ancestry(self, timeline_id: TimelineId) -> list[Timeline]:
        """Path from the root down to *timeline_id*."""
        timeline = self.get_timeline(timeline_id)
        if timeline is None:
            raise UnknownTimeline(timeline_id)
        path = [timeline]
        while timeline.parent_id is not None:
            timeline = self.get_timeline(timeline.parent_id)
            path.append(timeline)
        path.reverse()
        return path

    def switch_timeline(self, timeline_id: TimelineId) -> Timeline:
        """Point GameState at another timeline. Does not move the node."""
        timeline = self.get_timeline(timeline_id)
        if timeline is None:
            raise UnknownTimeline(timeline_id)
        self._state.merge(current_timeline_id=timeline.id)
        logger.info("Switched to timeline %s (id=%r)", timeline.name, timeline.id)
        return timeline

    def __len__(self) -> int:
        return len(self._timelines)

    def _next_id(self) -> int:
        numeric = [t.id for t in self._timelines if isinstance(t.id, int)]
        return max(numeric, default=0) + 1

    def _truncate(self, length: int) -> None:
        del self._timelines[length:]


def _validate_tree(timelines: list[Timeline]) -> None:
    """Exactly one root, known parents, no cycles."""
    by_id: dict[TimelineId, Timeline] = {}
    for timeline in timelines:
        if timeline.id in by_id:
            raise ContentIntegrityError(f"Duplicate timeline id {timeline.id!r}")
        by_id[timeline.id] = timeline

    roots = [t for t in timelines if t.parent_id is None]
    if len(roots) != 1:
        raise ContentIntegrityError(
            f"Timeline tree must have exactly one root, found {len(roots)}"
        )

    for timeline in timelines:
        seen = {timeline.id}
        parent_id = timeline.parent_id
        while parent_id is not None:
            if parent_id not in by_id:
                raise ContentIntegrityError(
                    f"Timeline {timeline.id!r} has unknown parent {parent_id!r}"
                )
            if parent_id in seen:
                raise ContentIntegrityError(f"Timeline cycle through {parent_id!r}")
            seen.add(parent_id)
            parent_id = by_id[parent_id].parent_id
