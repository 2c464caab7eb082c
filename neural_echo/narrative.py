"""NarrativeGraph: read-only lookup over story nodes and choices.

The graph is built once from ``NarrativeContent`` and never changes. Lookups
on unknown ids return ``None`` or an empty list; callers decide what absence
means. Structural problems are caught up front by ``NarrativeGraph.load``,
which raises ``ContentIntegrityError`` instead of letting a dangling choice
surface as a silent dead end during play.
"""

from __future__ import annotations

import logging
from typing import Any

from neural_echo.errors import ContentIntegrityError
from neural_echo.models import Choice, NarrativeContent, Node, NodeId, Storyline

logger = logging.getLogger(__name__)


class NarrativeGraph:
    def __init__(
        self,
        nodes: list[Node],
        choices: list[Choice],
        storylines: list[Storyline] | None = None,
    ) -> None:
        self._nodes: dict[NodeId, Node] = {n.id: n for n in nodes}
        self._choices: dict[NodeId, list[Choice]] = {}
        for choice in choices:
            self._choices.setdefault(choice.node_id, []).append(choice)
        self._storylines = {s.id: s for s in storylines or []}

    @classmethod
    def load(cls, content: NarrativeContent) -> NarrativeGraph:
        """Build a graph and validate it. Raises ContentIntegrityError."""
        _validate(content)
        graph = cls(content.nodes, content.choices, content.storylines)
        logger.info(
            "Narrative graph loaded: %d nodes, %d choices, %d storylines",
            len(content.nodes), len(content.choices), len(content.storylines),
        )
        return graph

    # ------------------------------------------------------------------
    # Nodes and choices
    # ------------------------------------------------------------------

    def get_node(self, node_id: NodeId) -> Node | None:
        return self._nodes.get(node_id)

    def has_node(self, node_id: NodeId) -> bool:
        return node_id in self._nodes

    def nodes(self) -> list[Node]:
        return list(self._nodes.values())

    def get_choices(self, node_id: NodeId) -> list[Choice]:
        """Choices leaving *node_id* in authored order ([] if none)."""
        return list(self._choices.get(node_id, []))

    def available_choices(
        self, node_id: NodeId, variables: dict[str, Any]
    ) -> list[Choice]:
        """Choices whose condition holds for the given game variables."""
        return [c for c in self._choices.get(node_id, []) if c.is_available(variables)]

    def successor(self, node_id: NodeId) -> Node | None:
        """Where a "continue" from *node_id* leads, or None.

        A non-choice node with exactly one authored choice follows it.
        Otherwise integer ids fall back to the node numbered ``node_id + 1``.
        Endings and choice nodes have no successor; a choice node is left
        only through one of its choices.
        """
        node = self._nodes.get(node_id)
        if node is None or node.is_ending or node.is_choice_node:
            return None
        outgoing = self._choices.get(node_id, [])
        if len(outgoing) == 1:
            return self._nodes.get(outgoing[0].next_node_id)
        if isinstance(node_id, int) and not isinstance(node_id, bool):
            return self._nodes.get(node_id + 1)
        return None

    # ------------------------------------------------------------------
    # Storylines
    # ------------------------------------------------------------------

    def is_node_in_storyline(self, node_id: NodeId, storyline_id: int | str) -> bool:
        node = self._nodes.get(node_id)
        return node is not None and node.storyline_id == storyline_id

    def get_storyline(self, storyline_id: int | str) -> Storyline | None:
        return self._storylines.get(storyline_id)

    def get_storyline_for_node(self, node_id: NodeId) -> Storyline | None:
        node = self._nodes.get(node_id)
        if node is None:
            return None
        return self._storylines.get(node.storyline_id)

    def storylines(self) -> list[Storyline]:
        return list(self._storylines.values())


def _validate(content: NarrativeContent) -> None:
    node_ids: set[NodeId] = set()
    for node in content.nodes:
        if node.id in node_ids:
            raise ContentIntegrityError(f"Duplicate node id {node.id!r}")
        node_ids.add(node.id)

    storyline_ids = {s.id for s in content.storylines}
    if storyline_ids:
        for node in content.nodes:
            if node.storyline_id not in storyline_ids:
                raise ContentIntegrityError(
                    f"Node {node.id!r} belongs to unknown storyline {node.storyline_id!r}"
                )

    choice_ids: set = set()
    for choice in content.choices:
        if choice.id in choice_ids:
            raise ContentIntegrityError(f"Duplicate choice id {choice.id!r}")
        choice_ids.add(choice.id)
        if choice.node_id not in node_ids:
            raise ContentIntegrityError(
                f"Choice {choice.id!r} leaves unknown node {choice.node_id!r}"
            )
        if choice.next_node_id not in node_ids:
            raise ContentIntegrityError(
                f"Choice {choice.id!r} leads to unknown node {choice.next_node_id!r}"
            )
