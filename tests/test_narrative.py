"""Tests for the narrative graph: lookups, successors and load-time integrity."""

import pytest

from neural_echo.demo import load_preset
from neural_echo.errors import ContentIntegrityError
from neural_echo.models import Choice, NarrativeContent, Node, Storyline
from neural_echo.narrative import NarrativeGraph


@pytest.fixture
def graph(story: NarrativeContent) -> NarrativeGraph:
    return NarrativeGraph.load(story)


# ── Lookups ──────────────────────────────────────────────────


def test_get_node(graph):
    assert graph.get_node(1).title == "Morning Rounds"


def test_get_unknown_node_returns_none(graph):
    assert graph.get_node(999) is None


def test_get_choices_in_authored_order(graph):
    assert [c.id for c in graph.get_choices(1)] == [1, 2, 7]


def test_get_choices_unknown_node_empty(graph):
    assert graph.get_choices(999) == []


def test_get_choices_returns_copy(graph):
    graph.get_choices(1).clear()
    assert len(graph.get_choices(1)) == 3


def test_available_choices_filters_conditions(graph):
    assert [c.id for c in graph.available_choices(1, {})] == [1, 2]
    assert [c.id for c in graph.available_choices(1, {"has_key": True})] == [1, 2, 7]


def test_is_node_in_storyline(graph):
    assert graph.is_node_in_storyline(1, 1)
    assert not graph.is_node_in_storyline(1, 2)
    assert not graph.is_node_in_storyline(999, 1)


def test_storyline_for_node(graph):
    assert graph.get_storyline_for_node(4).name == "AI"
    assert graph.get_storyline_for_node(999) is None


# ── Successors (auto-advance) ────────────────────────────────


def test_successor_by_next_id(graph):
    """Node 3 has no choices: continues to node 4."""
    assert graph.successor(3).id == 4


def test_successor_follows_single_continue_choice(graph):
    """Node 4 is a non-choice node with one choice leading to 6."""
    assert graph.successor(4).id == 6


def test_ending_has_no_successor(graph):
    assert graph.successor(6) is None


def test_choice_node_has_no_successor(graph):
    """Node 1 offers choices: it is left only by picking one."""
    assert graph.successor(1) is None
    assert graph.successor(2) is None


def test_unknown_node_has_no_successor(graph):
    assert graph.successor(999) is None


def test_string_ids_have_no_arithmetic_successor():
    graph = NarrativeGraph.load(NarrativeContent(
        nodes=[Node(id="a", storyline_id=1, title="A", content="", is_choice_node=False)],
    ))
    assert graph.successor("a") is None


# ── Content integrity ────────────────────────────────────────


def test_dangling_choice_target_rejected():
    content = NarrativeContent(
        nodes=[Node(id=1, storyline_id=1, title="A", content="")],
        choices=[Choice(id=1, node_id=1, text="Go", next_node_id=2)],
    )
    with pytest.raises(ContentIntegrityError, match="unknown node 2"):
        NarrativeGraph.load(content)


def test_dangling_choice_source_rejected():
    content = NarrativeContent(
        nodes=[Node(id=1, storyline_id=1, title="A", content="")],
        choices=[Choice(id=1, node_id=9, text="Go", next_node_id=1)],
    )
    with pytest.raises(ContentIntegrityError):
        NarrativeGraph.load(content)


def test_duplicate_node_rejected():
    content = NarrativeContent(nodes=[
        Node(id=1, storyline_id=1, title="A", content=""),
        Node(id=1, storyline_id=1, title="B", content=""),
    ])
    with pytest.raises(ContentIntegrityError, match="Duplicate node"):
        NarrativeGraph.load(content)


def test_duplicate_choice_rejected():
    content = NarrativeContent(
        nodes=[Node(id=1, storyline_id=1, title="A", content="")],
        choices=[
            Choice(id=1, node_id=1, text="Stay", next_node_id=1),
            Choice(id=1, node_id=1, text="Stay again", next_node_id=1),
        ],
    )
    with pytest.raises(ContentIntegrityError, match="Duplicate choice"):
        NarrativeGraph.load(content)


def test_unknown_storyline_rejected():
    content = NarrativeContent(
        storylines=[Storyline(id=1, name="Clinical")],
        nodes=[Node(id=1, storyline_id=7, title="A", content="")],
    )
    with pytest.raises(ContentIntegrityError, match="storyline"):
        NarrativeGraph.load(content)


def test_bundled_story_is_consistent():
    """Every choice in the shipped preset resolves to an existing node."""
    preset = load_preset()
    graph = NarrativeGraph.load(preset.content)
    for node in graph.nodes():
        for choice in graph.get_choices(node.id):
            assert graph.get_node(choice.next_node_id) is not None
    assert len(graph.nodes()) == 8
    assert [s.name for s in graph.storylines()] == ["Clinical", "AI", "Family"]
