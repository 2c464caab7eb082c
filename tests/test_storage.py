"""Tests for the JSON and in-memory state stores."""

import json
from pathlib import Path

import pytest

from neural_echo.demo import create_demo_data, demo_memory_store
from neural_echo.errors import PersistenceError
from neural_echo.models import (
    CommitBatch,
    GameState,
    HistoryEntry,
    NarrativeContent,
    Relationship,
    Timeline,
)
from neural_echo.storage import JsonStateStore, MemoryStateStore


@pytest.fixture
def store(tmp_path: Path) -> JsonStateStore:
    return JsonStateStore(tmp_path / "save")


# ── JsonStateStore: empty save ───────────────────────────────


async def test_empty_store_defaults(store):
    assert await store.load_game_state() is None
    assert await store.load_timelines() == []
    assert await store.load_history() == []
    assert await store.load_relationships() == []
    assert await store.load_narrative_graph() == NarrativeContent()


def test_creates_base_dir(tmp_path):
    JsonStateStore(tmp_path / "a" / "b")
    assert (tmp_path / "a" / "b").is_dir()


# ── JsonStateStore: commits ─────────────────────────────────


async def test_commit_writes_everything(store):
    state = GameState(current_node_id=2, current_timeline_id=1, variables={"a": 1})
    await store.commit(CommitBatch(
        history=[HistoryEntry(id=1, state_id=1, node_id=1)],
        timelines=[Timeline(id=1, name="Alpha")],
        relationships=[Relationship(id=1, from_entity_id=1, to_entity_id=2, type="t", strength=0.5)],
        game_state=state,
    ))
    assert await store.load_game_state() == state
    assert [t.name for t in await store.load_timelines()] == ["Alpha"]
    assert len(await store.load_history()) == 1
    assert (await store.load_relationships())[0].strength == 0.5


async def test_history_appends(store):
    await store.append_history(HistoryEntry(id=1, state_id=1, node_id=1))
    await store.append_history(HistoryEntry(id=2, state_id=1, node_id=2, choice_id=1))
    assert [e.id for e in await store.load_history()] == [1, 2]


async def test_relationships_upserted_by_id(store):
    await store.save_relationship(Relationship(id=1, from_entity_id=1, to_entity_id=2, type="t", strength=0.5))
    await store.save_relationship(Relationship(id=1, from_entity_id=1, to_entity_id=2, type="t", strength=0.9))
    rels = await store.load_relationships()
    assert len(rels) == 1
    assert rels[0].strength == 0.9


async def test_timelines_upserted_by_id(store):
    await store.save_timeline(Timeline(id=1, name="Alpha"))
    await store.save_timeline(Timeline(id=2, name="Beta", parent_id=1, divergence_point_node_id=1))
    await store.save_timeline(Timeline(id=1, name="Alpha", description="Primary"))
    timelines = await store.load_timelines()
    assert [t.id for t in timelines] == [1, 2]
    assert timelines[0].description == "Primary"


async def test_no_temp_files_left(store):
    await store.save_game_state(GameState(current_node_id=1, current_timeline_id=1))
    assert not list(store.base_path.glob("*.tmp"))


async def test_files_are_readable_json(store):
    await store.save_game_state(GameState(current_node_id=1, current_timeline_id=1))
    data = json.loads((store.base_path / "game_state.json").read_text())
    assert data["current_node_id"] == 1


# ── JsonStateStore: failures ────────────────────────────────


async def test_corrupt_file_raises_persistence_error(store):
    (store.base_path / "history.json").write_text("{not json")
    with pytest.raises(PersistenceError):
        await store.load_history()


async def test_invalid_rows_raise_persistence_error(store):
    (store.base_path / "timelines.json").write_text(json.dumps([{"id": 1}]))
    with pytest.raises(PersistenceError):
        await store.load_timelines()


async def test_write_failure_raises_persistence_error(store):
    (store.base_path / "game_state.json").mkdir()  # os.replace onto a directory fails
    with pytest.raises(PersistenceError):
        await store.save_game_state(GameState(current_node_id=1, current_timeline_id=1))
    assert not list(store.base_path.glob("*.tmp"))


async def test_failed_commit_restores_files_already_swapped(store):
    await store.commit(CommitBatch(
        history=[HistoryEntry(id=1, state_id=1, node_id=1)],
        timelines=[Timeline(id=1, name="Alpha")],
    ))
    history_before = (store.base_path / "history.json").read_bytes()
    timelines_before = (store.base_path / "timelines.json").read_bytes()
    (store.base_path / "game_state.json").mkdir()  # last file in the batch fails

    with pytest.raises(PersistenceError):
        await store.commit(CommitBatch(
            history=[HistoryEntry(id=2, state_id=1, node_id=1, choice_id=1)],
            timelines=[Timeline(id=2, name="Beta", parent_id=1, divergence_point_node_id=1)],
            relationships=[Relationship(id=1, from_entity_id=1, to_entity_id=2, type="t", strength=0.5)],
            game_state=GameState(current_node_id=2, current_timeline_id=2),
        ))

    assert (store.base_path / "history.json").read_bytes() == history_before
    assert (store.base_path / "timelines.json").read_bytes() == timelines_before
    assert not (store.base_path / "relationships.json").exists()
    assert not list(store.base_path.glob("*.tmp"))


# ── Seeding ──────────────────────────────────────────────────


async def test_demo_seed(store):
    create_demo_data(store)
    content = await store.load_narrative_graph()
    assert len(content.nodes) == 8
    assert len(content.choices) == 16
    assert len(await store.load_entities()) == 5
    assert len(await store.load_relationships()) == 4


async def test_seed_wipes_play_state(store):
    await store.save_game_state(GameState(current_node_id=3, current_timeline_id=1))
    await store.append_history(HistoryEntry(id=1, state_id=1, node_id=3))
    create_demo_data(store)
    assert await store.load_game_state() is None
    assert await store.load_history() == []


# ── MemoryStateStore ─────────────────────────────────────────


async def test_memory_store_commit():
    store = MemoryStateStore()
    state = GameState(current_node_id=1, current_timeline_id=1)
    await store.commit(CommitBatch(
        history=[HistoryEntry(id=1, state_id=1, node_id=1)],
        timelines=[Timeline(id=1, name="Alpha")],
        game_state=state,
    ))
    assert await store.load_game_state() == state
    assert len(await store.load_history()) == 1
    assert len(await store.load_timelines()) == 1


async def test_demo_memory_store():
    store = demo_memory_store()
    assert len((await store.load_narrative_graph()).nodes) == 8
