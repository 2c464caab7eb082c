"""Neural Echo narrative state engine.

Components (leaves first):
  NarrativeGraph         story nodes and choices, read-only after load
  RelationshipGraph      entities and weighted relationships (world model)
  HistoryLog             append-only record of node/choice visits
  TimelineBranchManager  timeline tree and the branch decision
  StateController        applies one player action atomically
  EngineContext          builds and holds all of the above

Typical use:

    store = JsonStateStore(Path("data"))
    engine = await EngineContext.load(store, load_config())
    result = await engine.controller.apply_choice(1)
"""

from .engine import EngineContext, StateController  # noqa: F401
from .errors import (  # noqa: F401
    ContentIntegrityError,
    EngineError,
    NoNextNode,
    PersistenceError,
    UnknownChoice,
    UnknownEntity,
    UnknownTimeline,
)
from .history import HistoryLog  # noqa: F401
from .narrative import NarrativeGraph  # noqa: F401
from .relationships import RelationshipGraph  # noqa: F401
from .storage import JsonStateStore, MemoryStateStore, StateStore  # noqa: F401
from .timelines import TimelineBranchManager  # noqa: F401
