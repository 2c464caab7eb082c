"""Engine orchestration: the state controller and the context that wires it."""

from .context import EngineContext  # noqa: F401
from .controller import StateController  # noqa: F401
