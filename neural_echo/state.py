"""LiveState: holder for the one live GameState.

Components never keep their own copy of the game state; they share a
``LiveState`` and go through ``merge`` so every write is a merge rather than
a full overwrite.
"""

from __future__ import annotations

import logging
from typing import Any

from neural_echo.models import GameState

logger = logging.getLogger(__name__)


class LiveState:
    def __init__(self, state: GameState) -> None:
        self._state = state

    @property
    def current(self) -> GameState:
        return self._state

    def merge(self, **fields: Any) -> GameState:
        self._state = self._state.merged(fields)
        logger.debug("game state merged: %s", sorted(fields))
        return self._state

    def _restore(self, state: GameState) -> None:
        self._state = state
