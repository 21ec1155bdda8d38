"""
Game Store - Load/save hooks for serialized game states.

Stores hold the to_dict() blob of each game, never live objects, so a
loaded state can never alias one held by another caller.

Two implementations:
- InMemoryGameStore: the default; games vanish with the process
- JsonFileGameStore: one JSON file per game under a state directory
"""

from __future__ import annotations
from pathlib import Path
from typing import Any, Protocol
import json
import logging

from ..engine_core.state import GameState

logger = logging.getLogger(__name__)


class GameStore(Protocol):
    def load(self, game_id: str) -> GameState | None: ...

    def save(self, state: GameState) -> None: ...

    def delete(self, game_id: str) -> bool: ...

    def list_ids(self) -> list[str]: ...


class InMemoryGameStore:
    """Dictionary of serialized games."""

    def __init__(self):
        self._blobs: dict[str, dict[str, Any]] = {}

    def load(self, game_id: str) -> GameState | None:
        blob = self._blobs.get(game_id)
        return GameState.from_dict(blob) if blob is not None else None

    def save(self, state: GameState):
        self._blobs[state.game_id] = state.to_dict()

    def delete(self, game_id: str) -> bool:
        return self._blobs.pop(game_id, None) is not None

    def list_ids(self) -> list[str]:
        return list(self._blobs)


class JsonFileGameStore:
    """
    File-based game store.

    Usage:
        store = JsonFileGameStore(state_dir="/var/lib/ballot")
        store.save(state)
        state = store.load(state.game_id)
    """

    def __init__(self, state_dir: str | Path):
        self.state_dir = Path(state_dir)
        self.state_dir.mkdir(parents=True, exist_ok=True)

    def load(self, game_id: str) -> GameState | None:
        path = self._path(game_id)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return GameState.from_dict(json.load(f))

    def save(self, state: GameState):
        path = self._path(state.game_id)
        tmp_path = path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(state.to_dict(), f, ensure_ascii=False, indent=2)
        tmp_path.replace(path)
        logger.debug("Saved game %s to %s", state.game_id, path)

    def delete(self, game_id: str) -> bool:
        path = self._path(game_id)
        if not path.exists():
            return False
        path.unlink()
        return True

    def list_ids(self) -> list[str]:
        return sorted(f.stem for f in self.state_dir.glob("*.json"))

    def _path(self, game_id: str) -> Path:
        if not game_id or "/" in game_id or "\\" in game_id or game_id.startswith("."):
            raise ValueError(f"Invalid game id: {game_id!r}")
        return self.state_dir / f"{game_id}.json"
