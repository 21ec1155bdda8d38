"""
Session Module - Rooms, persistence and canned scenarios.

A room is one game between two players:
- Created by the first player, joined by the second
- Every change runs under the game's lock and is saved to the store
- Removed when ended or when stale

Games persist as serialized blobs, in memory by default or as JSON files.
"""

from .manager import RoomManager
from .store import GameStore, InMemoryGameStore, JsonFileGameStore
from .scenarios import SCENARIOS, SIMPLE_TEST, build_scenario, build_simple_test

__all__ = [
    "RoomManager",
    "GameStore",
    "InMemoryGameStore",
    "JsonFileGameStore",
    "SCENARIOS",
    "SIMPLE_TEST",
    "build_scenario",
    "build_simple_test",
]
