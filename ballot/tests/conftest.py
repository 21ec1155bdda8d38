"""
Pytest fixtures for Ballot tests.
"""

import pytest

from ..catalog import Catalog, DecksCollection, default_catalog, load_decks
from ..engine_core.action import Action
from ..engine_core.events import EventType
from ..engine_core.orchestrator import GameOrchestrator
from ..engine_core.settings import EngineSettings
from ..engine_core.state import GameState
from ..session import RoomManager, build_simple_test
from .helpers import PLAYER_1, PLAYER_2


@pytest.fixture
def catalog() -> Catalog:
    """The packaged card catalog."""
    return default_catalog()


@pytest.fixture
def decks() -> DecksCollection:
    return load_decks()


@pytest.fixture
def settings() -> EngineSettings:
    return EngineSettings()


@pytest.fixture
def orchestrator(catalog: Catalog, settings: EngineSettings) -> GameOrchestrator:
    return GameOrchestrator(catalog, settings)


@pytest.fixture
def simple_state(orchestrator: GameOrchestrator, decks: DecksCollection) -> GameState:
    """The simple_test scenario with fieldEffects computed; playerId_1 to act."""
    return orchestrator.reconcile(build_simple_test(decks=decks))


@pytest.fixture
def rooms(orchestrator: GameOrchestrator, decks: DecksCollection) -> RoomManager:
    return RoomManager(orchestrator=orchestrator, decks=decks)


@pytest.fixture
def started_game(rooms: RoomManager) -> GameState:
    """A room both players have joined and readied; seeded for reproducibility."""
    state = rooms.create_room(PLAYER_1, seed=7)
    rooms.join_room(state.game_id, PLAYER_2)
    rooms.start_ready(state.game_id, PLAYER_1)
    return rooms.start_ready(state.game_id, PLAYER_2)


@pytest.fixture
def play():
    """
    Apply an action and fail the test if it is rejected.

    Usage: state = play(orchestrator, state, PLAYER_1, Action.play_card(0, 0))
    """
    def _play(orchestrator: GameOrchestrator, state: GameState, player_id: str, action: Action) -> GameState:
        result = orchestrator.apply_action(state, player_id, action)
        assert result.success, f"{result.error_code}: {result.error}"
        return result.new_state
    return _play


@pytest.fixture
def ack_draw():
    """Acknowledge DRAW_PHASE_COMPLETE so the current player enters MAIN_PHASE."""
    def _ack(orchestrator: GameOrchestrator, state: GameState) -> GameState:
        result = orchestrator.acknowledge_events(
            state, state.current_player, event_types=[EventType.DRAW_PHASE_COMPLETE.value]
        )
        assert result.success, result.error
        return result.new_state
    return _ack
