"""
API Service - Business logic layer between API and engine.

The service:
1. Translates API requests to RoomManager calls
2. Filters game states per viewer (opponent hand and face-down cards hidden)
3. Converts rule violations into ServiceError values with an HTTP status

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar
import logging

from ..engine_core.action import ActionResult
from ..engine_core.errors import ErrorType, GameRuleError
from ..engine_core.state import GameState
from ..session import RoomManager
from .schemas import (
    AcknowledgeRequest,
    ActionRequest,
    ActionResponse,
    CreateRoomRequest,
    EndRoomResponse,
    GameStateResponse,
    InjectStateRequest,
    JoinRoomRequest,
    LegalPlacementsResponse,
    PlayerDecksResponse,
    ReadyRequest,
    RoomListResponse,
    RoomResponse,
    SelectionRequest,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

HIDDEN_CARD = "hidden"

STATUS_BY_CODE = {
    ErrorType.GAME_NOT_FOUND.value: 404,
    ErrorType.GAME_ENDED.value: 409,
    ErrorType.ROOM_NOT_AVAILABLE.value: 409,
}


def status_for(error_code: str | None) -> int:
    return STATUS_BY_CODE.get(error_code or "", 400)


@dataclass
class ServiceError:
    """A failed request, ready to be rendered as an ErrorResponse."""
    error: str
    error_code: str
    status_code: int = 400
    details: dict[str, Any] | None = None

    @classmethod
    def from_rule_error(cls, exc: GameRuleError) -> ServiceError:
        return cls(
            error=exc.message,
            error_code=exc.error_type.value,
            status_code=status_for(exc.error_type.value),
            details=exc.details or None,
        )


def player_view(state: GameState, viewer: str | None = None) -> dict[str, Any]:
    """
    Serialize a state for one player.

    With no viewer the full state is returned. Otherwise draw piles are
    reduced to counts, the opponent's hand is masked, and the opponent's
    face-down cards lose their ids.
    """
    data = state.to_dict()
    if viewer is None:
        return data

    for pid, player in data["players"].items():
        deck = player["deck"]
        deck["main_deck_count"] = len(deck["main_deck"])
        deck["main_deck"] = []
        if pid != viewer:
            deck["hand_count"] = len(deck["hand"])
            deck["hand"] = [HIDDEN_CARD] * len(deck["hand"])

    for pid, zones in data["zones"].items():
        if pid == viewer:
            continue
        for cards in zones.values():
            for card in cards:
                if card["is_face_down"]:
                    card["card_id"] = HIDDEN_CARD

    for selection in data["pending_card_selections"].values():
        if selection.get("player_id") != viewer:
            selection["eligible_cards"] = []
            selection["searched_cards"] = []
    return data


@dataclass
class APIService:
    """
    Main API service for game clients.

    Usage:
        service = APIService()

        room = service.create_room(CreateRoomRequest(player_id="playerId_1"))
        service.join_room(room.game_id, JoinRoomRequest(player_id="playerId_2"))

        response = service.submit_action(room.game_id, ActionRequest(...))
    """
    rooms: RoomManager = field(default_factory=RoomManager)
    allow_test_routes: bool = True

    def _call(self, fn: Callable[[], T]) -> T | ServiceError:
        try:
            return fn()
        except GameRuleError as e:
            logger.info("Request rejected: %s", e)
            return ServiceError.from_rule_error(e)

    # =========================================================================
    # Rooms
    # =========================================================================

    def create_room(self, request: CreateRoomRequest) -> RoomResponse | ServiceError:
        return self._call(lambda: self._room_response(self.rooms.create_room(request.player_id, request.seed)))

    def join_room(self, game_id: str, request: JoinRoomRequest) -> RoomResponse | ServiceError:
        return self._call(lambda: self._room_response(self.rooms.join_room(game_id, request.player_id)))

    def ready(self, game_id: str, request: ReadyRequest) -> RoomResponse | ServiceError:
        return self._call(
            lambda: self._room_response(self.rooms.start_ready(game_id, request.player_id, request.redraw))
        )

    def get_game_state(self, game_id: str, player_id: str | None = None) -> GameStateResponse | ServiceError:
        return self._call(lambda: self._state_response(self.rooms.get_state(game_id), player_id))

    def end_room(self, game_id: str) -> EndRoomResponse:
        return EndRoomResponse(success=self.rooms.end_room(game_id), game_id=game_id)

    def list_rooms(self) -> RoomListResponse:
        rooms = self.rooms.list_rooms()
        return RoomListResponse(rooms=rooms, count=len(rooms))

    # =========================================================================
    # Gameplay
    # =========================================================================

    def submit_action(self, game_id: str, request: ActionRequest) -> ActionResponse | ServiceError:
        return self._call(
            lambda: self._action_response(
                game_id,
                request.player_id,
                self.rooms.dispatch(game_id, request.player_id, request.to_action_dict()),
            )
        )

    def submit_selection(self, game_id: str, request: SelectionRequest) -> ActionResponse | ServiceError:
        action = {
            "type": "SelectCard",
            "selectionId": request.selection_id,
            "selectedCardIds": request.selected_card_ids,
        }
        return self._call(
            lambda: self._action_response(
                game_id, request.player_id, self.rooms.dispatch(game_id, request.player_id, action)
            )
        )

    def acknowledge_events(self, game_id: str, request: AcknowledgeRequest) -> ActionResponse | ServiceError:
        return self._call(
            lambda: self._action_response(
                game_id,
                request.player_id,
                self.rooms.acknowledge_events(game_id, request.player_id, request.event_ids, request.event_types),
            )
        )

    def next_round(self, game_id: str) -> ActionResponse | ServiceError:
        return self._call(lambda: self._action_response(game_id, None, self.rooms.next_round(game_id)))

    def legal_placements(self, game_id: str, player_id: str) -> LegalPlacementsResponse | ServiceError:
        def run() -> LegalPlacementsResponse:
            actions = [a.to_dict() for a in self.rooms.legal_placements(game_id, player_id)]
            return LegalPlacementsResponse(game_id=game_id, player_id=player_id, actions=actions, count=len(actions))
        return self._call(run)

    def player_decks(self, player_id: str) -> PlayerDecksResponse | ServiceError:
        def run() -> PlayerDecksResponse:
            decks = self.rooms.player_decks(player_id)
            return PlayerDecksResponse(
                player_id=player_id,
                active_deck=decks.active_deck,
                decks={name: deck.to_dict() for name, deck in decks.decks.items()},
            )
        return self._call(run)

    # =========================================================================
    # Test tools
    # =========================================================================

    def inject_state(self, request: InjectStateRequest) -> GameStateResponse | ServiceError:
        return self._call(lambda: self._state_response(self.rooms.inject_state(request.game_state, request.game_id)))

    def load_scenario(self, scenario_id: str, game_id: str | None = None) -> GameStateResponse | ServiceError:
        return self._call(lambda: self._state_response(self.rooms.load_scenario(scenario_id, game_id)))

    # =========================================================================
    # Conversion helpers
    # =========================================================================

    @staticmethod
    def _room_response(state: GameState) -> RoomResponse:
        return RoomResponse(
            game_id=state.game_id,
            room_status=state.room_status.value,
            phase=state.phase.value,
            players=list(state.player_ids),
            first_player=state.first_player,
            current_player=state.current_player,
        )

    @staticmethod
    def _state_response(state: GameState, player_id: str | None = None) -> GameStateResponse:
        return GameStateResponse(
            game_id=state.game_id,
            player_id=player_id,
            game_state=player_view(state, player_id),
            unprocessed_events=[e.to_dict() for e in state.events.unprocessed()],
        )

    @staticmethod
    def _action_response(game_id: str, player_id: str | None, result: ActionResult) -> ActionResponse | ServiceError:
        if not result.success:
            return ServiceError(
                error=result.error or "Action failed",
                error_code=result.error_code or ErrorType.INVALID_ACTION_TYPE.value,
                status_code=status_for(result.error_code),
                details={"game_id": game_id},
            )
        pending = result.pending_choice
        return ActionResponse(
            game_id=game_id,
            game_state=player_view(result.new_state, player_id),
            events=result.events,
            state_changes=result.state_changes,
            pending_selection=pending.to_dict() if pending is not None else None,
        )
