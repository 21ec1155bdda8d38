"""
Tests for API layer.

Tests:
- APIService methods and error mapping
- Per-player state views
- HTTP routes through the FastAPI test client
"""

import pytest
from fastapi.testclient import TestClient

from ..api.app import create_app
from ..api.schemas import (
    AcknowledgeRequest,
    ActionRequest,
    CreateRoomRequest,
    JoinRoomRequest,
    ReadyRequest,
    SelectionRequest,
)
from ..api.service import HIDDEN_CARD, APIService, ServiceError, player_view
from .helpers import PLAYER_1, PLAYER_2, make_state, put_card


@pytest.fixture
def service(rooms):
    return APIService(rooms=rooms)


@pytest.fixture
def client(service):
    return TestClient(create_app(service))


def start_game(service, seed=7):
    room = service.create_room(CreateRoomRequest(player_id=PLAYER_1, seed=seed))
    service.join_room(room.game_id, JoinRoomRequest(player_id=PLAYER_2))
    service.ready(room.game_id, ReadyRequest(player_id=PLAYER_1))
    service.ready(room.game_id, ReadyRequest(player_id=PLAYER_2))
    return room.game_id


class TestAPIService:
    """Tests for APIService."""

    def test_room_flow(self, service):
        room = service.create_room(CreateRoomRequest(player_id=PLAYER_1))
        assert room.room_status == "WAITING_FOR_PLAYERS"
        joined = service.join_room(room.game_id, JoinRoomRequest(player_id=PLAYER_2))
        assert joined.players == [PLAYER_1, PLAYER_2]
        assert joined.phase == "START_REDRAW"

    def test_unknown_room(self, service):
        response = service.get_game_state("nonexistent-id")
        assert isinstance(response, ServiceError)
        assert response.error_code == "GAME_NOT_FOUND"
        assert response.status_code == 404

    def test_full_room_is_conflict(self, service):
        game_id = start_game(service)
        response = service.join_room(game_id, JoinRoomRequest(player_id=PLAYER_2))
        assert response.status_code == 409

    def test_rule_violation_is_bad_request(self, service):
        game_id = start_game(service)
        response = service.submit_action(game_id, ActionRequest(player_id=PLAYER_2, type="Pass"))
        assert isinstance(response, ServiceError)
        assert response.error_code == "NOT_YOUR_TURN"
        assert response.status_code == 400
        assert response.details == {"game_id": game_id}

    def test_pass_and_acknowledge(self, service):
        game_id = start_game(service)
        response = service.submit_action(game_id, ActionRequest(player_id=PLAYER_1, type="Pass"))
        assert response.success
        assert response.game_state["current_player"] == PLAYER_2
        assert any(e["type"] == "DRAW_PHASE_COMPLETE" for e in response.events)

        response = service.acknowledge_events(
            game_id, AcknowledgeRequest(player_id=PLAYER_2, event_types=["DRAW_PHASE_COMPLETE"])
        )
        assert response.game_state["phase"] == "MAIN_PHASE"

    def test_selection_round_trip(self, service, rooms):
        state = make_state(hand_1=("h-2", "c-1"))
        put_card(state, PLAYER_2, "c-17", "top")
        rooms.inject_state(state.to_dict())

        response = service.submit_action(
            state.game_id, ActionRequest(player_id=PLAYER_1, type="PlayCard", field_idx=3, card_idx=0)
        )
        pending = response.pending_selection
        assert pending["eligible_cards"] == ["c-17"]

        response = service.submit_selection(
            state.game_id,
            SelectionRequest(player_id=PLAYER_1, selection_id=pending["selection_id"], selected_card_ids=["c-17"]),
        )
        assert response.success
        assert response.pending_selection is None
        assert response.game_state["players"][PLAYER_2]["field_effects"]["calculated_powers"]["c-17"] == 0

    def test_player_decks(self, service):
        response = service.player_decks(PLAYER_2)
        assert response.active_deck == "deck_left"
        assert service.player_decks("nobody").error_code == "DECK_NOT_FOUND"

    def test_end_room(self, service):
        game_id = start_game(service)
        assert service.end_room(game_id).success
        assert service.list_rooms().count == 0


class TestPlayerView:
    """Hidden information is masked per viewer."""

    def test_opponent_hand_hidden(self):
        state = make_state(hand_1=("c-1", "c-3"), hand_2=("c-17",))
        view = player_view(state, PLAYER_1)
        assert view["players"][PLAYER_1]["deck"]["hand"] == ["c-1", "c-3"]
        assert view["players"][PLAYER_2]["deck"]["hand"] == [HIDDEN_CARD]
        assert view["players"][PLAYER_2]["deck"]["hand_count"] == 1
        assert view["players"][PLAYER_1]["deck"]["main_deck"] == []
        assert view["players"][PLAYER_1]["deck"]["main_deck_count"] == 4

    def test_opponent_face_down_hidden(self):
        state = make_state()
        put_card(state, PLAYER_2, "sp-3", "sp", face_down=True)
        put_card(state, PLAYER_1, "sp-1", "sp", face_down=True)
        view = player_view(state, PLAYER_1)
        assert view["zones"][PLAYER_2]["sp"][0]["card_id"] == HIDDEN_CARD
        assert view["zones"][PLAYER_1]["sp"][0]["card_id"] == "sp-1"

    def test_no_viewer_is_full_state(self):
        state = make_state(hand_2=("c-17",))
        assert player_view(state) == state.to_dict()


class TestRoutes:
    """HTTP surface."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_create_and_get(self, client):
        response = client.post("/api/v1/rooms", json={"player_id": PLAYER_1, "seed": 3})
        assert response.status_code == 200
        game_id = response.json()["game_id"]

        response = client.get(f"/api/v1/rooms/{game_id}", params={"player_id": PLAYER_1})
        assert response.status_code == 200
        assert response.json()["game_state"]["game_id"] == game_id

        listed = client.get("/api/v1/rooms").json()
        assert listed["count"] == 1

    def test_missing_room(self, client):
        response = client.get("/api/v1/rooms/missing")
        assert response.status_code == 404
        body = response.json()
        assert body["error_code"] == "GAME_NOT_FOUND"
        assert body["api_version"] == "v1"

    def test_action_error_shape(self, client):
        client.post("/api/v1/test/scenarios/simple_test")
        response = client.post(
            "/api/v1/rooms/simple_test/actions",
            json={"player_id": PLAYER_2, "type": "Pass"},
        )
        assert response.status_code == 400
        assert response.json()["error_code"] == "NOT_YOUR_TURN"

    def test_play_card(self, client):
        client.post("/api/v1/test/scenarios/simple_test")
        response = client.post(
            "/api/v1/rooms/simple_test/actions",
            json={"player_id": PLAYER_1, "type": "PlayCard", "field_idx": 0, "card_idx": 0},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["game_state"]["players"][PLAYER_1]["field_effects"]["calculated_powers"] == {"c-1": 145}
        assert body["game_state"]["players"][PLAYER_2]["deck"]["hand"][0] == HIDDEN_CARD

    def test_legal_placements(self, client):
        client.post("/api/v1/test/scenarios/simple_test")
        response = client.get("/api/v1/rooms/simple_test/legal-placements", params={"player_id": PLAYER_1})
        body = response.json()
        assert body["count"] == len(body["actions"]) > 0

    def test_next_round(self, client):
        client.post("/api/v1/test/scenarios/simple_test")
        response = client.post("/api/v1/rooms/simple_test/next-round")
        assert response.status_code == 200
        assert response.json()["game_state"]["round_number"] == 2

    def test_inject(self, client):
        state = make_state(hand_1=("c-1",))
        response = client.post("/api/v1/test/inject", json={"game_state": state.to_dict(), "game_id": "injected"})
        assert response.status_code == 200
        assert response.json()["game_id"] == "injected"

    def test_inject_malformed(self, client):
        response = client.post("/api/v1/test/inject", json={"game_state": {"phase": "BOGUS", "players": {}}})
        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_GAME_STATE"

    def test_unknown_scenario(self, client):
        response = client.post("/api/v1/test/scenarios/nope")
        assert response.status_code == 404

    def test_test_routes_hidden_in_production(self, rooms):
        client = TestClient(create_app(APIService(rooms=rooms, allow_test_routes=False)))
        assert client.post("/api/v1/test/scenarios/simple_test").status_code == 404
        assert client.post("/api/v1/test/inject", json={"game_state": {}}).status_code == 404
