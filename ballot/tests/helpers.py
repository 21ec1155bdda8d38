"""
Builders for hand-made game states used across the test modules.
"""

from ..catalog import default_catalog
from ..engine_core.play_sequence import PlayAction
from ..engine_core.state import (
    LEADER_ZONE,
    GameState,
    PlacedCard,
    Phase,
    PlayerDeck,
    PlayerState,
    RoomStatus,
    empty_zones,
)

PLAYER_1 = "playerId_1"
PLAYER_2 = "playerId_2"


def make_state(
    leaders_1=("s-1", "s-3", "s-5"),
    leaders_2=("s-2", "s-4", "s-5"),
    hand_1=(),
    hand_2=(),
    deck_1=("c-2", "c-5", "c-6", "c-7"),
    deck_2=("c-9", "c-10", "c-12", "c-13"),
    phase=Phase.MAIN_PHASE,
    current_player=PLAYER_1,
    game_id="test_game",
) -> GameState:
    """Two seated players with leaders placed and recorded, first player PLAYER_1."""
    state = GameState(
        game_id=game_id,
        phase=phase,
        room_status=RoomStatus.IN_PROGRESS,
        current_turn=0.0,
        current_player=current_player,
        first_player=PLAYER_1,
        player_order=[PLAYER_1, PLAYER_2],
        random_seed=42,
    )
    for player_id, leaders, hand, deck in (
        (PLAYER_1, leaders_1, hand_1, deck_1),
        (PLAYER_2, leaders_2, hand_2, deck_2),
    ):
        state.players[player_id] = PlayerState(
            player_id=player_id,
            deck=PlayerDeck(leaders=list(leaders), main_deck=list(deck), hand=list(hand)),
            ready=True,
        )
        state.zones[player_id] = empty_zones()
        state.zones[player_id][LEADER_ZONE] = [PlacedCard(card_id=leaders[0], owner=player_id, zone=LEADER_ZONE)]
        state.play_sequence.append(
            player_id, leaders[0], PlayAction.PLAY_LEADER, LEADER_ZONE,
            data={"leaderIndex": 0, "isInitialPlacement": True},
            phase=phase.value,
        )
    return state


def put_card(state: GameState, player_id: str, card_id: str, zone: str, face_down: bool = False) -> PlacedCard:
    """Place a card directly and record the play, as a committed placement would."""
    card = default_catalog().get_card(card_id)
    placed = PlacedCard(
        card_id=card_id,
        owner=player_id,
        zone=zone,
        is_face_down=face_down,
        value_on_field=0 if face_down else card.power,
    )
    state.place(placed)
    state.play_sequence.append(
        player_id, card_id, PlayAction.PLAY_CARD, zone,
        data={"isFaceDown": face_down},
        turn_number=state.current_turn,
        phase=state.phase.value,
    )
    return placed


def without_events(state: GameState) -> dict:
    """Serialized state minus the parts every call touches."""
    data = state.to_dict()
    data.pop("events")
    data.pop("updated_at")
    return data
