"""
Tests for the orchestrator: action dispatch, the selection gate, error
envelopes and end-to-end play from the simple_test scenario.
"""

import time

from ..engine_core.action import Action
from ..engine_core.events import EventType
from ..engine_core.play_sequence import PlayAction
from ..engine_core.state import Phase, RoomStatus
from ..session import build_simple_test
from .helpers import PLAYER_1, PLAYER_2, make_state, put_card


def event_types(result):
    return [e["type"] for e in result.events]


class TestSimpleScenario:
    """Play from the canned simple_test state."""

    def test_first_character(self, orchestrator, simple_state):
        """c-1 in TOP gets the s-1 right-wing boost."""
        result = orchestrator.apply_action(simple_state, PLAYER_1, Action.play_card(0, 0))
        assert result.success, result.error
        state = result.new_state
        effects = state.players[PLAYER_1].field_effects
        assert effects.calculated_powers["c-1"] == 145
        assert effects.zone_restrictions["TOP"] == ["右翼", "自由", "經濟"]
        assert [c.card_id for c in state.zones[PLAYER_1]["top"]] == ["c-1"]
        assert "c-1" not in state.players[PLAYER_1].hand

    def test_turn_passes_with_draw(self, orchestrator, simple_state):
        result = orchestrator.apply_action(simple_state, PLAYER_1, Action.play_card(0, 0))
        state = result.new_state
        assert state.current_turn == 0.5
        assert state.current_player == PLAYER_2
        assert state.phase == Phase.DRAW_PHASE
        assert state.players[PLAYER_2].hand[-1] == "c-9"
        assert EventType.TURN_SWITCH.value in event_types(result)
        draw = state.events.latest(EventType.DRAW_PHASE_COMPLETE)
        assert draw.data["playerId"] == PLAYER_2
        assert draw.data["requiresAcknowledgment"] is True

    def test_opponent_reply(self, orchestrator, simple_state, play, ack_draw):
        """playerId_2 acknowledges the draw then plays c-17 to LEFT."""
        state = play(orchestrator, simple_state, PLAYER_1, Action.play_card(0, 0))
        state = ack_draw(orchestrator, state)
        assert state.phase == Phase.MAIN_PHASE
        state = play(orchestrator, state, PLAYER_2, Action.play_card(1, 0))
        assert state.players[PLAYER_2].field_effects.calculated_powers["c-17"] == 110
        assert state.current_player == PLAYER_1
        assert state.current_turn == 1.0

    def test_set_power_selection(self, orchestrator, simple_state, play, ack_draw):
        """h-2 opens a selection; choosing c-1 pins it at 0."""
        state = play(orchestrator, simple_state, PLAYER_1, Action.play_card(0, 0))
        state = ack_draw(orchestrator, state)
        state = play(orchestrator, state, PLAYER_2, Action.play_card(1, 0))
        state = ack_draw(orchestrator, state)
        state = play(orchestrator, state, PLAYER_1, Action.pass_turn())
        state = ack_draw(orchestrator, state)
        assert state.players[PLAYER_2].hand == ["h-2", "c-25", "h-7", "sp-3", "c-9", "c-10"]

        result = orchestrator.apply_action(state, PLAYER_2, Action.play_card(3, 0))
        assert result.success, result.error
        selection = result.pending_choice
        assert selection is not None
        assert selection.eligible_cards == ["c-1"]
        assert result.new_state.pending_player_action["selection_id"] == selection.selection_id
        assert len(result.new_state.play_sequence) == 5
        assert EventType.CARD_SELECTION_REQUIRED.value in event_types(result)

        state = play(orchestrator, result.new_state, PLAYER_2, Action.select_card(selection.selection_id, ["c-1"]))
        assert state.pending_player_action is None
        assert len(state.play_sequence) == 6
        assert state.play_sequence.all()[-1].action == PlayAction.APPLY_SET_POWER
        assert state.players[PLAYER_1].field_effects.calculated_powers["c-1"] == 0
        assert state.current_player == PLAYER_1

    def test_occupied_help_zone(self, orchestrator, simple_state, play, ack_draw):
        """A second help card is rejected and nothing moves."""
        state = play(orchestrator, simple_state, PLAYER_1, Action.play_card(3, 1))
        assert [c.card_id for c in state.zones[PLAYER_1]["help"]] == ["h-1"]
        state = ack_draw(orchestrator, state)
        state = play(orchestrator, state, PLAYER_2, Action.pass_turn())
        state = ack_draw(orchestrator, state)
        hand_before = list(state.players[PLAYER_1].hand)

        result = orchestrator.apply_action(state, PLAYER_1, Action.play_card(3, 1))
        assert not result.success
        assert result.error_code == "ZONE_OCCUPIED_ERROR"
        failed = result.new_state
        assert [c.card_id for c in failed.zones[PLAYER_1]["help"]] == ["h-1"]
        assert failed.players[PLAYER_1].hand == hand_before
        error = failed.events.latest(EventType.ERROR_OCCURRED)
        assert error.data["errorType"] == "ZONE_OCCUPIED_ERROR"
        assert error.data["playerId"] == PLAYER_1

    def test_draw_effect(self, orchestrator, simple_state):
        deck_before = len(simple_state.players[PLAYER_1].deck.main_deck)
        result = orchestrator.apply_action(simple_state, PLAYER_1, Action.play_card(3, 2))
        assert result.success, result.error
        player = result.new_state.players[PLAYER_1]
        assert len(player.hand) == 6
        assert len(player.deck.main_deck) == deck_before - 2


class TestSpPhase:
    """Face-down rules around the SP zone."""

    def test_face_down_sp_outside_sp_phase(self, orchestrator, simple_state):
        result = orchestrator.apply_action(simple_state, PLAYER_1, Action.play_card_back(4, 0))
        assert not result.success
        assert result.error_code == "PHASE_RESTRICTION_ERROR"

    def test_face_up_sp_during_sp_phase(self, orchestrator, simple_state):
        simple_state.phase = Phase.SP_PHASE
        simple_state.current_player = PLAYER_2
        sp_idx = simple_state.players[PLAYER_2].hand.index("sp-3")

        result = orchestrator.apply_action(simple_state, PLAYER_2, Action.play_card(4, sp_idx))
        assert not result.success
        assert result.error_code == "SP_PHASE_RESTRICTION"

        result = orchestrator.apply_action(simple_state, PLAYER_2, Action.play_card_back(4, sp_idx))
        assert result.success, result.error
        state = result.new_state
        placed = state.zones[PLAYER_2]["sp"][0]
        assert placed.card_id == "sp-3"
        assert placed.is_face_down
        assert placed.value_on_field == 0
        assert state.phase == Phase.SP_PHASE
        assert state.current_player == PLAYER_1

    def test_main_zone_during_sp_phase(self, orchestrator, simple_state):
        simple_state.phase = Phase.SP_PHASE
        result = orchestrator.apply_action(simple_state, PLAYER_1, Action.play_card(0, 0))
        assert result.error_code == "PHASE_RESTRICTION_ERROR"

    def test_two_passes_open_sp_phase(self, orchestrator, simple_state, play, ack_draw):
        state = play(orchestrator, simple_state, PLAYER_1, Action.pass_turn())
        state = ack_draw(orchestrator, state)
        state = play(orchestrator, state, PLAYER_2, Action.pass_turn())
        assert state.phase == Phase.SP_PHASE
        assert state.current_player == PLAYER_1

    def test_battle_ends_game(self, orchestrator, play):
        """The last SP placement triggers the battle; 48 + 5 crosses 50."""
        state = make_state(
            leaders_1=("s-4", "s-1"),
            leaders_2=("s-2", "s-3"),
            hand_2=("c-17",),
            phase=Phase.SP_PHASE,
            current_player=PLAYER_2,
        )
        put_card(state, PLAYER_1, "c-14", "top")
        put_card(state, PLAYER_1, "c-17", "sp", face_down=True)
        put_card(state, PLAYER_2, "c-25", "top")
        state.players[PLAYER_1].victory_points = 48

        result = orchestrator.apply_action(state, PLAYER_2, Action.play_card_back(4, 0))
        assert result.success, result.error
        state = result.new_state
        assert state.battle_results[PLAYER_1]["total_points"] == 70
        assert state.battle_results[PLAYER_2]["total_points"] == 65
        assert state.players[PLAYER_1].victory_points == 53
        assert state.phase == Phase.GAME_END
        assert state.room_status == RoomStatus.GAME_END
        assert state.winner == PLAYER_1
        assert EventType.GAME_ENDED.value in event_types(result)

        after = orchestrator.apply_action(state, PLAYER_1, Action.pass_turn())
        assert after.error_code == "GAME_ENDED"


class TestGate:
    """Structural checks and the pending-selection gate."""

    def _open_selection(self, orchestrator):
        state = make_state(hand_1=("h-2", "c-1"), hand_2=("c-25",))
        put_card(state, PLAYER_2, "c-17", "top")
        result = orchestrator.apply_action(state, PLAYER_1, Action.play_card(3, 0))
        assert result.pending_choice is not None
        return result.new_state, result.pending_choice

    def test_not_your_turn(self, orchestrator, simple_state):
        result = orchestrator.apply_action(simple_state, PLAYER_2, Action.play_card(0, 0))
        assert result.error_code == "NOT_YOUR_TURN"

    def test_unknown_player(self, orchestrator, simple_state):
        result = orchestrator.apply_action(simple_state, "ghost", Action.pass_turn())
        assert result.error_code == "PLAYER_NOT_IN_GAME"

    def test_unknown_action_type(self, orchestrator, simple_state):
        result = orchestrator.apply_action(simple_state, PLAYER_1, Action.from_dict({"type": "Dance"}))
        assert result.error_code == "INVALID_ACTION_TYPE"

    def test_wrong_phase(self, orchestrator, simple_state):
        simple_state.phase = Phase.DRAW_PHASE
        result = orchestrator.apply_action(simple_state, PLAYER_1, Action.play_card(0, 0))
        assert result.error_code == "INVALID_PHASE"

    def test_bad_indices(self, orchestrator, simple_state):
        assert orchestrator.apply_action(simple_state, PLAYER_1, Action.play_card(7, 0)).error_code == "INVALID_POSITION"
        assert orchestrator.apply_action(simple_state, PLAYER_1, Action.play_card(0, 9)).error_code == "INVALID_CARD_INDEX"

    def test_owner_must_finish_selection(self, orchestrator):
        state, _ = self._open_selection(orchestrator)
        result = orchestrator.apply_action(state, PLAYER_1, Action.play_card(0, 0))
        assert result.error_code == "CARD_SELECTION_PENDING"

    def test_other_player_waits(self, orchestrator):
        state, _ = self._open_selection(orchestrator)
        result = orchestrator.apply_action(state, PLAYER_2, Action.pass_turn())
        assert result.error_code == "WAITING_FOR_PLAYER"

    def test_other_player_cannot_answer(self, orchestrator):
        state, selection = self._open_selection(orchestrator)
        result = orchestrator.apply_action(state, PLAYER_2, Action.select_card(selection.selection_id, ["c-17"]))
        assert result.error_code == "UNAUTHORIZED_SELECTION"

    def test_selection_checks(self, orchestrator):
        state, selection = self._open_selection(orchestrator)
        sid = selection.selection_id
        assert orchestrator.apply_action(state, PLAYER_1, Action.select_card(sid, [])).error_code == "INVALID_SELECTION_COUNT"
        assert orchestrator.apply_action(state, PLAYER_1, Action.select_card(sid, ["c-1"])).error_code == "INVALID_CARD_SELECTION"
        assert orchestrator.apply_action(state, PLAYER_1, Action.select_card("nope", ["c-17"])).error_code == "INVALID_SELECTION_ID"
        malformed = Action.from_dict({"type": "SelectCard", "selectionId": sid, "selectedCardIds": "c-17"})
        assert orchestrator.apply_action(state, PLAYER_1, malformed).error_code == "INVALID_SELECTION_DATA"

    def test_select_without_pending(self, orchestrator, simple_state):
        result = orchestrator.apply_action(simple_state, PLAYER_1, Action.select_card("nope", ["c-1"]))
        assert result.error_code == "INVALID_SELECTION_ID"

    def test_legal_placements_empty_while_pending(self, orchestrator):
        state, _ = self._open_selection(orchestrator)
        assert orchestrator.legal_placements(state, PLAYER_1) == []


class TestEnvelope:
    """Results never mutate the caller's state."""

    def test_input_untouched_on_success(self, orchestrator, simple_state):
        before = simple_state.to_dict()
        result = orchestrator.apply_action(simple_state, PLAYER_1, Action.play_card(0, 0))
        assert result.success
        assert simple_state.to_dict() == before
        assert result.new_state is not simple_state

    def test_input_untouched_on_failure(self, orchestrator, simple_state):
        before = simple_state.to_dict()
        result = orchestrator.apply_action(simple_state, PLAYER_2, Action.pass_turn())
        assert not result.success
        assert simple_state.to_dict() == before
        assert len(result.new_state.events) == len(simple_state.events) + 1

    def test_corrupted_sequence(self, orchestrator, simple_state):
        simple_state.play_sequence.records[-1].sequence_id = 10
        result = orchestrator.apply_action(simple_state, PLAYER_1, Action.play_card(0, 0))
        assert result.error_code == "SEQUENCE_CORRUPTED"
        assert result.new_state.corrupted
        assert not simple_state.corrupted
        assert result.new_state.players[PLAYER_1].hand == simple_state.players[PLAYER_1].hand

        again = orchestrator.apply_action(result.new_state, PLAYER_1, Action.pass_turn())
        assert again.error_code == "SEQUENCE_CORRUPTED"

    def test_events_carry_only_new_entries(self, orchestrator, simple_state):
        result = orchestrator.apply_action(simple_state, PLAYER_1, Action.play_card(0, 0))
        ids = {e.id for e in simple_state.events.events}
        assert result.events
        assert not ids & {e["id"] for e in result.events}


class TestOtherEntryPoints:
    def test_acknowledge_by_id(self, orchestrator, simple_state, play):
        state = play(orchestrator, simple_state, PLAYER_1, Action.play_card(0, 0))
        draw = state.events.latest(EventType.DRAW_PHASE_COMPLETE)
        result = orchestrator.acknowledge_events(state, PLAYER_2, event_ids=[draw.id])
        assert result.success
        assert result.new_state.phase == Phase.MAIN_PHASE

    def test_acknowledge_other_events_keeps_phase(self, orchestrator, simple_state, play):
        state = play(orchestrator, simple_state, PLAYER_1, Action.play_card(0, 0))
        result = orchestrator.acknowledge_events(state, PLAYER_2, event_types=[EventType.CARD_PLAYED.value])
        assert result.new_state.phase == Phase.DRAW_PHASE
        assert all(e.frontend_processed for e in result.new_state.events.of_type(EventType.CARD_PLAYED))

    def test_empty_hand_skips_turn(self, orchestrator, play, ack_draw):
        """A player with nothing to play is skipped on entering MAIN_PHASE."""
        state = make_state(hand_1=("c-1", "c-3"), deck_1=(), deck_2=())
        orchestrator.simulator.apply(state)
        state = play(orchestrator, state, PLAYER_1, Action.play_card(0, 0))
        assert state.current_player == PLAYER_2
        state = ack_draw(orchestrator, state)
        assert state.events.latest(EventType.TURN_SKIPPED).data["playerId"] == PLAYER_2
        assert state.current_player == PLAYER_1
        assert state.current_turn == 1.0

    def test_legal_placements(self, orchestrator):
        state = make_state(hand_1=("c-1",))
        orchestrator.simulator.apply(state)
        actions = orchestrator.legal_placements(state, PLAYER_1)
        face_up = {(a.payload.field_idx, a.payload.card_idx) for a in actions if not a.face_down}
        assert face_up == {(0, 0), (1, 0), (2, 0)}
        assert all(a.payload.field_idx != 4 for a in actions)
        assert orchestrator.legal_placements(state, PLAYER_2) == []

    def test_incompatible_zone(self, orchestrator):
        state = make_state(leaders_1=("s-3", "s-5"), hand_1=("c-1", "c-21"))
        orchestrator.simulator.apply(state)
        result = orchestrator.apply_action(state, PLAYER_1, Action.play_card(0, 0))
        assert result.error_code == "ZONE_COMPATIBILITY_ERROR"

    def test_all_trait_fits_any_zone(self, orchestrator):
        """c-21 carries the "all" trait and fits s-3's economy/left-wing RIGHT zone."""
        state = make_state(leaders_1=("s-3", "s-5"), hand_1=("c-1", "c-21"))
        orchestrator.simulator.apply(state)
        result = orchestrator.apply_action(state, PLAYER_1, Action.play_card(2, 1))
        assert result.success, result.error

    def test_face_down_characters_stack(self, orchestrator, play):
        state = make_state(hand_1=("c-1", "c-3"), hand_2=("c-17",))
        orchestrator.simulator.apply(state)
        put_card(state, PLAYER_1, "c-4", "top", face_down=True)
        state = play(orchestrator, state, PLAYER_1, Action.play_card_back(0, 0))
        assert len(state.zones[PLAYER_1]["top"]) == 2

    def test_prevent_play(self, orchestrator, play, ack_draw):
        """h-10 stops the opponent using the help zone."""
        state = make_state(hand_1=("h-10", "c-1"), hand_2=("h-7", "c-17"))
        orchestrator.simulator.apply(state)
        state = play(orchestrator, state, PLAYER_1, Action.play_card(3, 0))
        assert state.players[PLAYER_2].field_effects.special_states["preventPlay"] == ["help"]
        state = ack_draw(orchestrator, state)
        result = orchestrator.apply_action(state, PLAYER_2, Action.play_card(3, 0))
        assert result.error_code == "FIELD_EFFECT_RESTRICTION"

    def test_prevent_play_allows_face_down(self, orchestrator, play, ack_draw):
        state = make_state(hand_1=("h-10", "c-1"), hand_2=("h-7", "c-17"))
        orchestrator.simulator.apply(state)
        state = play(orchestrator, state, PLAYER_1, Action.play_card(3, 0))
        state = ack_draw(orchestrator, state)
        state = play(orchestrator, state, PLAYER_2, Action.play_card_back(3, 0))
        placed = state.zones[PLAYER_2]["help"][0]
        assert placed.card_id == "h-7"
        assert placed.is_face_down

    def test_faction_restriction_ignores_other_traits(self, orchestrator):
        """s-3 facing s-1 bans right-wing characters even when a trait is still allowed."""
        state = make_state(leaders_2=("s-3", "s-4", "s-5"), hand_1=("c-2", "c-3"))
        orchestrator.simulator.apply(state)
        restrictions = state.players[PLAYER_1].field_effects.zone_restrictions
        assert "經濟" in restrictions["TOP"]
        assert "愛國者" in restrictions["LEFT"]

        result = orchestrator.apply_action(state, PLAYER_1, Action.play_card(0, 0))
        assert result.error_code == "ZONE_COMPATIBILITY_ERROR"
        result = orchestrator.apply_action(state, PLAYER_1, Action.play_card(1, 1))
        assert result.error_code == "ZONE_COMPATIBILITY_ERROR"

        # Face-down placement skips the restriction
        result = orchestrator.apply_action(state, PLAYER_1, Action.play_card_back(1, 1))
        assert result.success, result.error


class TestDeckSearch:
    """c-22 searches the deck for an SP card."""

    def _search(self, orchestrator):
        state = make_state(hand_1=("c-22",), deck_1=("c-4", "sp-1", "c-5"))
        orchestrator.simulator.apply(state)
        result = orchestrator.apply_action(state, PLAYER_1, Action.play_card(0, 0))
        assert result.success, result.error
        return result

    def test_search_to_sp_zone(self, orchestrator, play):
        result = self._search(orchestrator)
        selection = result.pending_choice
        assert selection.is_deck_search
        assert selection.eligible_cards == ["sp-1"]
        assert selection.searched_cards == ["c-4", "sp-1", "c-5"]
        assert result.new_state.current_player == PLAYER_1

        state = play(orchestrator, result.new_state, PLAYER_1, Action.select_card(selection.selection_id, ["sp-1"]))
        placed = state.zones[PLAYER_1]["sp"][0]
        assert placed.card_id == "sp-1"
        assert placed.is_face_down
        assert state.players[PLAYER_1].deck.main_deck == ["c-4", "c-5"]
        assert state.current_player == PLAYER_2

    def test_no_match_returns_cards(self, orchestrator):
        state = make_state(hand_1=("c-22",), deck_1=("c-4", "c-5", "c-6", "c-7"))
        orchestrator.simulator.apply(state)
        result = orchestrator.apply_action(state, PLAYER_1, Action.play_card(0, 0))
        assert result.pending_choice is None
        # The draw for the next turn belongs to playerId_2, so the deck order is visible
        assert result.new_state.players[PLAYER_1].deck.main_deck == ["c-7", "c-4", "c-5", "c-6"]

    def test_timeout(self, orchestrator):
        result = self._search(orchestrator)
        state = result.new_state
        selection = result.pending_choice
        assert orchestrator.expire_selections(state, now=selection.created_at) is None

        expired = orchestrator.expire_selections(state, now=time.time() + 3600)
        assert expired.success
        after = expired.new_state
        assert after.pending_player_action is None
        assert after.players[PLAYER_1].deck.main_deck == ["c-4", "sp-1", "c-5"]
        assert EventType.CARD_SELECTION_CANCELLED.value in event_types(expired)
        errors = [e for e in expired.events if e["type"] == EventType.ERROR_OCCURRED.value]
        assert errors[0]["data"]["errorType"] == "CARD_SELECTION_TIMEOUT"
        assert after.current_player == PLAYER_2


class TestBattle:
    """Forced round resolution and scoring."""

    def test_sp_boost_revealed(self, orchestrator):
        state = make_state()
        put_card(state, PLAYER_1, "c-4", "top")
        put_card(state, PLAYER_1, "sp-1", "sp", face_down=True)
        put_card(state, PLAYER_2, "c-25", "top")
        result = orchestrator.force_next_round(state)
        assert result.success, result.error
        state = result.new_state
        assert state.battle_results[PLAYER_1]["power"] == 155
        assert not state.zones[PLAYER_1]["sp"][0].is_face_down
        assert state.players[PLAYER_1].victory_points == 90
        assert state.winner == PLAYER_1
        assert EventType.SP_CARDS_REVEALED.value in event_types(result)

    def test_total_power_nerf_clamps(self, orchestrator):
        state = make_state()
        put_card(state, PLAYER_2, "c-25", "top")
        put_card(state, PLAYER_2, "sp-2", "sp", face_down=True)
        state = orchestrator.force_next_round(state).new_state
        assert state.battle_results[PLAYER_1]["victory_point_modifiers"] == -30
        assert state.battle_results[PLAYER_1]["total_points"] == 0
        assert state.players[PLAYER_2].victory_points == 65

    def test_before_combo_scores_reported(self, orchestrator):
        state = make_state()
        put_card(state, PLAYER_2, "c-25", "top")
        put_card(state, PLAYER_2, "sp-2", "sp", face_down=True)
        result = orchestrator.force_next_round(state)
        battle = [e for e in result.events if e["type"] == EventType.BATTLE_CALCULATED.value][-1]
        assert battle["data"]["beforeCombo"][PLAYER_1]["victory_point_modifiers"] == 0
        assert battle["data"]["results"][PLAYER_1]["victory_point_modifiers"] == -30

    def test_next_round(self, orchestrator):
        state = make_state()
        put_card(state, PLAYER_1, "c-4", "top")
        put_card(state, PLAYER_2, "c-17", "top")
        result = orchestrator.force_next_round(state)
        state = result.new_state
        assert state.players[PLAYER_2].victory_points == 5
        assert state.round_number == 2
        assert state.leader_id(PLAYER_1) == "s-3"
        assert state.leader_id(PLAYER_2) == "s-4"
        assert state.zones[PLAYER_1]["top"] == []
        assert [r.action for r in state.play_sequence] == [PlayAction.PLAY_LEADER, PlayAction.PLAY_LEADER]
        assert state.play_sequence.validate() == []
        assert state.phase == Phase.DRAW_PHASE
        assert state.current_player == PLAYER_2
        assert EventType.NEXT_ROUND_START.value in event_types(result)

    def test_last_leader_draw(self, orchestrator):
        state = make_state(leaders_1=("s-1",), leaders_2=("s-2",))
        state = orchestrator.force_next_round(state).new_state
        assert state.phase == Phase.GAME_END
        assert state.winner == "draw"

    def test_forced_round_after_end(self, orchestrator):
        state = make_state(leaders_1=("s-1",), leaders_2=("s-2",))
        state = orchestrator.force_next_round(state).new_state
        assert orchestrator.force_next_round(state).error_code == "GAME_ENDED"

    def test_score_clamped(self, orchestrator):
        state = make_state()
        put_card(state, PLAYER_1, "c-1", "top")
        orchestrator.simulator.apply(state)
        state.players[PLAYER_1].field_effects.victory_point_modifiers = -500
        assert orchestrator.battle.calculate_player(state, PLAYER_1).total_points == 0

    def test_combo_needs_two_characters(self, orchestrator, catalog):
        c1 = catalog.get_card("c-1")
        c3 = catalog.get_card("c-3")
        assert orchestrator.battle.combos_for([c1]) == []
        assert "all_same_type" in orchestrator.battle.combos_for([c1, c3])
        assert "trait_synergy" in orchestrator.battle.combos_for([c1, c3])


class TestReconcile:
    def test_missing_leader_records_restored(self, orchestrator, decks, simple_state):
        bare = build_simple_test(decks=decks)
        bare.play_sequence.clear(keep_leaders=False)
        for player_id in bare.player_ids:
            bare.zones[player_id]["leader"] = []
        reconciled = orchestrator.reconcile(bare)
        assert len(reconciled.play_sequence.by_action(PlayAction.PLAY_LEADER)) == 2
        assert reconciled.leader_id(PLAYER_1) == "s-1"
        for player_id in (PLAYER_1, PLAYER_2):
            assert (
                reconciled.players[player_id].field_effects.zone_restrictions
                == simple_state.players[player_id].field_effects.zone_restrictions
            )
