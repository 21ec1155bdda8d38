"""
Tests for the effect simulator (play sequence replay).
"""

import pytest

from ..engine_core.effect_simulator import EffectSimulator
from ..engine_core.errors import SequenceCorruptedError
from ..engine_core.play_sequence import PlayAction
from .helpers import PLAYER_1, PLAYER_2, make_state, put_card


@pytest.fixture
def simulator(catalog):
    return EffectSimulator(catalog)


class TestPowers:
    """calculatedPowers for face-up characters."""

    def test_leader_boost(self, simulator):
        state = make_state()
        put_card(state, PLAYER_1, "c-1", "top")
        put_card(state, PLAYER_2, "c-25", "top")
        effects = simulator.simulate(state)
        assert effects[PLAYER_1].calculated_powers == {"c-1": 145}
        assert effects[PLAYER_2].calculated_powers == {"c-25": 65}

    def test_filter_excludes_other_factions(self, simulator):
        """s-1 boosts right-wing and patriot characters only."""
        state = make_state()
        put_card(state, PLAYER_1, "c-14", "left")
        effects = simulator.simulate(state)
        assert effects[PLAYER_1].calculated_powers == {"c-14": 50}

    def test_face_down_cards_have_no_power(self, simulator):
        state = make_state()
        put_card(state, PLAYER_1, "c-3", "left", face_down=True)
        effects = simulator.simulate(state)
        assert "c-3" not in effects[PLAYER_1].calculated_powers

    def test_set_power_record_is_final(self, simulator):
        """A materialised setPower pins the card even under a leader boost."""
        state = make_state()
        put_card(state, PLAYER_1, "c-1", "top")
        state.play_sequence.append(
            PLAYER_2, "h-2", PlayAction.APPLY_SET_POWER, "top",
            data={"target_card_id": "c-1", "target_player_id": PLAYER_1, "target_zone": "top", "value": 0},
        )
        effects = simulator.simulate(state)
        assert effects[PLAYER_1].calculated_powers["c-1"] == 0

    def test_nerf_clamps_at_zero(self, simulator):
        state = make_state(leaders_2=("s-5", "s-4"))
        put_card(state, PLAYER_2, "c-25", "top")
        state.play_sequence.append(
            PLAYER_1, "c-23", PlayAction.APPLY_POWER_MODIFIER, "top",
            data={
                "target_card_id": "c-25",
                "target_player_id": PLAYER_2,
                "target_zone": "top",
                "value": 30,
                "effect_type": "powerNerf",
            },
        )
        effects = simulator.simulate(state)
        assert effects[PLAYER_2].calculated_powers["c-25"] == 0

    def test_modifier_on_removed_card_is_ignored(self, simulator):
        state = make_state()
        state.play_sequence.append(
            PLAYER_2, "h-2", PlayAction.APPLY_SET_POWER, "top",
            data={"target_card_id": "c-1", "target_player_id": PLAYER_1, "target_zone": "top", "value": 0},
        )
        effects = simulator.simulate(state)
        assert all(e.source_card != "h-2" for e in effects[PLAYER_2].active_effects)


class TestNeutralization:
    """Disabled sources are skipped."""

    def test_help_neutralized(self, simulator):
        state = make_state()
        put_card(state, PLAYER_2, "c-25", "top")
        put_card(state, PLAYER_2, "h-7", "help")
        assert simulator.simulate(state)[PLAYER_2].calculated_powers["c-25"] == 80

        put_card(state, PLAYER_1, "h-1", "help")
        effects = simulator.simulate(state)
        assert effects[PLAYER_2].calculated_powers["c-25"] == 65
        assert effects[PLAYER_2].disabled_cards == [
            {"card_id": "h-7", "zone": "help", "disabled_by": "h-1"}
        ]
        donation = [e for e in effects[PLAYER_2].active_effects if e.source_card == "h-7"]
        assert donation and not donation[0].enabled
        assert donation[0].disabled_by == "h-1"


class TestZoneRestrictions:
    """Leader compatibility plus restriction effects."""

    def test_leader_compatibility(self, simulator):
        effects = simulator.simulate(make_state())
        assert effects[PLAYER_1].zone_restrictions["TOP"] == ["右翼", "自由", "經濟"]
        assert effects[PLAYER_2].zone_restrictions["TOP"] == ["ALL"]
        assert effects[PLAYER_1].zone_restrictions["HELP"] == ["ALL"]

    def test_opponent_leader_restriction(self, simulator):
        """s-3 bars right-wing characters when facing s-1."""
        state = make_state(leaders_2=("s-3", "s-4"))
        effects = simulator.simulate(state)
        assert effects[PLAYER_1].zone_restrictions["TOP"] == ["自由", "經濟"]
        assert effects[PLAYER_1].zone_restrictions["RIGHT"] == ["愛國者", "經濟"]

    def test_conditional_leader_rule(self, simulator):
        """s-1 sets its own economy characters to 0 against s-3."""
        state = make_state(leaders_2=("s-3", "s-4"))
        put_card(state, PLAYER_1, "c-25", "top")
        effects = simulator.simulate(state)
        assert effects[PLAYER_1].calculated_powers["c-25"] == 0


class TestReplay:
    """Replay properties."""

    def test_deterministic(self, simulator):
        state = make_state()
        put_card(state, PLAYER_1, "c-1", "top")
        put_card(state, PLAYER_2, "h-7", "help")
        put_card(state, PLAYER_1, "h-1", "help")
        first = {pid: fe.to_dict() for pid, fe in simulator.simulate(state).items()}
        second = {pid: fe.to_dict() for pid, fe in simulator.simulate(state).items()}
        assert first == second

    def test_simulate_is_pure(self, simulator):
        state = make_state()
        put_card(state, PLAYER_1, "c-1", "top")
        before = state.to_dict()
        simulator.simulate(state)
        assert state.to_dict() == before

    def test_reads_do_not_create_zones(self, simulator):
        state = make_state()
        put_card(state, PLAYER_1, "c-1", "top")
        del state.zones[PLAYER_2]["sp"]
        simulator.simulate(state)
        assert "sp" not in state.zones[PLAYER_2]
        assert state.zone("ghost", "top") == []
        assert "ghost" not in state.zones

    def test_apply_stores_effects(self, simulator):
        state = make_state()
        put_card(state, PLAYER_1, "c-1", "top")
        simulator.apply(state)
        assert state.players[PLAYER_1].field_effects.calculated_powers == {"c-1": 145}

    def test_corrupted_sequence(self, simulator):
        state = make_state()
        state.play_sequence.records[-1].sequence_id = 7
        with pytest.raises(SequenceCorruptedError):
            simulator.simulate(state)

    def test_old_leader_records_ignored(self, simulator):
        """Only the latest PLAY_LEADER of a player imports compatibility."""
        state = make_state()
        state.players[PLAYER_1].deck.current_leader_idx = 1
        state.zones[PLAYER_1]["leader"][0].card_id = "s-3"
        state.play_sequence.append(PLAYER_1, "s-3", PlayAction.PLAY_LEADER, "leader")
        effects = simulator.simulate(state)
        assert effects[PLAYER_1].zone_restrictions["TOP"] == ["經濟", "自由"]
