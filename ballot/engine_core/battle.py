"""
Battle Resolver - Ends a leader round.

Sequence when every SP zone is settled:
1. Reveal face-down SP cards
2. Before-combo SP effects, simulator, battle scores
3. After-combo SP effects, simulator, battle scores again
4. Award the point difference to the round winner
5. End the game, or clear the field and bring in the next leaders

Scores:
    total = max(0, sum(calculatedPowers) + combo bonus + victoryPointModifiers)
"""

from __future__ import annotations
from collections import Counter
from dataclasses import dataclass, field
from typing import Any
import logging

from ..catalog import Catalog, EffectRule, RuleKind, TriggerEvent
from ..catalog.rules import CONSUMABLE_EFFECTS
from .card_action import CardAction
from .effect_simulator import (
    EffectSimulator,
    MATERIALISED_EFFECTS,
    SP_STAGE_AFTER_COMBO,
    SP_STAGE_BEFORE_COMBO,
    SP_STAGE_NONE,
    is_after_combo,
)
from .events import EventType
from .play_sequence import PlayAction, PlayRecord
from .settings import EngineSettings
from .state import (
    CHARACTER_ZONES,
    LEADER_ZONE,
    GameState,
    PlacedCard,
    Phase,
    RoomStatus,
)

logger = logging.getLogger(__name__)

DRAW = "draw"

# Synthetic records that follow their target card across a round transition
TARGETED_RECORDS = (
    PlayAction.APPLY_SET_POWER,
    PlayAction.APPLY_NEUTRALIZATION,
    PlayAction.APPLY_POWER_MODIFIER,
)


@dataclass
class BattleResult:
    player_id: str
    power: int = 0
    combo_bonus: int = 0
    combos: list[str] = field(default_factory=list)
    victory_point_modifiers: int = 0
    total_points: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "player_id": self.player_id,
            "power": self.power,
            "combo_bonus": self.combo_bonus,
            "combos": list(self.combos),
            "victory_point_modifiers": self.victory_point_modifiers,
            "total_points": self.total_points,
        }


@dataclass
class BattleResolver:
    catalog: Catalog
    settings: EngineSettings
    simulator: EffectSimulator
    card_action: CardAction

    def resolve(self, state: GameState) -> dict[str, BattleResult]:
        """
        Run the full end-of-round sequence.

        Leaves the state either in GAME_END or ready for the next turn of
        the following round (the caller starts that turn).
        """
        state.phase = Phase.BATTLE_PHASE
        state.events.append(EventType.PHASE_CHANGE, {"phase": Phase.BATTLE_PHASE.value})

        sp_cards = self._reveal(state)

        state.sp_stage = SP_STAGE_BEFORE_COMBO
        self.simulator.apply(state)
        self._run_sp_consumables(state, sp_cards, after_combo=False)
        self.simulator.apply(state)
        before_combo = self.calculate(state)

        state.sp_stage = SP_STAGE_AFTER_COMBO
        self._run_sp_consumables(state, sp_cards, after_combo=True)
        self.simulator.apply(state)
        results = self.calculate(state)
        state.events.append(EventType.SP_EFFECTS_EXECUTED, {
            "cards": [{"playerId": pid, "cardId": cid} for pid, cid in sp_cards],
        })

        state.battle_results = {pid: r.to_dict() for pid, r in results.items()}
        for pid, result in results.items():
            state.players[pid].player_point = result.total_points
        state.events.append(EventType.BATTLE_CALCULATED, {
            "round": state.round_number,
            "results": {pid: r.to_dict() for pid, r in results.items()},
            "beforeCombo": {pid: r.to_dict() for pid, r in before_combo.items()},
        })

        self._award(state, results)
        if not self._check_game_end(state):
            self.next_round(state)
        return results

    # =========================================================================
    # SP reveal
    # =========================================================================

    def _reveal(self, state: GameState) -> list[tuple[str, str]]:
        """Flip every SP card; returns (player, card) in resolution order."""
        revealed = []
        for player_id in state.ordered_players():
            for placed in state.zone(player_id, "sp"):
                if placed.is_face_down:
                    placed.is_face_down = False
                    card = self.catalog.get_card(placed.card_id)
                    placed.value_on_field = card.power if card else 0
                revealed.append((player_id, placed.card_id))
        if revealed:
            state.events.append(EventType.SP_CARDS_REVEALED, {
                "cards": [{"playerId": pid, "cardId": cid} for pid, cid in revealed],
            })

        order = {pid: i for i, pid in enumerate(state.ordered_players())}
        return sorted(revealed, key=lambda item: (-self._initial_point(state, item[0]), order[item[0]]))

    def _initial_point(self, state: GameState, player_id: str) -> int:
        leader_id = state.leader_id(player_id)
        leader = self.catalog.get_card(leader_id) if leader_id else None
        return leader.initial_point if leader else 0

    def _run_sp_consumables(self, state: GameState, sp_cards: list[tuple[str, str]], after_combo: bool):
        """One-shot SP effects; continuous ones are staged by the simulator."""
        for player_id, card_id in sp_cards:
            if self._is_disabled(state, player_id, card_id):
                logger.info("SP card %s is neutralized; one-shot effects skipped", card_id)
                continue
            for rule in self.catalog.effects_of(card_id):
                if not self._is_sp_one_shot(rule) or is_after_combo(rule) != after_combo:
                    continue
                if not self.card_action.registry.conditions_met(rule, state, player_id):
                    continue
                self.card_action.execute_rule(state, player_id, rule, card_id, "sp", interactive=False)

    def _is_sp_one_shot(self, rule: EffectRule) -> bool:
        if rule.kind != RuleKind.TRIGGERED or rule.trigger.event != TriggerEvent.SP_PHASE:
            return False
        return rule.effect_type in CONSUMABLE_EFFECTS or rule.effect_type in MATERIALISED_EFFECTS

    def _is_disabled(self, state: GameState, player_id: str, card_id: str) -> bool:
        disabled = state.players[player_id].field_effects.disabled_cards
        return any(d["card_id"] == card_id for d in disabled)

    # =========================================================================
    # Scoring
    # =========================================================================

    def calculate(self, state: GameState) -> dict[str, BattleResult]:
        return {pid: self.calculate_player(state, pid) for pid in state.ordered_players()}

    def calculate_player(self, state: GameState, player_id: str) -> BattleResult:
        effects = state.players[player_id].field_effects
        characters = [self.catalog.get_card(c.card_id) for c in state.face_up_characters(player_id)]
        characters = [c for c in characters if c is not None]

        power = sum(effects.calculated_powers.get(c.id, 0) for c in characters)
        combos = [] if effects.special_states.get("disableComboBonus") else self.combos_for(characters)
        combo_bonus = sum(self.catalog.combo_bonus(key) for key in combos)
        modifiers = effects.victory_point_modifiers

        return BattleResult(
            player_id=player_id,
            power=power,
            combo_bonus=combo_bonus,
            combos=combos,
            victory_point_modifiers=modifiers,
            total_points=max(0, power + combo_bonus + modifiers),
        )

    def combos_for(self, characters: list) -> list[str]:
        """Combo keys earned by a set of face-up characters (base powers)."""
        if len(characters) < 2:
            return []
        combos = []
        factions = [c.game_type for c in characters]
        powers = [c.power for c in characters]

        if len(set(factions)) == 1:
            combos.append("all_same_type")
        if len(set(factions)) == len(factions):
            combos.append("all_different_type")
        if len(characters) >= 3 and all(p >= 80 for p in powers):
            combos.append("high_power_trio")
        trait_counts = Counter(t for c in characters for t in set(c.traits))
        if any(count >= 2 for count in trait_counts.values()):
            combos.append("trait_synergy")
        if len(characters) >= 3 and max(powers) - min(powers) <= 30:
            combos.append("balanced_power")
        return combos

    # =========================================================================
    # Round end
    # =========================================================================

    def _award(self, state: GameState, results: dict[str, BattleResult]):
        first, second = (list(results.values()) + [None, None])[:2]
        winner = None
        points = 0
        if first is not None and second is not None and first.total_points != second.total_points:
            high, low = sorted((first, second), key=lambda r: r.total_points, reverse=True)
            winner = high.player_id
            points = high.total_points - low.total_points
            state.players[winner].victory_points += points
            logger.info(
                "Round %d of %s: %s wins by %d points",
                state.round_number, state.game_id, winner, points,
            )

        state.events.append(EventType.VICTORY_POINTS_AWARDED, {
            "round": state.round_number,
            "winner": winner,
            "points": points,
            "victoryPoints": {pid: p.victory_points for pid, p in state.players.items()},
        })

    def _check_game_end(self, state: GameState) -> bool:
        reached = [
            pid for pid in state.ordered_players()
            if state.players[pid].victory_points >= self.settings.victory_threshold
        ]
        if reached:
            winner = max(reached, key=lambda pid: state.players[pid].victory_points)
            self.end_game(state, winner)
            return True
        if any(p.deck.on_last_leader for p in state.players.values()):
            self.end_game(state, self._leader_out_winner(state))
            return True
        return False

    def _leader_out_winner(self, state: GameState) -> str:
        ranked = sorted(state.players.values(), key=lambda p: p.victory_points, reverse=True)
        if len(ranked) < 2 or ranked[0].victory_points == ranked[1].victory_points:
            return DRAW
        return ranked[0].player_id

    def end_game(self, state: GameState, winner: str):
        state.phase = Phase.GAME_END
        state.room_status = RoomStatus.GAME_END
        state.winner = winner
        state.current_player = None
        state.events.append(EventType.GAME_ENDED, {
            "winner": winner,
            "victoryPoints": {pid: p.victory_points for pid, p in state.players.items()},
        })
        logger.info("Game %s ended; winner %s", state.game_id, winner)

    def next_round(self, state: GameState):
        """Clear the round's cards and bring in each player's next leader."""
        for player_id in state.player_ids:
            for zone in CHARACTER_ZONES + ("sp",):
                state.zones[player_id][zone] = []

        state.play_sequence.retain(lambda record: self._survives_round(state, record))

        for player_id in state.ordered_players():
            player = state.players[player_id]
            player.deck.current_leader_idx += 1
            player.sp_passed = False
            leader_id = player.deck.current_leader_id
            state.zones[player_id][LEADER_ZONE] = [
                PlacedCard(card_id=leader_id, owner=player_id, zone=LEADER_ZONE)
            ]
            state.play_sequence.append(
                player_id, leader_id, PlayAction.PLAY_LEADER, LEADER_ZONE,
                data={"leaderIndex": player.deck.current_leader_idx, "isRoundTransition": True},
                turn_number=state.current_turn,
                phase=state.phase.value,
            )

        state.sp_stage = SP_STAGE_NONE
        state.consecutive_passes = 0
        state.round_number += 1
        state.events.append(EventType.NEXT_ROUND_START, {
            "round": state.round_number,
            "leaders": {pid: state.leader_id(pid) for pid in state.ordered_players()},
        })
        self.simulator.apply(state)
        logger.info("Game %s entering round %d", state.game_id, state.round_number)

    def _survives_round(self, state: GameState, record: PlayRecord) -> bool:
        if record.action == PlayAction.PLAY_CARD:
            return state.find_placed(record.player_id, record.card_id, record.zone) is not None
        if record.action in TARGETED_RECORDS:
            target_player = record.data.get("target_player_id", record.player_id)
            target_card = record.data.get("target_card_id")
            return target_card is not None and state.find_placed(
                target_player, target_card, record.data.get("target_zone")
            ) is not None
        return False
