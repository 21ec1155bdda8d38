"""
Effect Simulator - Replays the play sequence into per-player field effects.

The simulator is the single source of truth for derived state. Given
(catalog, game state, play sequence) it rebuilds every player's fieldEffects
from scratch:

1. Reset each player's fieldEffects to defaults
2. Walk the sequence in order, staging effects from cards still on the field
   (leader plays also import the leader's zoneCompatibility)
3. Sort staged effects by priority, leader initialPoint, first player,
   source card, then staging order
4. Apply them in that order (neutralizations first, so disabled sources
   are skipped)
5. Compute calculatedPowers for every face-up character, clamped at 0

Invariants:
- simulate() never touches zones, hands, decks or the sequence
- equal inputs give equal outputs (no clocks, no randomness)
- one-shot effects (draw, discard, search) are never re-run here
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any
import logging

from ..catalog import Catalog
from ..catalog.rules import (
    CONSUMABLE_EFFECTS,
    EffectRule,
    EffectType,
    RuleKind,
    TriggerEvent,
)
from .effect_registry import EffectRegistry, TargetRef, effect_priority
from .play_sequence import PlayAction, PlayRecord
from .state import (
    ALL_FACTIONS,
    CHARACTER_ZONES,
    RESTRICTION_KEYS,
    FieldEffects,
    ActiveEffect,
    GameState,
)

logger = logging.getLogger(__name__)

# Description keywords marking an SP effect that resolves after combo bonuses
AFTER_COMBO_KEYWORDS = ("combo", "組合", "總能力", "total power", "特殊組合", "總能力結算")

# Triggered effects that materialise as APPLY_* records instead of being staged
MATERIALISED_EFFECTS = frozenset({EffectType.FORCE_PLAY_SP, EffectType.PREVENT_PLAY})

SP_STAGE_NONE = "none"
SP_STAGE_BEFORE_COMBO = "before_combo"
SP_STAGE_AFTER_COMBO = "after_combo"


def is_after_combo(rule: EffectRule) -> bool:
    """SP rules that only resolve once combo bonuses are counted."""
    if rule.trigger.event == TriggerEvent.FINAL_CALCULATION:
        return True
    description = rule.description.lower()
    return any(keyword in description for keyword in AFTER_COMBO_KEYWORDS)


@dataclass
class StagedEffect:
    """An effect candidate collected during the sequence walk."""
    order: int
    effect_type: str
    source_card: str
    source_player: str
    priority: int
    value: Any = None
    targets: list[TargetRef] = field(default_factory=list)
    target_players: list[str] = field(default_factory=list)
    zones: list[str] = field(default_factory=list)
    restricted_types: tuple[str, ...] = ()
    rule_id: str | None = None
    unremovable: bool = False

    @property
    def source_key(self) -> tuple[str, str]:
        return (self.source_player, self.source_card)


class EffectSimulator:
    """
    Deterministic replay of the play sequence.

    Usage:
        simulator = EffectSimulator(catalog)
        field_effects = simulator.simulate(state)  # pure
        simulator.apply(state)                     # assigns the result
    """

    def __init__(self, catalog: Catalog, registry: EffectRegistry | None = None):
        self.catalog = catalog
        self.registry = registry or EffectRegistry(catalog)

    def apply(self, state: GameState) -> dict[str, FieldEffects]:
        """Run the simulation and store the result on each player."""
        result = self.simulate(state)
        for player_id, effects in result.items():
            state.players[player_id].field_effects = effects
        return result

    def simulate(self, state: GameState) -> dict[str, FieldEffects]:
        """
        Replay the play sequence and return fresh fieldEffects per player.

        Raises SequenceCorruptedError when the sequence has gaps or duplicates.
        """
        state.play_sequence.ensure_valid()

        effects = {pid: FieldEffects() for pid in state.players}
        staged: list[StagedEffect] = []

        current_leader_plays = {
            pid: state.play_sequence.current_leader_play(pid) for pid in state.players
        }

        for record in state.play_sequence.all():
            if record.player_id not in state.players:
                logger.warning("Play %d references unknown player %s", record.sequence_id, record.player_id)
                continue
            if record.action == PlayAction.PLAY_LEADER:
                if record is not current_leader_plays.get(record.player_id):
                    continue
                self._import_zone_compatibility(effects[record.player_id], record.card_id)
                staged.extend(self._stage_card_rules(state, record, len(staged)))
            elif record.action == PlayAction.PLAY_CARD:
                staged.extend(self._stage_card_rules(state, record, len(staged)))
            else:
                synthetic = self._stage_synthetic(state, record, len(staged))
                if synthetic is not None:
                    staged.append(synthetic)

        staged.sort(key=lambda s: self._sort_key(state, s))
        powers = self._apply_staged(state, effects, staged)
        self._compute_powers(state, effects, *powers)

        logger.debug(
            "Simulated %d plays into %d staged effects for game %s",
            len(state.play_sequence), len(staged), state.game_id,
        )
        return effects

    # =========================================================================
    # Staging
    # =========================================================================

    def _import_zone_compatibility(self, effects: FieldEffects, leader_id: str):
        leader = self.catalog.get_card(leader_id)
        if leader is None or not leader.zone_compatibility:
            return
        for zone in CHARACTER_ZONES:
            allowed = leader.zone_compatibility.get(zone)
            effects.zone_restrictions[RESTRICTION_KEYS[zone]] = list(allowed) if allowed else [ALL_FACTIONS]

    def _card_on_field(self, state: GameState, record: PlayRecord) -> bool:
        """The played card is still face-up where it was placed."""
        if record.action == PlayAction.PLAY_LEADER:
            return state.leader_id(record.player_id) == record.card_id
        placed = state.find_placed(record.player_id, record.card_id, record.zone)
        return placed is not None and not placed.is_face_down

    def _rule_is_staged(self, state: GameState, rule: EffectRule) -> bool:
        if rule.effect_type in CONSUMABLE_EFFECTS:
            return False
        if rule.kind == RuleKind.CONTINUOUS:
            return True
        event = rule.trigger.event
        if event == TriggerEvent.FINAL_CALCULATION:
            return rule.effect_type not in MATERIALISED_EFFECTS
        if event == TriggerEvent.SP_PHASE:
            if rule.effect_type in MATERIALISED_EFFECTS:
                return False
            if state.sp_stage == SP_STAGE_AFTER_COMBO:
                return True
            return state.sp_stage == SP_STAGE_BEFORE_COMBO and not is_after_combo(rule)
        # onSummon / onPlay resolve through CardAction and materialise records
        return False

    def _stage_card_rules(self, state: GameState, record: PlayRecord, offset: int) -> list[StagedEffect]:
        if not self._card_on_field(state, record):
            return []
        staged = []
        for rule in self.registry.effects_of(record.card_id):
            if not self._rule_is_staged(state, rule):
                continue
            if not self.registry.conditions_met(rule, state, record.player_id):
                continue
            staged.append(self._stage_rule(state, rule, record, offset + len(staged)))
        return staged

    def _stage_rule(self, state: GameState, rule: EffectRule, record: PlayRecord, order: int) -> StagedEffect:
        effect_type = rule.effect_type
        value = rule.effect.value
        if effect_type in (EffectType.POWER_BOOST, EffectType.POWER_NERF, EffectType.TOTAL_POWER_NERF):
            value = rule.effect.amount

        staged = StagedEffect(
            order=order,
            effect_type=effect_type.value,
            source_card=record.card_id,
            source_player=record.player_id,
            priority=effect_priority(effect_type, value),
            value=value,
            zones=list(rule.target.zones),
            restricted_types=rule.effect.restricted_types,
            rule_id=rule.rule_id,
            unremovable=rule.unremovable,
        )
        if effect_type in (
            EffectType.POWER_BOOST,
            EffectType.POWER_NERF,
            EffectType.SET_POWER,
            EffectType.MODIFY_POWER,
            EffectType.NEUTRALIZE_EFFECT,
        ):
            staged.targets = self.registry.targets(rule, state, record.player_id)
        else:
            staged.target_players = self.registry.target_players(rule.target, state, record.player_id)
        return staged

    def _stage_synthetic(self, state: GameState, record: PlayRecord, order: int) -> StagedEffect | None:
        """Stage an APPLY_* record written by a resolved effect."""
        data = record.data
        target_player = data.get("target_player_id", record.player_id)
        target_card = data.get("target_card_id")
        target_zone = data.get("target_zone", record.zone)

        if record.action in (
            PlayAction.APPLY_SET_POWER,
            PlayAction.APPLY_NEUTRALIZATION,
            PlayAction.APPLY_POWER_MODIFIER,
        ):
            placed = state.find_placed(target_player, target_card, target_zone) if target_card else None
            if placed is None or placed.is_face_down:
                return None
            refs = [TargetRef(player_id=target_player, zone=placed.zone, card_id=target_card)]
        else:
            refs = []

        if record.action == PlayAction.APPLY_SET_POWER:
            value = int(data.get("value", 0))
            return StagedEffect(
                order=order, effect_type=EffectType.SET_POWER.value,
                source_card=record.card_id, source_player=record.player_id,
                priority=effect_priority(PlayAction.APPLY_SET_POWER.value, value),
                value=value, targets=refs, unremovable=True,
            )
        if record.action == PlayAction.APPLY_NEUTRALIZATION:
            return StagedEffect(
                order=order, effect_type=EffectType.NEUTRALIZE_EFFECT.value,
                source_card=record.card_id, source_player=record.player_id,
                priority=effect_priority(PlayAction.APPLY_NEUTRALIZATION.value),
                targets=refs, unremovable=True,
            )
        if record.action == PlayAction.APPLY_POWER_MODIFIER:
            effect_type = data.get("effect_type", EffectType.POWER_BOOST.value)
            return StagedEffect(
                order=order, effect_type=effect_type,
                source_card=record.card_id, source_player=record.player_id,
                priority=effect_priority(PlayAction.APPLY_POWER_MODIFIER.value),
                value=int(data.get("value", 0)), targets=refs, unremovable=True,
            )
        if record.action == PlayAction.APPLY_PLAY_RESTRICTION:
            return StagedEffect(
                order=order, effect_type=EffectType.PREVENT_PLAY.value,
                source_card=record.card_id, source_player=record.player_id,
                priority=effect_priority(EffectType.PREVENT_PLAY),
                target_players=[target_player], zones=list(data.get("zones", [])),
                unremovable=True,
            )
        if record.action == PlayAction.APPLY_FORCE_SP_PLAY:
            return StagedEffect(
                order=order, effect_type=EffectType.FORCE_PLAY_SP.value,
                source_card=record.card_id, source_player=record.player_id,
                priority=effect_priority(EffectType.FORCE_PLAY_SP),
                target_players=[target_player], unremovable=True,
            )
        return None

    def _sort_key(self, state: GameState, staged: StagedEffect) -> tuple:
        leader_id = state.leader_id(staged.source_player)
        leader = self.catalog.get_card(leader_id) if leader_id else None
        initial_point = leader.initial_point if leader else 0
        return (
            -staged.priority,
            -initial_point,
            0 if staged.source_player == state.first_player else 1,
            staged.source_player,
            staged.source_card,
            staged.order,
        )

    # =========================================================================
    # Application
    # =========================================================================

    def _apply_staged(self, state: GameState, effects: dict[str, FieldEffects], staged: list[StagedEffect]) -> tuple:
        """Apply staged effects in order; returns (pinned, modifiers, locked) power data."""
        disabled_by: dict[tuple[str, str], str] = {}
        modifiers: dict[tuple[str, str], int] = {}
        pinned: dict[tuple[str, str], int] = {}
        locked: set[tuple[str, str]] = set()

        for item in staged:
            record = ActiveEffect(
                effect_type=item.effect_type,
                source_card=item.source_card,
                source_player=item.source_player,
                priority=item.priority,
                value=item.value,
                target_player=(item.targets[0].player_id if item.targets else
                               item.target_players[0] if item.target_players else None),
                target_cards=[t.card_id for t in item.targets],
                zones=list(item.zones),
                rule_id=item.rule_id,
                unremovable=item.unremovable,
            )
            effects[item.source_player].active_effects.append(record)

            if item.source_key in disabled_by and not item.unremovable:
                record.enabled = False
                record.disabled_by = disabled_by[item.source_key]
                continue

            kind = item.effect_type
            if kind == EffectType.NEUTRALIZE_EFFECT.value:
                for target in item.targets:
                    key = (target.player_id, target.card_id)
                    card = self.catalog.get_card(target.card_id)
                    if card is None or card.immune_to_neutralization or key in disabled_by:
                        continue
                    disabled_by[key] = item.source_card
                    effects[target.player_id].disabled_cards.append({
                        "card_id": target.card_id,
                        "zone": target.zone,
                        "disabled_by": item.source_card,
                    })
            elif kind in (EffectType.SET_POWER.value, EffectType.MODIFY_POWER.value):
                set_mode = kind == EffectType.SET_POWER.value or (
                    isinstance(item.value, dict) and item.value.get("mode") == "set"
                )
                amount = item.value.get("amount", 0) if isinstance(item.value, dict) else int(item.value or 0)
                for target in item.targets:
                    key = (target.player_id, target.card_id)
                    if key in locked:
                        continue
                    if set_mode:
                        pinned[key] = int(amount)
                        if item.unremovable:
                            locked.add(key)
                    else:
                        modifiers[key] = modifiers.get(key, 0) + int(amount)
            elif kind in (EffectType.POWER_BOOST.value, EffectType.POWER_NERF.value):
                sign = 1 if kind == EffectType.POWER_BOOST.value else -1
                for target in item.targets:
                    key = (target.player_id, target.card_id)
                    if key in locked:
                        continue
                    modifiers[key] = modifiers.get(key, 0) + sign * abs(int(item.value or 0))
            elif kind == EffectType.ZONE_RESTRICTION.value:
                for player_id in item.target_players:
                    self._restrict_zones(effects[player_id], item)
            elif kind == EffectType.DISABLE_COMBO_BONUS.value:
                for player_id in item.target_players:
                    effects[player_id].special_states["disableComboBonus"] = True
            elif kind == EffectType.TOTAL_POWER_NERF.value:
                for player_id in item.target_players:
                    effects[player_id].victory_point_modifiers -= abs(int(item.value or 0))
            elif kind == EffectType.ZONE_PLACEMENT_FREEDOM.value:
                for player_id in item.target_players:
                    effects[player_id].special_states["zonePlacementFreedom"] = True
            elif kind == EffectType.SILENCE_ON_SUMMON.value:
                for player_id in item.target_players:
                    effects[player_id].special_states["silenceOnSummon"] = True
            elif kind == EffectType.PREVENT_PLAY.value:
                for player_id in item.target_players:
                    blocked = set(effects[player_id].special_states.get("preventPlay", []))
                    blocked.update(item.zones)
                    effects[player_id].special_states["preventPlay"] = sorted(blocked)
            elif kind == EffectType.FORCE_PLAY_SP.value:
                for player_id in item.target_players:
                    effects[player_id].special_states["forcedSpPlay"] = True
            else:
                logger.debug("Effect type %s has no persistent state", kind)

        return pinned, modifiers, locked

    def _restrict_zones(self, effects: FieldEffects, item: StagedEffect):
        allowed_value = item.value if isinstance(item.value, (list, tuple)) else None
        for zone in item.zones:
            key = RESTRICTION_KEYS.get(zone)
            if key is None:
                continue
            allowed = list(effects.zone_restrictions.get(key, [ALL_FACTIONS]))
            if allowed_value is not None:
                if allowed == [ALL_FACTIONS]:
                    allowed = list(allowed_value)
                else:
                    allowed = [tag for tag in allowed if tag in allowed_value]
            if item.restricted_types:
                if allowed == [ALL_FACTIONS]:
                    allowed = list(self.catalog.factions)
                allowed = [tag for tag in allowed if tag not in item.restricted_types]
            effects.zone_restrictions[key] = allowed

    def _compute_powers(
        self,
        state: GameState,
        effects: dict[str, FieldEffects],
        pinned: dict[tuple[str, str], int],
        modifiers: dict[tuple[str, str], int],
        locked: set[tuple[str, str]],
    ):
        for player_id in state.players:
            powers: dict[str, int] = {}
            for placed in state.face_up_characters(player_id):
                card = self.catalog.get_card(placed.card_id)
                if card is None:
                    continue
                key = (player_id, placed.card_id)
                if key in locked:
                    power = pinned[key]
                else:
                    base = pinned.get(key, card.power)
                    power = base + modifiers.get(key, 0)
                powers[placed.card_id] = max(0, power)
            effects[player_id].calculated_powers = powers
