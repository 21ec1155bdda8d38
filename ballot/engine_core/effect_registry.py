"""
Effect Registry - Interprets declarative effect rules.

Pure functions over a game-state snapshot:
- effects_of(card_id): the card's rules
- conditions_met(rule, state, source_player): all conditions hold
- targets(rule, state, source_player): placed cards the rule acts on
- effect_priority(effect_type, value): fixed priority table

Name conditions use substring matching, so "特朗普" matches both the leader
特朗普 and the character 小唐納德·特朗普.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any
import logging
import operator

from ..catalog import Catalog, CardDefinition
from ..catalog.rules import Condition, EffectRule, EffectType, Filter, RuleTarget
from .state import GameState, CHARACTER_ZONES, LEADER_ZONE

logger = logging.getLogger(__name__)

# Priority table: higher applies first
PRIORITY_DISABLE_OPPONENT_CARDS = 100
PRIORITY_NULLIFICATION = 90
PRIORITY_MODIFICATION = 80
PRIORITY_ZONE_RESTRICTION = 70
PRIORITY_POWER_BOOST = 60
PRIORITY_DEFAULT = 50

HAND_COUNT_OPERATORS = {
    ">=": operator.ge,
    "<=": operator.le,
    ">": operator.gt,
    "<": operator.lt,
    "=": operator.eq,
    "==": operator.eq,
}


def effect_priority(effect_type: EffectType | str, value: Any = None) -> int:
    """
    Priority of an effect type.

    setPower to 0 is a nullification; any other setPower (or a modifyPower
    in "set" mode) is a modification.
    """
    type_value = effect_type.value if isinstance(effect_type, EffectType) else effect_type
    if type_value in ("neutralizeEffect", "APPLY_NEUTRALIZATION"):
        return PRIORITY_DISABLE_OPPONENT_CARDS
    if type_value in ("setPower", "APPLY_SET_POWER"):
        return PRIORITY_NULLIFICATION if value == 0 else PRIORITY_MODIFICATION
    if type_value == "modifyPower":
        if isinstance(value, dict) and value.get("mode") == "set":
            return PRIORITY_NULLIFICATION if value.get("amount") == 0 else PRIORITY_MODIFICATION
        return PRIORITY_POWER_BOOST
    if type_value in ("zoneRestriction", "preventSummon"):
        return PRIORITY_ZONE_RESTRICTION
    if type_value in ("powerBoost", "powerNerf", "APPLY_POWER_MODIFIER"):
        return PRIORITY_POWER_BOOST
    return PRIORITY_DEFAULT


@dataclass(frozen=True)
class TargetRef:
    """A placed card selected as an effect target."""
    player_id: str
    zone: str
    card_id: str

    def to_dict(self) -> dict[str, str]:
        return {"player_id": self.player_id, "zone": self.zone, "card_id": self.card_id}


class EffectRegistry:
    """
    Evaluates rule conditions and enumerates rule targets.

    Stateless apart from the injected catalog.
    """

    def __init__(self, catalog: Catalog):
        self.catalog = catalog

    def effects_of(self, card_id: str) -> tuple[EffectRule, ...]:
        return self.catalog.effects_of(card_id)

    # =========================================================================
    # Conditions
    # =========================================================================

    def conditions_met(self, rule: EffectRule, state: GameState, source_player: str) -> bool:
        """All conditions hold; stops at the first failure."""
        for condition in rule.trigger.conditions:
            if not self.condition_met(condition, state, source_player):
                return False
        return True

    def condition_met(self, condition: Condition, state: GameState, source_player: str) -> bool:
        opponent = state.opponent_of(source_player)
        kind = condition.condition_type
        value = condition.value

        if kind == "or":
            return any(self.condition_met(c, state, source_player) for c in condition.conditions)
        if kind == "selfHasCharacterWithName":
            return self._has_character_named(state, source_player, value)
        if kind == "opponentHasCharacterWithName":
            return opponent is not None and self._has_character_named(state, opponent, value)
        if kind == "selfHasLeader":
            return self._leader_named(state, source_player, value)
        if kind in ("opponentLeader", "opponentHasLeader"):
            return opponent is not None and self._leader_named(state, opponent, value)
        if kind == "opponentHandCountMoreThan":
            return opponent is not None and self._hand_count(state, opponent) > int(value)
        if kind == "opponentHandCount":
            compare = HAND_COUNT_OPERATORS.get(condition.operator or ">=")
            if compare is None or opponent is None:
                return False
            return compare(self._hand_count(state, opponent), int(value))
        if kind == "zoneEmpty":
            player = opponent if condition.owner == "opponent" else source_player
            zone = (condition.zone or value or "").lower()
            return player is not None and not state.zone(player, zone)
        if kind == "allyFieldContainsName":
            return self._field_contains_name(state, source_player, value)
        if kind == "opponentFieldContainsName":
            return opponent is not None and self._field_contains_name(state, opponent, value)

        logger.warning("Unknown condition type %s; treating as not met", kind)
        return False

    def _hand_count(self, state: GameState, player_id: str) -> int:
        player = state.get_player(player_id)
        return len(player.hand) if player else 0

    def _name_of(self, card_id: str) -> str:
        card = self.catalog.get_card(card_id)
        return card.name if card else ""

    def _has_character_named(self, state: GameState, player_id: str, name: str) -> bool:
        return any(name in self._name_of(c.card_id) for c in state.face_up_characters(player_id))

    def _leader_named(self, state: GameState, player_id: str, name: str) -> bool:
        leader_id = state.leader_id(player_id)
        return leader_id is not None and name in self._name_of(leader_id)

    def _field_contains_name(self, state: GameState, player_id: str, name: str) -> bool:
        """Face-up characters or the leader carry the name."""
        return self._has_character_named(state, player_id, name) or self._leader_named(state, player_id, name)

    # =========================================================================
    # Targets
    # =========================================================================

    def target_players(self, target: RuleTarget, state: GameState, source_player: str) -> list[str]:
        opponent = state.opponent_of(source_player)
        if target.owner == "opponent":
            return [opponent] if opponent else []
        if target.owner == "both":
            return [pid for pid in state.ordered_players()]
        return [source_player]

    def targets(self, rule: EffectRule, state: GameState, source_player: str) -> list[TargetRef]:
        """
        Face-up placed cards matching the rule's owner, zones and filters.

        Enumeration order is player (first player first), then zone order,
        then position in the zone; limit keeps the first N.
        """
        found: list[TargetRef] = []
        for player_id in self.target_players(rule.target, state, source_player):
            for zone in rule.target.zones:
                for placed in state.zone(player_id, zone):
                    if placed.is_face_down:
                        continue
                    card = self.catalog.get_card(placed.card_id)
                    if card is None or not self.matches_filters(card, rule.target.filters):
                        continue
                    found.append(TargetRef(player_id=player_id, zone=zone, card_id=placed.card_id))
        if rule.target.limit is not None:
            found = found[: int(rule.target.limit)]
        return found

    def matches_filters(self, card: CardDefinition, filters: tuple[Filter, ...]) -> bool:
        return all(self.matches_filter(card, f) for f in filters)

    def matches_filter(self, card: CardDefinition, card_filter: Filter) -> bool:
        kind = card_filter.filter_type
        values = card_filter.values
        if kind == "hasTrait":
            return any(v in card.traits for v in values)
        if kind in ("hasGameType", "gameTypeOr"):
            return card.game_type in values
        if kind == "hasCardType":
            return card.category.value in values
        logger.warning("Unknown filter type %s; card %s excluded", kind, card.id)
        return False

    # =========================================================================
    # Classification
    # =========================================================================

    def eligible_for_selection(self, rule: EffectRule, state: GameState, source_player: str) -> list[TargetRef]:
        """
        Targets a field-target selection may choose from.

        Neutralization needs a card with effects that is not immune;
        power effects need a face-up character.
        """
        eligible = []
        for ref in self.targets(rule, state, source_player):
            card = self.catalog.get_card(ref.card_id)
            if card is None:
                continue
            if rule.effect_type == EffectType.NEUTRALIZE_EFFECT:
                if card.rules and not card.immune_to_neutralization and ref.zone != LEADER_ZONE:
                    eligible.append(ref)
            elif card.is_character and ref.zone in CHARACTER_ZONES:
                eligible.append(ref)
        return eligible
