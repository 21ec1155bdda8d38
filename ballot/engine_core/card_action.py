"""
Card Action - Validates and commits card placements.

A placement is (player, face-up or face-down, field_idx, card_idx) where
field_idx indexes ZONE_ORDER = [top, left, right, help, sp].

Validation short-circuits on the first failure and raises GameRuleError;
nothing is mutated until every check has passed. Commit then:
1. Moves the card from hand to the zone and records PLAY_CARD
2. Emits CARD_PLAYED and ZONE_FILLED
3. Runs onSummon (characters) or onPlay (help) triggered rules

Triggered rules either resolve at once (draw, discard, play restrictions,
untargeted power changes) or open a pending selection. Once a selection is
open the remaining rules of that card are not run.
"""

from __future__ import annotations
from dataclasses import dataclass
import logging

from ..catalog import Catalog, CardDefinition, EffectRule, EffectType, RuleKind, TriggerEvent
from ..catalog.rules import CARD_TARGET_EFFECTS, SELECTABLE_EFFECTS
from .effect_registry import EffectRegistry, TargetRef
from .errors import ErrorType, GameRuleError
from .events import EventType
from .play_sequence import PlayAction
from .selection import SelectionManager, TARGET_RECORDS
from .state import (
    ALL_FACTIONS,
    CHARACTER_ZONES,
    ZONE_ORDER,
    GameState,
    PlacedCard,
    Phase,
)

logger = logging.getLogger(__name__)


@dataclass
class CardAction:
    """
    Placement validator and committer.

    Usage:
        card_action = CardAction(catalog, registry, selections)
        card_action.validate(state, "playerId_1", field_idx=0, card_idx=2, face_down=False)
        card_action.commit(state, "playerId_1", field_idx=0, card_idx=2, face_down=False)
    """
    catalog: Catalog
    registry: EffectRegistry
    selections: SelectionManager

    # =========================================================================
    # Validation
    # =========================================================================

    def validate(
        self,
        state: GameState,
        player_id: str,
        field_idx: int | None,
        card_idx: int | None,
        face_down: bool,
    ) -> CardDefinition:
        """Run every placement check. Returns the card definition on success."""
        if not isinstance(field_idx, int) or not 0 <= field_idx < len(ZONE_ORDER):
            raise GameRuleError(ErrorType.INVALID_POSITION, f"Invalid field position: {field_idx}")
        hand = state.players[player_id].hand
        if not isinstance(card_idx, int) or not 0 <= card_idx < len(hand):
            raise GameRuleError(ErrorType.INVALID_CARD_INDEX, f"Invalid card index: {card_idx}")

        card_id = hand[card_idx]
        card = self.catalog.get_card(card_id)
        if card is None:
            raise GameRuleError(ErrorType.CARD_NOT_FOUND, f"Card not found: {card_id}")

        zone = ZONE_ORDER[field_idx]
        self._check_phase(state, card, zone, face_down)
        if face_down:
            self._check_face_down_zone(state, player_id, zone)
        else:
            self._check_card_type_zone(state, player_id, card, zone)
            self._check_field_effects(state, player_id, zone)
            if zone in CHARACTER_ZONES:
                self._check_compatibility(state, player_id, card, zone)
        return card

    def _check_phase(self, state: GameState, card: CardDefinition, zone: str, face_down: bool):
        in_sp_phase = state.phase == Phase.SP_PHASE
        if face_down and zone == "sp" and not in_sp_phase:
            raise GameRuleError(
                ErrorType.PHASE_RESTRICTION_ERROR,
                f"Cannot play face-down cards in SP zone during {state.phase.value}",
            )
        if in_sp_phase and zone == "sp" and not face_down:
            raise GameRuleError(
                ErrorType.SP_PHASE_RESTRICTION,
                "Cards in SP zone must be played face-down during SP phase",
            )
        if in_sp_phase and zone != "sp":
            raise GameRuleError(
                ErrorType.PHASE_RESTRICTION_ERROR,
                "Only the SP zone can be played during SP phase",
            )

    def _check_face_down_zone(self, state: GameState, player_id: str, zone: str):
        # Face-down cards may stack in character zones; utility zones hold one card
        if zone not in CHARACTER_ZONES and state.zone(player_id, zone):
            raise GameRuleError(ErrorType.ZONE_OCCUPIED_ERROR, f"{zone.upper()} zone already occupied")

    def _check_card_type_zone(self, state: GameState, player_id: str, card: CardDefinition, zone: str):
        if card.is_character:
            if zone not in CHARACTER_ZONES:
                raise GameRuleError(ErrorType.CARD_TYPE_ZONE_ERROR, "Can't play character card in utility zones")
            if any(not c.is_face_down for c in state.zone(player_id, zone)):
                raise GameRuleError(ErrorType.ZONE_OCCUPIED_ERROR, "Character already in this position")
        elif card.is_help:
            if zone != "help":
                raise GameRuleError(ErrorType.CARD_TYPE_ZONE_ERROR, "Help cards can only be played in the help zone")
            if state.zone(player_id, "help"):
                raise GameRuleError(ErrorType.ZONE_OCCUPIED_ERROR, "Help zone already occupied")
        elif card.is_sp:
            if state.phase != Phase.SP_PHASE:
                raise GameRuleError(ErrorType.PHASE_RESTRICTION_ERROR, "SP cards can only be played during SP phase")
            if zone != "sp":
                raise GameRuleError(ErrorType.CARD_TYPE_ZONE_ERROR, "SP cards can only be played in the SP zone")
        else:
            raise GameRuleError(ErrorType.CARD_TYPE_ZONE_ERROR, f"{card.category.value} cards cannot be played")

    def _check_field_effects(self, state: GameState, player_id: str, zone: str):
        special = state.players[player_id].field_effects.special_states
        if zone in special.get("preventPlay", []):
            raise GameRuleError(
                ErrorType.FIELD_EFFECT_RESTRICTION,
                f"A field effect prevents playing into the {zone.upper()} zone",
            )

    def _check_compatibility(self, state: GameState, player_id: str, card: CardDefinition, zone: str):
        if self.is_compatible(state, player_id, card, zone):
            return
        allowed = state.players[player_id].field_effects.allowed_tags(zone)
        raise GameRuleError(
            ErrorType.ZONE_COMPATIBILITY_ERROR,
            f"{card.name} cannot be placed in {zone.upper()}; allowed: {', '.join(allowed) or 'none'}",
            details={"allowed": list(allowed), "card_id": card.id},
        )

    def is_compatible(self, state: GameState, player_id: str, card: CardDefinition, zone: str) -> bool:
        effects = state.players[player_id].field_effects
        if effects.special_states.get("zonePlacementFreedom"):
            return True
        allowed = effects.allowed_tags(zone)
        if ALL_FACTIONS in allowed or "all" in card.traits:
            return True
        # Restrictions name factions; a matching secondary trait does not count
        return card.game_type in allowed

    # =========================================================================
    # Commit
    # =========================================================================

    def commit(
        self,
        state: GameState,
        player_id: str,
        field_idx: int,
        card_idx: int,
        face_down: bool,
    ) -> PlacedCard:
        """Place a validated card and run its triggered rules."""
        zone = ZONE_ORDER[field_idx]
        player = state.players[player_id]
        card_id = player.hand.pop(card_idx)
        card = self.catalog.get_card(card_id)

        placed = PlacedCard(
            card_id=card_id,
            owner=player_id,
            zone=zone,
            is_face_down=face_down,
            value_on_field=0 if face_down or card is None else card.power,
        )
        state.place(placed)
        state.play_sequence.append(
            player_id, card_id, PlayAction.PLAY_CARD, zone,
            data={"isFaceDown": face_down, "fieldIdx": field_idx},
            turn_number=state.current_turn,
            phase=state.phase.value,
        )

        state.events.append(EventType.CARD_PLAYED, {
            "playerId": player_id,
            "cardId": None if face_down else card_id,
            "zone": zone,
            "isFaceDown": face_down,
        })
        state.events.append(EventType.ZONE_FILLED, {"playerId": player_id, "zone": zone})

        if not face_down:
            self.run_triggers(state, player_id, card_id, zone)
        return placed

    def run_triggers(self, state: GameState, player_id: str, card_id: str, zone: str):
        """Run onSummon / onPlay rules of a card that just came into play face-up."""
        card = self.catalog.get_card(card_id)
        if card is None:
            return
        if card.is_character:
            event = TriggerEvent.ON_SUMMON
            if state.players[player_id].field_effects.special_states.get("silenceOnSummon"):
                logger.info("onSummon of %s silenced by a field effect", card_id)
                return
        elif card.is_help:
            event = TriggerEvent.ON_PLAY
        else:
            return

        for rule in card.rules:
            if rule.kind != RuleKind.TRIGGERED or rule.trigger.event != event:
                continue
            if not self.registry.conditions_met(rule, state, player_id):
                continue
            state.events.append(EventType.CARD_EFFECT_TRIGGERED, {
                "playerId": player_id,
                "cardId": card_id,
                "ruleId": rule.rule_id,
                "effectType": rule.effect_type.value,
                "trigger": event.value,
            })
            if self.execute_rule(state, player_id, rule, card_id, zone):
                break

    def execute_rule(
        self,
        state: GameState,
        player_id: str,
        rule: EffectRule,
        source_card_id: str,
        zone: str,
        interactive: bool = True,
    ) -> bool:
        """
        Resolve one triggered rule.

        With interactive=False (SP reveal) choices are made automatically.
        Returns True when a pending selection was opened.
        """
        effect_type = rule.effect_type

        if effect_type == EffectType.DRAW_CARD:
            count = rule.effect.amount or 1
            for target in self.registry.target_players(rule.target, state, player_id):
                drawn = state.players[target].deck.draw(count)
                logger.debug("%s drew %d cards from %s", target, len(drawn), source_card_id)
            return False

        if effect_type == EffectType.DISCARD_RANDOM_CARD:
            count = rule.effect.amount or 1
            for target in self.registry.target_players(rule.target, state, player_id):
                self._discard_random(state, target, count, source_card_id)
            return False

        if effect_type == EffectType.SEARCH_CARD:
            selection = self.selections.open_deck_search(state, player_id, rule, source_card_id)
            if selection is None:
                return False
            if interactive:
                return True
            self.selections.resolve(
                state, player_id, selection.selection_id,
                selection.eligible_cards[: selection.select_count],
                on_play=self.run_on_play,
            )
            return False

        if effect_type in (EffectType.FORCE_PLAY_SP, EffectType.PREVENT_PLAY):
            action = (
                PlayAction.APPLY_FORCE_SP_PLAY
                if effect_type == EffectType.FORCE_PLAY_SP
                else PlayAction.APPLY_PLAY_RESTRICTION
            )
            zones = rule.effect.value if isinstance(rule.effect.value, list) else list(rule.target.zones)
            for target in self.registry.target_players(rule.target, state, player_id):
                state.play_sequence.append(
                    player_id, source_card_id, action, zone,
                    data={"target_player_id": target, "zones": zones, "rule_id": rule.rule_id},
                    turn_number=state.current_turn,
                    phase=state.phase.value,
                )
            return False

        if effect_type in SELECTABLE_EFFECTS and rule.target.requires_selection:
            eligible = self.registry.eligible_for_selection(rule, state, player_id)
            if not eligible:
                logger.info("No eligible targets for %s; effect skipped", rule.rule_id)
                return False
            if interactive:
                self.selections.open_field_target(state, player_id, rule, source_card_id, eligible)
                return True
            self._materialise(state, player_id, rule, source_card_id, eligible[: max(rule.effect.select_count, 1)])
            return False

        if effect_type in CARD_TARGET_EFFECTS:
            self._materialise(state, player_id, rule, source_card_id, self.registry.targets(rule, state, player_id))
            return False

        logger.debug("Triggered %s on %s is resolved by replay", effect_type.value, source_card_id)
        return False

    def run_on_play(self, state: GameState, player_id: str, card_id: str, zone: str):
        """Callback for help cards a deck search put into play."""
        self.run_triggers(state, player_id, card_id, zone)

    def _discard_random(self, state: GameState, player_id: str, count: int, source_card_id: str):
        hand = state.players[player_id].hand
        for _ in range(count):
            if not hand:
                return
            rng = state.next_rng()
            discarded = hand.pop(rng.randrange(len(hand)))
            state.events.append(EventType.CARD_DISCARDED, {
                "playerId": player_id,
                "cardId": discarded,
                "sourceCardId": source_card_id,
            })

    def _materialise(
        self,
        state: GameState,
        player_id: str,
        rule: EffectRule,
        source_card_id: str,
        targets: list[TargetRef],
    ):
        """Write APPLY_* records for a resolved card-target effect."""
        action = TARGET_RECORDS.get(rule.effect_type.value)
        if action is None:
            logger.warning("No play record for triggered %s", rule.effect_type.value)
            return
        for target in targets:
            state.play_sequence.append(
                player_id, source_card_id, action, target.zone,
                data={
                    "target_card_id": target.card_id,
                    "target_player_id": target.player_id,
                    "target_zone": target.zone,
                    "value": rule.effect.amount,
                    "effect_type": rule.effect_type.value,
                    "rule_id": rule.rule_id,
                },
                turn_number=state.current_turn,
                phase=state.phase.value,
            )
