"""
Selection Manager - Interactive card choices.

Some triggered effects stop the game until the acting player picks cards:
1. Deck search: look at the top N cards of the deck, keep M of them
2. Field target: pick a placed card for setPower / neutralize / boost / nerf

While a selection is open, state.pending_player_action gates every other
action. Resolution applies the choice and clears the gate; field-target
choices are written to the play sequence as APPLY_* records so replay
reproduces them.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable
import logging
import time
import uuid

from ..catalog import Catalog, EffectRule, EffectType, SearchDestination
from .effect_registry import EffectRegistry, TargetRef
from .errors import ErrorType, GameRuleError
from .events import EventType
from .play_sequence import PlayAction
from .state import GameState, PlacedCard

logger = logging.getLogger(__name__)

DECK_SEARCH = "deck_search"
FIELD_TARGET = "field_target"

# Field-target effect -> synthetic play record
TARGET_RECORDS = {
    EffectType.SET_POWER.value: PlayAction.APPLY_SET_POWER,
    EffectType.NEUTRALIZE_EFFECT.value: PlayAction.APPLY_NEUTRALIZATION,
    EffectType.POWER_BOOST.value: PlayAction.APPLY_POWER_MODIFIER,
    EffectType.POWER_NERF.value: PlayAction.APPLY_POWER_MODIFIER,
}

OnPlayCallback = Callable[[GameState, str, str, str], None]


@dataclass
class PendingSelection:
    """An open card choice owned by one player."""
    selection_id: str
    player_id: str
    selection_type: str  # deck_search | field_target
    source_card_id: str
    eligible_cards: list[str] = field(default_factory=list)
    eligible_targets: list[dict[str, str]] = field(default_factory=list)
    searched_cards: list[str] = field(default_factory=list)
    select_count: int = 1
    destination: str | None = None
    effect_type: str | None = None
    effect_value: Any = None
    card_type_filter: str | None = None
    created_at: float = field(default_factory=time.time)

    @property
    def is_deck_search(self) -> bool:
        return self.selection_type == DECK_SEARCH

    def target_for(self, card_id: str) -> dict[str, str] | None:
        for target in self.eligible_targets:
            if target["card_id"] == card_id:
                return target
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "selection_id": self.selection_id,
            "player_id": self.player_id,
            "selection_type": self.selection_type,
            "source_card_id": self.source_card_id,
            "eligible_cards": list(self.eligible_cards),
            "eligible_targets": [dict(t) for t in self.eligible_targets],
            "searched_cards": list(self.searched_cards),
            "select_count": self.select_count,
            "destination": self.destination,
            "effect_type": self.effect_type,
            "effect_value": self.effect_value,
            "card_type_filter": self.card_type_filter,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PendingSelection:
        return cls(
            selection_id=data["selection_id"],
            player_id=data["player_id"],
            selection_type=data.get("selection_type", DECK_SEARCH),
            source_card_id=data.get("source_card_id", ""),
            eligible_cards=list(data.get("eligible_cards", [])),
            eligible_targets=[dict(t) for t in data.get("eligible_targets", [])],
            searched_cards=list(data.get("searched_cards", [])),
            select_count=int(data.get("select_count", 1)),
            destination=data.get("destination"),
            effect_type=data.get("effect_type"),
            effect_value=data.get("effect_value"),
            card_type_filter=data.get("card_type_filter"),
            created_at=float(data.get("created_at", time.time())),
        )


def _new_selection_id(player_id: str, kind: str) -> str:
    return f"{player_id}_{kind}_{uuid.uuid4().hex[:8]}"


@dataclass
class SelectionManager:
    """
    Opens and resolves pending selections.

    Usage:
        manager = SelectionManager(catalog, registry)
        selection = manager.open_deck_search(state, "playerId_1", rule, "c-7")
        manager.resolve(state, "playerId_1", selection.selection_id, ["c-1"])
    """
    catalog: Catalog
    registry: EffectRegistry

    # =========================================================================
    # Opening
    # =========================================================================

    def open_deck_search(
        self,
        state: GameState,
        player_id: str,
        rule: EffectRule,
        source_card_id: str,
    ) -> PendingSelection | None:
        """
        Look at the top searchCount cards and ask the player to keep some.

        Returns None (and opens nothing) when the deck is empty or no searched
        card passes the type filter; in the latter case the searched cards go
        to the bottom of the deck.
        """
        deck = state.players[player_id].deck
        effect = rule.effect
        searched = deck.main_deck[: max(effect.search_count, 0)]
        if not searched:
            logger.info("Deck search by %s found an empty deck", source_card_id)
            return None

        eligible = [c for c in searched if self._passes_type_filter(c, effect.card_type_filter)]
        if not eligible:
            del deck.main_deck[: len(searched)]
            deck.main_deck.extend(searched)
            logger.info(
                "Deck search by %s found no %s cards; %d cards returned to the bottom",
                source_card_id, effect.card_type_filter, len(searched),
            )
            return None

        destination = effect.destination or SearchDestination.HAND
        selection = PendingSelection(
            selection_id=_new_selection_id(player_id, DECK_SEARCH),
            player_id=player_id,
            selection_type=DECK_SEARCH,
            source_card_id=source_card_id,
            eligible_cards=eligible,
            searched_cards=list(searched),
            select_count=min(max(effect.select_count, 1), len(eligible)),
            destination=destination.value,
            effect_type=EffectType.SEARCH_CARD.value,
            card_type_filter=effect.card_type_filter,
        )
        self._open(state, selection)
        return selection

    def open_field_target(
        self,
        state: GameState,
        player_id: str,
        rule: EffectRule,
        source_card_id: str,
        eligible: list[TargetRef],
    ) -> PendingSelection:
        """Ask the player to pick one of the eligible placed cards."""
        selection = PendingSelection(
            selection_id=_new_selection_id(player_id, FIELD_TARGET),
            player_id=player_id,
            selection_type=FIELD_TARGET,
            source_card_id=source_card_id,
            eligible_cards=[t.card_id for t in eligible],
            eligible_targets=[t.to_dict() for t in eligible],
            select_count=min(max(rule.effect.select_count, 1), len(eligible)),
            effect_type=rule.effect_type.value,
            effect_value=rule.effect.value,
        )
        self._open(state, selection)
        return selection

    def _open(self, state: GameState, selection: PendingSelection):
        state.pending_card_selections[selection.selection_id] = selection
        state.pending_player_action = {
            "type": "cardSelection",
            "selection_id": selection.selection_id,
            "player_id": selection.player_id,
        }
        state.events.append(EventType.CARD_SELECTION_REQUIRED, {
            "playerId": selection.player_id,
            "selectionId": selection.selection_id,
            "selectionType": selection.selection_type,
            "eligibleCards": list(selection.eligible_cards),
            "eligibleCardCount": len(selection.eligible_cards),
            "selectCount": selection.select_count,
            "effectType": selection.effect_type,
            "sourceCardId": selection.source_card_id,
        })
        logger.debug("Selection %s opened for %s", selection.selection_id, selection.player_id)

    def _passes_type_filter(self, card_id: str, card_type: str | None) -> bool:
        if not card_type:
            return True
        card = self.catalog.get_card(card_id)
        return card is not None and card.category.value == card_type

    # =========================================================================
    # Resolution
    # =========================================================================

    def validate(
        self,
        state: GameState,
        player_id: str,
        selection_id: str | None,
        selected_ids: Any,
    ) -> PendingSelection:
        """Check a SelectCard request; raises GameRuleError on any problem."""
        if not selection_id or not isinstance(selected_ids, (list, tuple)) or not all(
            isinstance(c, str) for c in selected_ids
        ):
            raise GameRuleError(
                ErrorType.INVALID_SELECTION_DATA,
                "SelectCard requires selectionId and a list of selectedCardIds",
            )
        selection = state.pending_card_selections.get(selection_id)
        if selection is None:
            raise GameRuleError(ErrorType.INVALID_SELECTION_ID, "Invalid or expired card selection")
        if selection.player_id != player_id:
            raise GameRuleError(
                ErrorType.UNAUTHORIZED_SELECTION,
                "This card selection belongs to the other player",
            )
        if len(selected_ids) != selection.select_count:
            raise GameRuleError(
                ErrorType.INVALID_SELECTION_COUNT,
                f"Must select exactly {selection.select_count} cards",
            )
        if len(set(selected_ids)) != len(selected_ids):
            raise GameRuleError(ErrorType.INVALID_CARD_SELECTION, "The same card was selected twice")
        for card_id in selected_ids:
            if card_id not in selection.eligible_cards:
                raise GameRuleError(
                    ErrorType.INVALID_CARD_SELECTION,
                    f"Card {card_id} is not a valid choice for this selection",
                )
        return selection

    def resolve(
        self,
        state: GameState,
        player_id: str,
        selection_id: str | None,
        selected_ids: Any,
        on_play: OnPlayCallback | None = None,
    ) -> PendingSelection:
        """
        Apply a selection and clear the gate.

        on_play(state, player_id, card_id, zone) runs for help cards placed
        face-up by a deck search; it may open a further selection.
        """
        selection = self.validate(state, player_id, selection_id, selected_ids)
        self.close(state, selection.selection_id)

        if selection.is_deck_search:
            placed_help = self._resolve_deck_search(state, selection, list(selected_ids))
        else:
            self._resolve_field_target(state, selection, list(selected_ids))
            placed_help = []

        state.events.append(EventType.CARD_SELECTION_COMPLETED, {
            "playerId": player_id,
            "selectionId": selection.selection_id,
            "selectedCardIds": list(selected_ids),
            "selectionType": selection.selection_type,
        })

        for card_id in placed_help:
            if on_play is not None:
                on_play(state, player_id, card_id, "help")
        return selection

    def close(self, state: GameState, selection_id: str):
        state.pending_card_selections.pop(selection_id, None)
        if state.pending_player_action and state.pending_player_action.get("selection_id") == selection_id:
            state.pending_player_action = None

    def _resolve_deck_search(self, state: GameState, selection: PendingSelection, chosen: list[str]) -> list[str]:
        """Move chosen cards to their destination; returns help cards placed face-up."""
        player_id = selection.player_id
        deck = state.players[player_id].deck

        for card_id in selection.searched_cards:
            if card_id in deck.main_deck:
                deck.main_deck.remove(card_id)
        unchosen = list(selection.searched_cards)
        for card_id in chosen:
            unchosen.remove(card_id)

        placed_help = []
        for card_id in chosen:
            if self._place_searched(state, selection, card_id):
                placed_help.append(card_id)

        deck.main_deck.extend(unchosen)
        return placed_help

    def _place_searched(self, state: GameState, selection: PendingSelection, card_id: str) -> bool:
        player_id = selection.player_id
        destination = selection.destination
        card = self.catalog.get_card(card_id)

        if destination == SearchDestination.SP_ZONE.value and not state.zone(player_id, "sp"):
            self._place(state, player_id, card_id, "sp", face_down=True)
            state.events.append(EventType.CARD_MOVED_TO_SP_ZONE, {"playerId": player_id, "isFaceDown": True})
            return False

        if destination in (SearchDestination.HELP_ZONE.value, SearchDestination.CONDITIONAL_HELP_ZONE.value):
            if card is not None and card.is_help and not state.zone(player_id, "help"):
                self._place(state, player_id, card_id, "help", face_down=False)
                state.events.append(EventType.CARD_MOVED_TO_HELP_ZONE, {"playerId": player_id, "cardId": card_id})
                return True

        state.players[player_id].hand.append(card_id)
        state.events.append(EventType.CARD_MOVED_TO_HAND, {"playerId": player_id, "cardId": card_id})
        return False

    def _place(self, state: GameState, player_id: str, card_id: str, zone: str, face_down: bool):
        card = self.catalog.get_card(card_id)
        state.place(PlacedCard(
            card_id=card_id,
            owner=player_id,
            zone=zone,
            is_face_down=face_down,
            value_on_field=0 if face_down or card is None else card.power,
        ))
        state.play_sequence.append(
            player_id, card_id, PlayAction.PLAY_CARD, zone,
            data={"isFaceDown": face_down, "fromSearch": True},
            turn_number=state.current_turn,
            phase=state.phase.value,
        )

    def _resolve_field_target(self, state: GameState, selection: PendingSelection, chosen: list[str]):
        action = TARGET_RECORDS.get(selection.effect_type or "")
        if action is None:
            logger.warning("Selection %s has unsupported effect %s", selection.selection_id, selection.effect_type)
            return
        value = selection.effect_value
        if isinstance(value, dict):
            value = value.get("amount", 0)

        for card_id in chosen:
            target = selection.target_for(card_id)
            state.play_sequence.append(
                selection.player_id,
                selection.source_card_id,
                action,
                target["zone"],
                data={
                    "target_card_id": card_id,
                    "target_player_id": target["player_id"],
                    "target_zone": target["zone"],
                    "value": abs(int(value or 0)),
                    "effect_type": selection.effect_type,
                    "selection_id": selection.selection_id,
                },
                turn_number=state.current_turn,
                phase=state.phase.value,
            )
            if action == PlayAction.APPLY_NEUTRALIZATION:
                state.neutralization_history.append({
                    "source_card_id": selection.source_card_id,
                    "source_player_id": selection.player_id,
                    "target_card_id": card_id,
                    "target_player_id": target["player_id"],
                    "selection_id": selection.selection_id,
                    "turn": state.current_turn,
                })

    # =========================================================================
    # Timeout
    # =========================================================================

    def expired(self, state: GameState, timeout_seconds: float, now: float | None = None) -> list[PendingSelection]:
        now = time.time() if now is None else now
        return [s for s in state.pending_card_selections.values() if now - s.created_at >= timeout_seconds]

    def cancel(self, state: GameState, selection: PendingSelection, reason: str):
        """Discard a selection and report the cancellation."""
        self.close(state, selection.selection_id)
        if selection.is_deck_search:
            # Searched cards never left the deck; put them at the bottom
            deck = state.players[selection.player_id].deck
            for card_id in selection.searched_cards:
                if card_id in deck.main_deck:
                    deck.main_deck.remove(card_id)
            deck.main_deck.extend(selection.searched_cards)
        state.events.append(EventType.CARD_SELECTION_CANCELLED, {
            "playerId": selection.player_id,
            "selectionId": selection.selection_id,
            "reason": reason,
        })
        logger.warning("Selection %s cancelled: %s", selection.selection_id, reason)
