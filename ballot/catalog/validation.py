"""
Catalog Validation - Schema checks for card tables and decks.

Validates that:
1. Every leader declares zoneCompatibility for top/left/right
2. Rule metadata is consistent (search counts, selection effect types)
3. The combo table is complete
4. Decks reference real cards, with leaders in the leader list
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
import logging

from .catalog import Catalog, COMBO_KEYS
from .rules import EffectType, SELECTABLE_EFFECTS

if TYPE_CHECKING:
    from .decks import Deck, DecksCollection

logger = logging.getLogger(__name__)

ID_PREFIXES = {
    "character": "c-",
    "help": "h-",
    "sp": "sp-",
    "leader": "s-",
}


class CatalogValidationError(Exception):
    """Raised when catalog or deck validation fails."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Catalog validation failed with {len(errors)} error(s)")


@dataclass
class ValidationResult:
    """Result of validation, with errors and warnings."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def merge(self, other: ValidationResult) -> ValidationResult:
        return ValidationResult(
            valid=self.valid and other.valid,
            errors=self.errors + other.errors,
            warnings=self.warnings + other.warnings,
        )

    def raise_if_invalid(self):
        if not self.valid:
            raise CatalogValidationError(self.errors)


def validate_catalog(catalog: Catalog) -> ValidationResult:
    """
    Validate a loaded catalog.

    Returns ValidationResult with errors and warnings.
    """
    errors: list[str] = []
    warnings: list[str] = []

    for key in COMBO_KEYS:
        if key not in catalog.combos:
            warnings.append(f"Combo '{key}' missing from combo table (bonus 0)")

    for card in catalog.cards.values():
        prefix = ID_PREFIXES[card.category.value]
        if not card.id.startswith(prefix):
            warnings.append(f"Card {card.id} is a {card.category.value} but lacks prefix '{prefix}'")

        if card.power < 0:
            errors.append(f"Card {card.id} has negative power {card.power}")

        if card.is_leader:
            if not card.zone_compatibility:
                errors.append(f"Leader {card.id} has no zoneCompatibility")
            else:
                for zone in ("top", "left", "right"):
                    if not card.zone_compatibility.get(zone):
                        errors.append(f"Leader {card.id} zoneCompatibility missing '{zone}'")

        for rule in card.rules:
            effect = rule.effect
            if effect.effect_type == EffectType.SEARCH_CARD:
                if effect.search_count < 1:
                    errors.append(f"Rule {rule.rule_id}: searchCount must be >= 1")
                if effect.select_count > effect.search_count:
                    errors.append(f"Rule {rule.rule_id}: selectCount exceeds searchCount")
                if effect.destination is None:
                    errors.append(f"Rule {rule.rule_id}: searchCard needs a destination")
            if rule.target.requires_selection and effect.effect_type not in SELECTABLE_EFFECTS:
                errors.append(
                    f"Rule {rule.rule_id}: {effect.effect_type.value} cannot require a selection"
                )
            if rule.target.owner not in ("self", "opponent", "both"):
                errors.append(f"Rule {rule.rule_id}: unknown target owner '{rule.target.owner}'")

    return ValidationResult(valid=not errors, errors=errors, warnings=warnings)


def validate_deck(deck: Deck, catalog: Catalog | None = None) -> ValidationResult:
    """
    Validate a deck's shape and, when a catalog is given, its card references.
    """
    result = deck.validate()
    if catalog is None:
        return result

    errors: list[str] = []
    for card_id in deck.cards:
        card = catalog.cards.get(card_id)
        if card is None:
            errors.append(f"Deck {deck.id}: unknown card {card_id}")
        elif card.is_leader:
            errors.append(f"Deck {deck.id}: leader {card_id} listed in main cards")
    for leader_id in deck.leader:
        card = catalog.cards.get(leader_id)
        if card is None:
            errors.append(f"Deck {deck.id}: unknown leader {leader_id}")
        elif not card.is_leader:
            errors.append(f"Deck {deck.id}: {leader_id} is not a leader")

    return result.merge(ValidationResult(valid=not errors, errors=errors))


def validate_decks(collection: DecksCollection, catalog: Catalog) -> ValidationResult:
    """Validate every deck of every player."""
    result = ValidationResult(valid=True)
    for player_id, player_decks in collection.players.items():
        if player_decks.active_deck not in player_decks.decks:
            result = result.merge(ValidationResult(
                valid=False,
                errors=[f"Player {player_id}: active deck {player_decks.active_deck} not found"],
            ))
        for deck in player_decks.decks.values():
            deck_result = validate_deck(deck, catalog)
            if not deck_result.valid:
                logger.warning("Deck %s of %s failed validation: %s", deck.id, player_id, deck_result.errors)
            result = result.merge(deck_result)
    return result
