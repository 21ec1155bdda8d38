"""
Catalog - Static card, leader, combo and deck data.

The catalog is the engine's only source of card definitions. It is loaded
once, never mutated, and injected into every engine component.
"""

from .rules import (
    EffectRule,
    EffectType,
    RuleKind,
    TriggerEvent,
    Condition,
    Filter,
    RuleTarget,
    RuleEffect,
    SearchDestination,
)
from .catalog import (
    Catalog,
    CardDefinition,
    CardCategory,
    ComboDefinition,
    load_catalog,
    default_catalog,
)
from .decks import Deck, PlayerDecks, DecksCollection, load_decks
from .validation import (
    ValidationResult,
    CatalogValidationError,
    validate_catalog,
    validate_deck,
    validate_decks,
)

__all__ = [
    "EffectRule",
    "EffectType",
    "RuleKind",
    "TriggerEvent",
    "Condition",
    "Filter",
    "RuleTarget",
    "RuleEffect",
    "SearchDestination",
    "Catalog",
    "CardDefinition",
    "CardCategory",
    "ComboDefinition",
    "load_catalog",
    "default_catalog",
    "Deck",
    "PlayerDecks",
    "DecksCollection",
    "load_decks",
    "ValidationResult",
    "CatalogValidationError",
    "validate_catalog",
    "validate_deck",
    "validate_decks",
]
