"""
Card Catalog - Immutable card, leader and combo definitions.

The catalog is loaded once at startup and shared read-only by every game.
It answers:
- card lookups by ID (missing IDs log a warning and return None)
- the current leader of a player deck
- the combo bonus table used by battle scoring
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, TYPE_CHECKING
import json
import logging

from .rules import EffectRule, parse_rules

if TYPE_CHECKING:
    from ..engine_core.state import PlayerDeck

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent / "data"

CHARACTER_FILE = "characterCards.json"
UTILITY_FILE = "utilityCards.json"
LEADER_FILE = "leaderCards.json"

# Trait that satisfies every zone restriction
UNIVERSAL_TRAIT = "all"

COMBO_KEYS = (
    "all_same_type",
    "all_different_type",
    "high_power_trio",
    "trait_synergy",
    "balanced_power",
)


class CardCategory(Enum):
    """Card categories."""
    CHARACTER = "character"
    HELP = "help"
    SP = "sp"
    LEADER = "leader"


@dataclass(frozen=True)
class CardDefinition:
    """
    Immutable definition of a card.

    Note: Placed cards on the field hold only the card ID and
    look the definition up here.
    """
    id: str
    name: str
    category: CardCategory
    game_type: str = ""
    power: int = 0
    traits: tuple[str, ...] = ()
    rules: tuple[EffectRule, ...] = ()
    description: str = ""

    # Leaders only
    initial_point: int = 0
    zone_compatibility: dict[str, tuple[str, ...]] | None = None

    @property
    def is_character(self) -> bool:
        return self.category == CardCategory.CHARACTER

    @property
    def is_help(self) -> bool:
        return self.category == CardCategory.HELP

    @property
    def is_sp(self) -> bool:
        return self.category == CardCategory.SP

    @property
    def is_leader(self) -> bool:
        return self.category == CardCategory.LEADER

    @property
    def immune_to_neutralization(self) -> bool:
        return any(rule.immune_to_neutralization for rule in self.rules)

    @classmethod
    def from_dict(cls, data: dict[str, Any], default_category: str | None = None) -> CardDefinition:
        card_id = data["id"]
        compatibility = data.get("zoneCompatibility")
        return cls(
            id=card_id,
            name=data.get("name", card_id),
            category=CardCategory(data.get("cardType", default_category)),
            game_type=data.get("gameType", ""),
            power=int(data.get("power", 0)),
            traits=tuple(data.get("traits", [])),
            rules=parse_rules(card_id, data.get("effects")),
            description=data.get("description", ""),
            initial_point=int(data.get("initialPoint", 0)),
            zone_compatibility=(
                {zone.lower(): tuple(tags) for zone, tags in compatibility.items()}
                if compatibility else None
            ),
        )


@dataclass(frozen=True)
class ComboDefinition:
    key: str
    name: str
    bonus: int
    description: str = ""


@dataclass
class Catalog:
    """
    Process-wide card catalog.

    Usage:
        catalog = load_catalog()
        card = catalog.get_card("c-1")
        if card is None:
            ...  # unknown card, already logged
    """
    cards: dict[str, CardDefinition] = field(default_factory=dict)
    combos: dict[str, ComboDefinition] = field(default_factory=dict)

    def get_card(self, card_id: str) -> CardDefinition | None:
        """Look up a card; unknown IDs return None with a warning."""
        card = self.cards.get(card_id)
        if card is None:
            logger.warning("Card not found in catalog: %s", card_id)
        return card

    def has_card(self, card_id: str) -> bool:
        return card_id in self.cards

    def effects_of(self, card_id: str) -> tuple[EffectRule, ...]:
        card = self.get_card(card_id)
        return card.rules if card else ()

    def current_leader(self, deck: PlayerDeck) -> CardDefinition | None:
        """The leader at the deck's current leader index."""
        leader_id = deck.current_leader_id
        if leader_id is None:
            return None
        return self.get_card(leader_id)

    @property
    def leaders(self) -> list[CardDefinition]:
        return [c for c in self.cards.values() if c.is_leader]

    @property
    def factions(self) -> tuple[str, ...]:
        """Every faction tag used by a character card, sorted."""
        return tuple(sorted({c.game_type for c in self.cards.values() if c.is_character and c.game_type}))

    def combo_bonus(self, key: str) -> int:
        combo = self.combos.get(key)
        return combo.bonus if combo else 0

    @classmethod
    def from_tables(
        cls,
        character_table: dict[str, Any],
        utility_table: dict[str, Any],
        leader_table: dict[str, Any],
    ) -> Catalog:
        """Build a catalog from the three raw JSON tables."""
        cards: dict[str, CardDefinition] = {}
        for card_id, data in _iter_cards(character_table.get("cards", {})):
            cards[card_id] = CardDefinition.from_dict(data, default_category="character")
        for card_id, data in _iter_cards(utility_table.get("cards", {})):
            cards[card_id] = CardDefinition.from_dict(data)
        for card_id, data in _iter_cards(leader_table.get("leaders", {})):
            cards[card_id] = CardDefinition.from_dict(data, default_category="leader")

        combos = {
            key: ComboDefinition(
                key=key,
                name=combo.get("name", key),
                bonus=int(combo.get("bonus", 0)),
                description=combo.get("description", ""),
            )
            for key, combo in character_table.get("combos", {}).items()
        }
        return cls(cards=cards, combos=combos)


def _iter_cards(table: dict[str, Any] | list[dict[str, Any]]):
    """Tables are keyed by card ID; plain lists are accepted too."""
    if isinstance(table, list):
        for data in table:
            yield data["id"], data
        return
    for card_id, data in table.items():
        yield card_id, {"id": card_id, **data}


def _read_json(path: Path) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_catalog(data_dir: str | Path | None = None) -> Catalog:
    """
    Load the catalog from a directory holding the three card tables.

    Defaults to the data files shipped with the package.
    """
    data_dir = Path(data_dir) if data_dir else DATA_DIR
    catalog = Catalog.from_tables(
        _read_json(data_dir / CHARACTER_FILE),
        _read_json(data_dir / UTILITY_FILE),
        _read_json(data_dir / LEADER_FILE),
    )
    logger.info(
        "Loaded catalog from %s: %d cards, %d combos",
        data_dir, len(catalog.cards), len(catalog.combos),
    )
    return catalog


@lru_cache(maxsize=None)
def default_catalog() -> Catalog:
    """The shared catalog built from the packaged data files."""
    return load_catalog()
