"""
Deck Model - Player deck definitions loaded from decks.json.

A deck is a list of main cards plus an ordered list of leaders. Leaders are
fought in order, one per round.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
import json
import logging

from .validation import ValidationResult

logger = logging.getLogger(__name__)

DECKS_FILE = Path(__file__).parent / "data" / "decks.json"

DEFAULT_MIN_CARDS = 20
DEFAULT_MAX_CARDS = 30


@dataclass
class Deck:
    """
    A single deck.

    Examples:
        Deck(id="deck_right", name="美國優先", cards=[...], leader=["s-1", "s-3"])
    """
    id: str
    name: str
    cards: list[str] = field(default_factory=list)
    leader: list[str] = field(default_factory=list)
    min_cards: int = DEFAULT_MIN_CARDS
    max_cards: int = DEFAULT_MAX_CARDS

    def validate(self) -> ValidationResult:
        errors: list[str] = []
        if not self.id:
            errors.append("Deck ID is required")
        if not self.name:
            errors.append("Deck name is required")
        if len(self.cards) < self.min_cards:
            errors.append(f"Deck must have at least {self.min_cards} cards, has {len(self.cards)}")
        if len(self.cards) > self.max_cards:
            errors.append(f"Deck cannot have more than {self.max_cards} cards, has {len(self.cards)}")
        if not self.leader:
            errors.append("Deck must have at least one leader card")

        duplicates = _duplicates(self.cards)
        if duplicates:
            errors.append(f"Deck contains duplicate cards: {', '.join(duplicates)}")
        duplicate_leaders = _duplicates(self.leader)
        if duplicate_leaders:
            errors.append(f"Deck contains duplicate leaders: {', '.join(duplicate_leaders)}")

        return ValidationResult(valid=not errors, errors=errors)

    def stats(self) -> dict[str, int]:
        """Card counts by category, derived from the ID prefix."""
        return {
            "total": len(self.cards),
            "characters": sum(1 for c in self.cards if c.startswith("c-")),
            "help": sum(1 for c in self.cards if c.startswith("h-")),
            "sp": sum(1 for c in self.cards if c.startswith("sp-")),
            "leaders": len(self.leader),
        }

    def clone(self) -> Deck:
        return Deck.from_dict(self.to_dict())

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "cards": list(self.cards),
            "leader": list(self.leader),
            "minCards": self.min_cards,
            "maxCards": self.max_cards,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Deck:
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            cards=list(data.get("cards", [])),
            leader=list(data.get("leader", [])),
            min_cards=int(data.get("minCards", DEFAULT_MIN_CARDS)),
            max_cards=int(data.get("maxCards", DEFAULT_MAX_CARDS)),
        )


@dataclass
class PlayerDecks:
    """All decks owned by one player, plus which one is active."""
    player_id: str
    active_deck: str
    decks: dict[str, Deck] = field(default_factory=dict)

    def active(self) -> Deck | None:
        return self.decks.get(self.active_deck)

    def to_dict(self) -> dict[str, Any]:
        return {
            "activeDeck": self.active_deck,
            "decks": {deck_id: deck.to_dict() for deck_id, deck in self.decks.items()},
        }

    @classmethod
    def from_dict(cls, player_id: str, data: dict[str, Any]) -> PlayerDecks:
        decks = {
            deck_id: Deck.from_dict({"id": deck_id, **deck})
            for deck_id, deck in data.get("decks", {}).items()
        }
        return cls(
            player_id=player_id,
            active_deck=data.get("activeDeck", next(iter(decks), "")),
            decks=decks,
        )


@dataclass
class DecksCollection:
    players: dict[str, PlayerDecks] = field(default_factory=dict)

    def get(self, player_id: str) -> PlayerDecks | None:
        return self.players.get(player_id)

    def active_deck(self, player_id: str) -> Deck | None:
        player_decks = self.players.get(player_id)
        return player_decks.active() if player_decks else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "playerDecks": {pid: decks.to_dict() for pid, decks in self.players.items()}
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DecksCollection:
        return cls(players={
            player_id: PlayerDecks.from_dict(player_id, player_data)
            for player_id, player_data in data.get("playerDecks", {}).items()
        })


def load_decks(path: str | Path | None = None) -> DecksCollection:
    """Load decks.json (defaults to the packaged file)."""
    path = Path(path) if path else DECKS_FILE
    with open(path, "r", encoding="utf-8") as f:
        collection = DecksCollection.from_dict(json.load(f))
    logger.info("Loaded decks for %d player(s) from %s", len(collection.players), path)
    return collection


def _duplicates(items: list[str]) -> list[str]:
    seen: set[str] = set()
    duplicates: list[str] = []
    for item in items:
        if item in seen and item not in duplicates:
            duplicates.append(item)
        seen.add(item)
    return duplicates
