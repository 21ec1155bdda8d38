"""
Tests for the card catalog, rule parsing and deck validation.
"""

import pytest

from ..catalog import (
    CardCategory,
    CatalogValidationError,
    Deck,
    EffectType,
    RuleKind,
    SearchDestination,
    TriggerEvent,
    load_decks,
    validate_catalog,
    validate_deck,
    validate_decks,
)
from ..catalog.rules import parse_rules


class TestCatalog:
    """Card lookups against the packaged data."""

    def test_leader_has_zone_compatibility(self, catalog):
        """Leaders carry per-zone faction lists."""
        leader = catalog.get_card("s-1")
        assert leader.is_leader
        assert leader.initial_point == 2
        assert list(leader.zone_compatibility["top"]) == ["右翼", "自由", "經濟"]

    def test_unknown_card_returns_none(self, catalog):
        assert catalog.get_card("c-999") is None
        assert not catalog.has_card("c-999")

    def test_categories(self, catalog):
        assert catalog.get_card("c-1").category == CardCategory.CHARACTER
        assert catalog.get_card("h-1").category == CardCategory.HELP
        assert catalog.get_card("sp-1").category == CardCategory.SP

    def test_factions_come_from_characters(self, catalog):
        factions = catalog.factions
        assert "右翼" in factions
        assert "左翼" in factions
        assert list(factions) == sorted(factions)

    def test_combo_bonus_unknown_key_is_zero(self, catalog):
        assert catalog.combo_bonus("no_such_combo") == 0

    def test_packaged_catalog_is_valid(self, catalog):
        result = validate_catalog(catalog)
        assert result.valid, result.errors


class TestRuleParsing:
    """Effect rules parsed from card JSON."""

    def test_search_rule(self, catalog):
        rule = catalog.effects_of("c-22")[0]
        assert rule.kind == RuleKind.TRIGGERED
        assert rule.trigger.event == TriggerEvent.ON_SUMMON
        assert rule.effect_type == EffectType.SEARCH_CARD
        assert rule.effect.search_count == 3
        assert rule.effect.select_count == 1
        assert rule.effect.destination == SearchDestination.SP_ZONE
        assert rule.effect.card_type_filter == "sp"

    def test_selection_rule(self, catalog):
        rule = catalog.effects_of("h-2")[0]
        assert rule.target.owner == "opponent"
        assert rule.target.requires_selection
        assert rule.effect_type == EffectType.SET_POWER

    def test_effect_type_alias(self):
        """Older spellings map onto current effect types."""
        rules = parse_rules("h-x", {"rules": [{
            "id": "h-x_draw",
            "type": "triggered",
            "trigger": {"event": "onPlay"},
            "target": {"owner": "self"},
            "effect": {"type": "drawCards", "value": 1},
        }]})
        assert rules[0].effect_type == EffectType.DRAW_CARD

    def test_no_effects(self):
        assert parse_rules("c-x", None) == ()


class TestDecks:
    """Deck loading and validation."""

    def test_active_decks(self, decks):
        assert decks.active_deck("playerId_1").id == "deck_right"
        assert decks.active_deck("playerId_2").leader == ["s-2", "s-4", "s-5"]
        assert decks.active_deck("nobody") is None

    def test_packaged_decks_are_valid(self, decks, catalog):
        result = validate_decks(decks, catalog)
        assert result.valid, result.errors

    def test_clone_does_not_alias(self, decks):
        deck = decks.active_deck("playerId_1")
        copy = deck.clone()
        copy.cards.pop()
        copy.leader.append("s-2")
        assert len(deck.cards) == len(copy.cards) + 1
        assert "s-2" not in deck.leader

    def test_unknown_card_and_leader(self, catalog):
        deck = Deck(
            id="bad",
            name="Bad",
            cards=["c-1", "c-999"] + [f"c-{i}" for i in range(2, 21)],
            leader=["s-1", "c-1"],
        )
        result = validate_deck(deck, catalog)
        assert not result.valid
        assert any("unknown card c-999" in e for e in result.errors)
        assert any("c-1 is not a leader" in e for e in result.errors)

    def test_shape_errors(self):
        deck = Deck(id="small", name="Small", cards=["c-1", "c-1"], leader=[])
        result = deck.validate()
        assert not result.valid
        assert any("at least 20" in e for e in result.errors)
        assert any("duplicate cards" in e for e in result.errors)
        assert any("leader" in e for e in result.errors)
        with pytest.raises(CatalogValidationError):
            result.raise_if_invalid()

    def test_stats(self, decks):
        stats = decks.active_deck("playerId_1").stats()
        assert stats["total"] == stats["characters"] + stats["help"] + stats["sp"]
        assert stats["leaders"] == 3

    def test_load_from_path(self, tmp_path):
        path = tmp_path / "decks.json"
        path.write_text(
            '{"playerDecks": {"p": {"activeDeck": "d", "decks": {"d": {"name": "D", "cards": ["c-1"], "leader": ["s-1"]}}}}}',
            encoding="utf-8",
        )
        collection = load_decks(path)
        assert collection.active_deck("p").id == "d"
