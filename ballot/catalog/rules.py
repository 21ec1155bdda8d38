"""
Effect Rules - Declarative card effect records.

Every card effect is data, never code. A rule is:
- kind: continuous (always in force) or triggered (fires on an event)
- trigger: the event plus the conditions that must all hold
- target: which player's cards are affected (owner, zones, filters, limit)
- effect: a fixed effect type with a value and optional metadata

Key design decisions:
- Effect types are a closed enumeration; the engine dispatches on them
- Conditions and filters are plain records evaluated by the EffectRegistry
- Rules parse from the camelCase JSON used by the card catalog files
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any


class RuleKind(Enum):
    """How long a rule stays in force."""
    CONTINUOUS = "continuous"
    TRIGGERED = "triggered"


class TriggerEvent(Enum):
    """Events that activate a rule."""
    ALWAYS = "always"
    ON_SUMMON = "onSummon"  # Character placed face-up
    ON_PLAY = "onPlay"  # Help card placed face-up
    SP_PHASE = "spPhase"  # SP card revealed
    FINAL_CALCULATION = "finalCalculation"  # After combo bonuses


class EffectType(Enum):
    """Every effect the engine knows how to apply."""
    POWER_BOOST = "powerBoost"
    POWER_NERF = "powerNerf"
    SET_POWER = "setPower"
    MODIFY_POWER = "modifyPower"
    NEUTRALIZE_EFFECT = "neutralizeEffect"
    SILENCE_ON_SUMMON = "silenceOnSummon"
    ZONE_PLACEMENT_FREEDOM = "zonePlacementFreedom"
    DISABLE_COMBO_BONUS = "disableComboBonus"
    TOTAL_POWER_NERF = "totalPowerNerf"
    DRAW_CARD = "drawCard"
    DISCARD_RANDOM_CARD = "discardRandomCard"
    SEARCH_CARD = "searchCard"
    FORCE_PLAY_SP = "forcePlaySP"
    PREVENT_PLAY = "preventPlay"
    ZONE_RESTRICTION = "zoneRestriction"


# Older catalog files spell a few effect types differently
EFFECT_TYPE_ALIASES = {
    "drawCards": "drawCard",
    "preventSummon": "zoneRestriction",
}

# Effects resolved once at the moment they fire; replay never re-runs them
CONSUMABLE_EFFECTS = frozenset({
    EffectType.DRAW_CARD,
    EffectType.DISCARD_RANDOM_CARD,
    EffectType.SEARCH_CARD,
})

# Effects that act on individual placed cards rather than on a player
CARD_TARGET_EFFECTS = frozenset({
    EffectType.POWER_BOOST,
    EffectType.POWER_NERF,
    EffectType.SET_POWER,
    EffectType.MODIFY_POWER,
    EffectType.NEUTRALIZE_EFFECT,
})

# Effect types a field-target selection can carry
SELECTABLE_EFFECTS = frozenset({
    EffectType.NEUTRALIZE_EFFECT,
    EffectType.SET_POWER,
    EffectType.POWER_BOOST,
    EffectType.POWER_NERF,
})


class SearchDestination(Enum):
    """Where a card chosen from a deck search goes."""
    HAND = "hand"
    SP_ZONE = "spZone"
    HELP_ZONE = "helpZone"
    CONDITIONAL_HELP_ZONE = "conditionalHelpZone"


@dataclass(frozen=True)
class Condition:
    """
    A single rule condition.

    Examples:
        Condition(condition_type="opponentLeader", value="鮑威爾")
        Condition(condition_type="opponentHandCount", operator=">=", value=5)
        Condition(condition_type="or", conditions=(...,))
    """
    condition_type: str
    value: Any = None
    operator: str | None = None
    zone: str | None = None
    owner: str = "self"
    conditions: tuple[Condition, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Condition:
        return cls(
            condition_type=data["type"],
            value=data.get("value"),
            operator=data.get("operator"),
            zone=data.get("zone"),
            owner=data.get("owner", "self"),
            conditions=tuple(cls.from_dict(c) for c in data.get("conditions", [])),
        )


@dataclass(frozen=True)
class Filter:
    """A target filter: hasTrait, hasGameType or gameTypeOr."""
    filter_type: str
    value: Any = None

    @property
    def values(self) -> tuple[str, ...]:
        """The filter value as a tuple of strings."""
        if self.value is None:
            return ()
        if isinstance(self.value, (list, tuple)):
            return tuple(self.value)
        return (self.value,)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Filter:
        return cls(filter_type=data["type"], value=data.get("value", data.get("values")))


@dataclass(frozen=True)
class Trigger:
    event: TriggerEvent = TriggerEvent.ALWAYS
    conditions: tuple[Condition, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Trigger:
        data = data or {}
        return cls(
            event=TriggerEvent(data.get("event", "always")),
            conditions=tuple(Condition.from_dict(c) for c in data.get("conditions", [])),
        )


@dataclass(frozen=True)
class RuleTarget:
    """
    Which placed cards (or players) a rule acts on.

    owner is relative to the player who owns the source card.
    """
    owner: str = "self"  # "self", "opponent" or "both"
    zones: tuple[str, ...] = ("top", "left", "right")
    filters: tuple[Filter, ...] = ()
    limit: int | None = None
    requires_selection: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> RuleTarget:
        data = data or {}
        zones = data.get("zones")
        return cls(
            owner=data.get("owner", "self"),
            zones=tuple(z.lower() for z in zones) if zones else ("top", "left", "right"),
            filters=tuple(Filter.from_dict(f) for f in data.get("filters", [])),
            limit=data.get("limit"),
            requires_selection=bool(data.get("requiresSelection", False)),
        )


@dataclass(frozen=True)
class RuleEffect:
    """The effect half of a rule: type, value and optional metadata."""
    effect_type: EffectType
    value: Any = None

    # Deck search metadata
    destination: SearchDestination | None = None
    search_count: int = 0
    select_count: int = 1
    card_type_filter: str | None = None

    # Zone restriction metadata
    restricted_types: tuple[str, ...] = ()

    @property
    def amount(self) -> int:
        """Numeric value, defaulting to 0."""
        if isinstance(self.value, bool) or self.value is None:
            return 0
        if isinstance(self.value, dict):
            return int(self.value.get("amount", 0))
        return int(self.value)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RuleEffect:
        raw_type = data["type"]
        raw_type = EFFECT_TYPE_ALIASES.get(raw_type, raw_type)
        destination = data.get("destination")
        return cls(
            effect_type=EffectType(raw_type),
            value=data.get("value"),
            destination=SearchDestination(destination) if destination else None,
            search_count=int(data.get("searchCount", 0)),
            select_count=int(data.get("selectCount", 1)),
            card_type_filter=data.get("cardTypeFilter"),
            restricted_types=tuple(data.get("restrictedTypes", [])),
        )


@dataclass(frozen=True)
class EffectRule:
    """
    A complete declarative effect rule attached to a card.

    unremovable rules survive neutralization; immune_to_neutralization
    protects the card carrying the rule from being neutralized at all.
    """
    rule_id: str
    kind: RuleKind
    trigger: Trigger
    target: RuleTarget
    effect: RuleEffect
    description: str = ""
    unremovable: bool = False
    immune_to_neutralization: bool = False

    @property
    def effect_type(self) -> EffectType:
        return self.effect.effect_type

    @property
    def is_continuous(self) -> bool:
        return self.kind == RuleKind.CONTINUOUS

    @classmethod
    def from_dict(cls, data: dict[str, Any], card_id: str = "", index: int = 0) -> EffectRule:
        return cls(
            rule_id=data.get("id") or f"{card_id}_rule_{index}",
            kind=RuleKind(data.get("type", "continuous")),
            trigger=Trigger.from_dict(data.get("trigger")),
            target=RuleTarget.from_dict(data.get("target")),
            effect=RuleEffect.from_dict(data["effect"]),
            description=data.get("description", ""),
            unremovable=bool(data.get("unremovable", False)),
            immune_to_neutralization=bool(data.get("immuneToNeutralization", False)),
        )


def parse_rules(card_id: str, effects: dict[str, Any] | None) -> tuple[EffectRule, ...]:
    """Parse the `effects.rules` block of a catalog card."""
    if not effects:
        return ()
    return tuple(
        EffectRule.from_dict(rule, card_id=card_id, index=i)
        for i, rule in enumerate(effects.get("rules", []))
    )
