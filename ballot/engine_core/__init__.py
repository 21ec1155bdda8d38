"""
Engine Core - Deterministic rules engine for two-player ballot battles.

The engine:
1. Holds the serializable GameState
2. Records every play in the PlaySequence
3. Replays the sequence into field effects (EffectSimulator)
4. Validates and commits placements, selections and passes
5. Drives turns, SP reveal and battle scoring
"""

from .state import GameState, PlayerState, PlacedCard, FieldEffects, Phase, RoomStatus
from .action import Action, ActionType, ActionPayload, ActionResult
from .errors import ErrorType, GameRuleError, SequenceCorruptedError
from .events import EventStream, EventType, GameEvent
from .play_sequence import PlaySequence, PlayRecord, PlayAction
from .settings import EngineSettings
from .effect_registry import EffectRegistry, TargetRef
from .effect_simulator import EffectSimulator
from .selection import SelectionManager, PendingSelection
from .card_action import CardAction
from .action_generator import ActionGenerator
from .battle import BattleResolver, BattleResult
from .turns import TurnManager
from .setup import GameSetup
from .orchestrator import GameOrchestrator, apply_action

__all__ = [
    "GameState",
    "PlayerState",
    "PlacedCard",
    "FieldEffects",
    "Phase",
    "RoomStatus",
    "Action",
    "ActionType",
    "ActionPayload",
    "ActionResult",
    "ErrorType",
    "GameRuleError",
    "SequenceCorruptedError",
    "EventStream",
    "EventType",
    "GameEvent",
    "PlaySequence",
    "PlayRecord",
    "PlayAction",
    "EngineSettings",
    "EffectRegistry",
    "TargetRef",
    "EffectSimulator",
    "SelectionManager",
    "PendingSelection",
    "CardAction",
    "ActionGenerator",
    "BattleResolver",
    "BattleResult",
    "TurnManager",
    "GameSetup",
    "GameOrchestrator",
    "apply_action",
]
