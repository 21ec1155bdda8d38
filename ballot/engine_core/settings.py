"""
Engine Settings - Tunable rule constants.

Defaults match the published rules; each can be overridden from the
environment (BALLOT_VICTORY_THRESHOLD, BALLOT_EVENT_TTL_MS, BALLOT_HAND_SIZE,
BALLOT_SELECTION_TIMEOUT).
"""

from __future__ import annotations
from dataclasses import dataclass
import os


@dataclass(frozen=True)
class EngineSettings:
    victory_threshold: int = 50
    event_ttl_ms: int = 3000
    initial_hand_size: int = 7
    selection_timeout_seconds: float = 60.0

    @classmethod
    def from_env(cls) -> EngineSettings:
        defaults = cls()
        return cls(
            victory_threshold=int(os.getenv("BALLOT_VICTORY_THRESHOLD", defaults.victory_threshold)),
            event_ttl_ms=int(os.getenv("BALLOT_EVENT_TTL_MS", defaults.event_ttl_ms)),
            initial_hand_size=int(os.getenv("BALLOT_HAND_SIZE", defaults.initial_hand_size)),
            selection_timeout_seconds=float(
                os.getenv("BALLOT_SELECTION_TIMEOUT", defaults.selection_timeout_seconds)
            ),
        )
