"""
Ballot - Political Card Game Rules Engine

A deterministic, replay-based rules engine for a two-player card game.
Every field effect is recomputed from the play sequence, and the engine provides:
- Placement validation and turn flow
- Effect simulation and battle resolution
- Card selection (deck search and field targeting)
- Rooms and a REST API for game clients
"""

__version__ = "0.1.0"
