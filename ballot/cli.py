"""
Ballot CLI - Command-line interface for the engine.

Usage:
    ballot serve [--host H] [--port P]     Run the REST API with uvicorn
    ballot validate [--data-dir D]         Validate the card catalog and decks
    ballot scenario <id>                   Print a canned game state as JSON
    ballot replay <state_file>             Re-run the simulator over a saved state
"""

import argparse
import json
import logging
import os
import sys


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Ballot - Political Card Game Rules Engine",
        prog="ballot",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the REST API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    # Validate command
    validate_parser = subparsers.add_parser("validate", help="Validate catalog and decks")
    validate_parser.add_argument("--data-dir", help="Catalog directory (defaults to packaged data)")
    validate_parser.add_argument("--decks", help="Path to decks.json (defaults to packaged file)")

    # Scenario command
    scenario_parser = subparsers.add_parser("scenario", help="Print a canned game state")
    scenario_parser.add_argument("scenario_id", help="Scenario name, e.g. simple_test")

    # Replay command
    replay_parser = subparsers.add_parser("replay", help="Recompute fieldEffects for a saved state")
    replay_parser.add_argument("state_file", help="Path to a saved game state JSON")

    args = parser.parse_args(argv)

    if args.command == "serve":
        cmd_serve(args)
    elif args.command == "validate":
        cmd_validate(args)
    elif args.command == "scenario":
        cmd_scenario(args)
    elif args.command == "replay":
        cmd_replay(args)
    else:
        parser.print_help()
        sys.exit(1)


def cmd_serve(args):
    """Run the API server."""
    try:
        import uvicorn
    except ImportError:
        raise ImportError("uvicorn not installed. Install with: pip install fastapi uvicorn")

    level = os.getenv("BALLOT_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run("ballot.api.app:app", host=args.host, port=args.port, reload=args.reload)


def cmd_validate(args):
    """Validate the catalog and every deck against it."""
    from .catalog import load_catalog, load_decks, validate_catalog, validate_decks

    catalog = load_catalog(args.data_dir)
    decks = load_decks(args.decks)

    result = validate_catalog(catalog).merge(validate_decks(decks, catalog))

    print(f"Cards: {len(catalog.cards)}")
    print(f"Combos: {len(catalog.combos)}")
    print(f"Players with decks: {len(decks.players)}")

    if result.warnings:
        print("\nWarnings:")
        for w in result.warnings:
            print(f"  - {w}")

    if result.errors:
        print("\nErrors:")
        for e in result.errors:
            print(f"  - {e}")
        sys.exit(1)

    print("\nOK")


def cmd_scenario(args):
    """Print a canned state, with fieldEffects computed."""
    from .engine_core.orchestrator import GameOrchestrator
    from .session import SCENARIOS, build_scenario

    state = build_scenario(args.scenario_id)
    if state is None:
        print(f"Error: Unknown scenario: {args.scenario_id}")
        print(f"Available: {', '.join(sorted(SCENARIOS))}")
        sys.exit(1)

    state = GameOrchestrator().reconcile(state)
    print(json.dumps(state.to_dict(), ensure_ascii=False, indent=2))


def cmd_replay(args):
    """Replay a saved state's play sequence and print each player's fieldEffects."""
    from .engine_core.effect_simulator import EffectSimulator
    from .engine_core.errors import SequenceCorruptedError
    from .engine_core.state import GameState
    from .catalog import default_catalog

    try:
        with open(args.state_file, "r", encoding="utf-8") as f:
            state = GameState.from_dict(json.load(f))
    except FileNotFoundError:
        print(f"Error: File not found: {args.state_file}")
        sys.exit(1)

    try:
        effects = EffectSimulator(default_catalog()).simulate(state)
    except SequenceCorruptedError as e:
        print(f"Error: {e.message}")
        sys.exit(1)

    print(json.dumps(
        {pid: fe.to_dict() for pid, fe in effects.items()},
        ensure_ascii=False,
        indent=2,
    ))


if __name__ == "__main__":
    main()
