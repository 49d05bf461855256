#!/usr/bin/env python3
"""Twosense connector CLI.

Command-line tool for querying the Twosense Web API and running poll
cycles from cron or any other scheduler.

Usage:
    twosense_sync.py --poll                              # One poll cycle (cursor persisted)
    twosense_sync.py --historical --since 2026-10-01T00:00:00Z [--until ...]
    twosense_sync.py --session 82299c01-aec1-4b41-015f-a876cb22255d
    twosense_sync.py --trust-score 'DOMAIN\\username'
    twosense_sync.py --status                            # Show stored cursor

Results are written to stdout as JSON lines, logs go to stderr.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from twosense.client import TwosenseClient
from twosense.config import get_config
from twosense.errors import TwosenseError
from twosense.logging_config import configure_logging
from twosense.metrics import push_metrics
from twosense.state import CursorStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Query Twosense events, sessions and trust scores",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Configuration (environment or .env):
    TWOSENSE_BASE_URL=https://webapi.twosense.ai
    TWOSENSE_CLIENT_ID=...
    TWOSENSE_CLIENT_SECRET=...
    TWOSENSE_STATE_DIR=~/.twosense/state
    TWOSENSE_POLL_INSTANCE=default
        """,
    )

    action = parser.add_mutually_exclusive_group(required=True)
    action.add_argument("--poll", action="store_true", help="Run one poll cycle")
    action.add_argument(
        "--historical", action="store_true", help="Fetch events in a time range"
    )
    action.add_argument("--session", metavar="SESSION_ID", help="Look up a session")
    action.add_argument(
        "--trust-score", metavar="USERNAME", help="Look up a user's trust score"
    )
    action.add_argument(
        "--status", action="store_true", help="Show the stored poll cursor and exit"
    )

    parser.add_argument("--since", help="Start of the range (ISO 8601), with --historical")
    parser.add_argument(
        "--until", help="End of the range (ISO 8601), default now, with --historical"
    )
    parser.add_argument(
        "--instance", help="Poll instance key (overrides TWOSENSE_POLL_INSTANCE)"
    )
    return parser


def main():
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if args.historical and not args.since:
        parser.error("--historical requires --since")

    try:
        config = get_config()
    except Exception as e:
        print(f"Error: Failed to load configuration: {e}", file=sys.stderr)
        sys.exit(1)

    configure_logging(config.log_level, config.log_format)
    store = CursorStore(config.state_dir, args.instance or config.poll_instance)

    if args.status:
        show_status(store)
        return

    try:
        exit_code = asyncio.run(run(args, config, store))
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        sys.exit(130)
    except TwosenseError as e:
        print(f"Error: {e}", file=sys.stderr)
        exit_code = 1
    except Exception as e:
        print(f"Error: {type(e).__name__}: {e}", file=sys.stderr)
        exit_code = 1
    finally:
        if config.pushgateway_url:
            push_metrics(config.pushgateway_url, instance=store.instance)

    if exit_code:
        sys.exit(exit_code)


async def run(args, config, store: CursorStore) -> int:
    """Execute the selected action.

    Returns:
        Process exit code
    """
    async with TwosenseClient.from_config(config) as client:
        if args.historical:
            events = await client.get_historical_events(args.since, args.until)
            emit(events)
            return 0

        if args.session:
            outcome = await client.get_session(args.session)
            emit([outcome.to_dict()])
            return 0

        if args.trust_score:
            outcome = await client.get_trust_score(args.trust_score)
            emit([outcome.to_dict()])
            return 0

        # --poll: persist only after the cycle returned and its events were written
        result = await client.poll(store.load())
        emit(result.events)
        if result.state.last_event_time != store.load().last_event_time:
            store.save(result.state)
        print(
            f"Poll {result.outcome}: {len(result.events)} events, "
            f"cursor={result.state.last_event_time}",
            file=sys.stderr,
        )
        return 0


def emit(items):
    for item in items:
        print(json.dumps(item, default=str))


def show_status(store: CursorStore):
    """Display the stored cursor for a poll instance."""
    raw = store.load_raw()

    print("Twosense Poll Status")
    print("=" * 50)
    print(f"Instance: {store.instance}")
    print(f"State file: {store.state_file}")
    print()

    if not raw:
        print("No cursor stored (next poll initializes it to the current time)")
        return

    print(f"lastEventTime: {raw.get('lastEventTime') or 'null'}")
    print(f"updated_at: {raw.get('updated_at', 'unknown')}")


if __name__ == "__main__":
    main()
