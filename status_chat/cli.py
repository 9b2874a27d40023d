"""Command-line interface for the status chat client"""

import argparse
import asyncio
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import orjson
from loguru import logger

from . import __version__
from .client import StatusChatClient
from .config import (
    AUTO_REFRESH_INTERVAL,
    BACKOFF_STEP,
    DEFAULT_ENDPOINT,
    DEFAULT_PREFS_FILE,
    DEFAULT_REQUEST_TIMEOUT,
    MAX_ATTEMPTS,
    RELAY_URL,
)
from .exceptions import InvalidEndpointError
from .feed import render_feed, user_count_text
from .logging_config import setup_logging
from .models import ErrorKind, ResultEnvelope
from .preferences import PreferenceStore
from .retry import RetryPolicy

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INVALID_ENDPOINT = 2


def _exit_code(result: ResultEnvelope) -> int:
    if result.success:
        return EXIT_OK
    if result.error_kind is ErrorKind.INVALID_ENDPOINT:
        return EXIT_INVALID_ENDPOINT
    return EXIT_FAILURE


def _print_json(result: ResultEnvelope) -> None:
    print(orjson.dumps(result.to_dict(), option=orjson.OPT_INDENT_2).decode())


async def run_health(client: StatusChatClient, as_json: bool = False) -> int:
    logger.info("⏳ Connecting to chat server...")
    result = await client.health_check()
    if as_json:
        _print_json(result)
    elif result.success:
        logger.success(f"✅ Connected to chat server (via {result.strategy_used.value})")
    else:
        logger.error(f"❌ Failed to connect to chat server: {result.error}")
    return _exit_code(result)


async def show_statuses(client: StatusChatClient, as_json: bool = False) -> int:
    result = await client.get_statuses()
    if as_json:
        _print_json(result)
        return _exit_code(result)

    if not result.success:
        logger.error(f"Failed to load statuses. {result.error}")
        return _exit_code(result)

    records = client.parse_statuses(result.data)
    for line in render_feed(records):
        print(line)
    logger.info(user_count_text(len(records)))
    logger.info(f"Last updated: {datetime.now().strftime('%H:%M:%S')}")
    return EXIT_OK


async def post_status(
    client: StatusChatClient,
    name: str,
    status: str,
    store: Optional[PreferenceStore] = None,
    as_json: bool = False,
) -> int:
    try:
        result = await client.update_status(name, status)
    except ValueError as e:
        logger.error(f"{e}")
        return EXIT_FAILURE

    if as_json:
        _print_json(result)
    if not result.success:
        logger.error(f"Failed to update status: {result.error}")
        return _exit_code(result)

    logger.success(f"✓ Status updated for {name.strip()}")
    if store is not None:
        await store.save_username(name)
    if as_json:
        return EXIT_OK
    # Show the feed with the new status in it; the post itself already succeeded
    await show_statuses(client)
    return EXIT_OK


async def watch_statuses(
    client: StatusChatClient,
    interval: float = AUTO_REFRESH_INTERVAL,
    iterations: Optional[int] = None,
    as_json: bool = False,
) -> int:
    """Refresh the feed every `interval` seconds, forever or `iterations` times"""
    code = EXIT_OK
    count = 0
    while iterations is None or count < iterations:
        if count:
            await asyncio.sleep(interval)
        code = await show_statuses(client, as_json=as_json)
        count += 1
        if code == EXIT_INVALID_ENDPOINT:
            break
    return code


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Live status chat client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Check the backend, then show the feed
  status-chat

  # Share what you're doing
  status-chat --post "Writing tests" --name alice

  # Poll the feed every 10 seconds
  status-chat --watch

  # Save a different backend URL
  status-chat --set-url https://script.google.com/macros/s/XYZ/exec
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    actions = parser.add_argument_group("Actions")
    mode = actions.add_mutually_exclusive_group()
    mode.add_argument("--health", action="store_true", help="Check backend liveness only")
    mode.add_argument("--list", action="store_true", help="Show the status feed once")
    mode.add_argument("--post", type=str, metavar="STATUS", help="Publish a status message")
    mode.add_argument("--watch", action="store_true", help="Auto-refresh the status feed")
    mode.add_argument("--set-url", type=str, metavar="URL", help="Validate and save the backend URL")
    actions.add_argument("--name", type=str, help="Your name (defaults to the saved one)")
    actions.add_argument(
        "--interval", type=float, default=AUTO_REFRESH_INTERVAL, help="Watch refresh interval (seconds)"
    )
    actions.add_argument("--iterations", type=int, help="Stop watching after N refreshes")

    transport = parser.add_argument_group("Transport")
    transport.add_argument("--url", type=str, help="Backend URL for this run only")
    transport.add_argument("--relay-url", type=str, default=RELAY_URL, help="CORS relay URL")
    transport.add_argument("--no-relay", action="store_true", help="Skip the relay strategy")
    transport.add_argument(
        "--timeout", type=float, default=DEFAULT_REQUEST_TIMEOUT, help="Per-attempt timeout (seconds)"
    )
    transport.add_argument(
        "--max-attempts", type=int, default=MAX_ATTEMPTS, help="Attempts per strategy"
    )
    transport.add_argument(
        "--backoff", type=float, default=BACKOFF_STEP, help="Backoff step between retries (seconds)"
    )
    transport.add_argument(
        "--no-retry-mutating",
        action="store_true",
        help="Send status updates at most once per strategy",
    )

    config_group = parser.add_argument_group("Configuration")
    config_group.add_argument("--prefs-file", type=str, help="Preferences file path")
    config_group.add_argument("--json", action="store_true", help="Print result envelopes as JSON")
    config_group.add_argument("--verbose", action="store_true", help="Debug logging")
    config_group.add_argument("--log-file", type=str, help="Log file path")
    return parser


async def run(args: argparse.Namespace) -> int:
    store = PreferenceStore(Path(args.prefs_file) if args.prefs_file else DEFAULT_PREFS_FILE)

    if args.set_url:
        try:
            await store.save_endpoint(args.set_url)
        except InvalidEndpointError as e:
            logger.error(f"Invalid URL format: {e}")
            return EXIT_INVALID_ENDPOINT
        return EXIT_OK

    prefs = await store.load()
    endpoint = args.url or prefs.endpoint or DEFAULT_ENDPOINT

    if args.max_attempts < 1:
        logger.error("--max-attempts must be at least 1")
        return EXIT_FAILURE
    if args.backoff < 0:
        logger.error("--backoff must not be negative")
        return EXIT_FAILURE

    client = StatusChatClient(
        endpoint=endpoint,
        timeout=args.timeout,
        relay_url=None if args.no_relay else args.relay_url,
        retry_policy=RetryPolicy(
            max_attempts=args.max_attempts,
            backoff_step=args.backoff,
            retry_mutating=not args.no_retry_mutating,
        ),
    )
    logger.debug(f"Using endpoint {client.endpoint}")

    async with client:
        if args.health:
            return await run_health(client, as_json=args.json)
        if args.list:
            return await show_statuses(client, as_json=args.json)
        if args.watch:
            return await watch_statuses(
                client, interval=args.interval, iterations=args.iterations, as_json=args.json
            )
        if args.post is not None:
            name = args.name or prefs.username
            if not name:
                logger.error("Please enter both your name and status message (--name)")
                return EXIT_FAILURE
            return await post_status(client, name, args.post, store=store, as_json=args.json)

        # Default: health check first, then the feed
        code = await run_health(client, as_json=args.json)
        if code != EXIT_OK:
            logger.error("Cannot connect to chat server. Check configuration.")
            return code
        return await show_statuses(client, as_json=args.json)


def main():
    parser = build_parser()
    args = parser.parse_args()

    log_file = Path(args.log_file) if args.log_file else None
    setup_logging(verbose=args.verbose, log_file=log_file, compact=args.watch)

    logger.debug(f"Status Chat v{__version__}")

    try:
        code = asyncio.run(run(args))
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        code = EXIT_FAILURE
    sys.exit(code)


if __name__ == "__main__":
    main()
