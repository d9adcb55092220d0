"""
gymdesk/kiosk.py

Purpose: Console front-desk scan station

- Reads lines from a keyboard-wedge scanner (stdin)
- Feeds them through the scan input handler and dispatcher
- Prints the outcome of each scan

Usage:
    python -m gymdesk.kiosk --mode auto
"""

import argparse
import asyncio
import sys

from gymdesk.core.config import settings, validate_settings
from gymdesk.core.logging import setup_logging, get_logger
from gymdesk.db.indexes import create_indexes
from gymdesk.db.mongo import connect_to_mongo, close_mongo_connection
from gymdesk.flow.dispatcher import ScanOutcome, process_scan
from gymdesk.flow.scanner import ScanInputHandler
from gymdesk.flow.states import ScanMode, get_status_metadata

logger = get_logger(__name__)

COLORS = {
    "green": "\033[32m",
    "blue": "\033[34m",
    "orange": "\033[33m",
    "red": "\033[31m",
    "gray": "\033[90m",
}
RESET = "\033[0m"


def render(code: str, outcome: ScanOutcome) -> str:
    metadata = get_status_metadata(outcome.validation.status)
    color = COLORS.get(metadata.display_color, RESET)
    name = outcome.validation.user.name if outcome.validation.user else "Unknown"
    return f"{color}{outcome.message:<34}{RESET} {code:<12} {name}"


def print_outcome(code: str, outcome: ScanOutcome) -> None:
    print(render(code, outcome), flush=True)


async def run(mode: ScanMode) -> None:
    validate_settings()
    await connect_to_mongo()
    await create_indexes()

    handler = ScanInputHandler(
        on_scan=lambda code: process_scan(code, mode),
        on_result=print_outcome,
    )

    loop = asyncio.get_running_loop()
    print(f"GymDesk kiosk ready ({mode.value}). Scan a member QR code, Ctrl-D to quit.", flush=True)

    try:
        while True:
            line = await loop.run_in_executor(None, sys.stdin.readline)
            if not line:
                break
            await handler.feed(line.rstrip("\r\n"))
    finally:
        handler.close()
        await close_mongo_connection()


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="GymDesk front-desk scan station")
    parser.add_argument(
        "--mode",
        choices=[m.value for m in ScanMode],
        default=ScanMode.AUTO.value,
        help="auto toggles check-in/out; check-in or check-out do only that",
    )
    args = parser.parse_args(argv)

    setup_logging()
    logger.info(f"Kiosk starting against {settings.MONGODB_DB_NAME}")

    try:
        asyncio.run(run(ScanMode(args.mode)))
    except KeyboardInterrupt:
        logger.info("Kiosk stopped")


if __name__ == "__main__":
    main()
