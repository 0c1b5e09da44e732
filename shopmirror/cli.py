"""
Command-line trigger for the Shopify sync.

Usage:
  shopmirror                                  # full sync of orders, products, customers
  shopmirror --resource orders --hours 2      # orders updated in the last 2 hours
  shopmirror --schedule                       # run the hourly scheduler until interrupted
"""

import argparse
import asyncio
import logging
import sys

from pydantic import ValidationError

from shopmirror.core.config import get_settings
from shopmirror.core.database import get_engine, init_db
from shopmirror.services.sync import RESOURCES, run_sync

logger = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError("must be a positive integer")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="shopmirror", description="Mirror Shopify data into a SQL database.")
    parser.add_argument(
        "--resource",
        choices=RESOURCES,
        help="Resource to sync (default: all three, orders first).",
    )
    parser.add_argument(
        "--hours",
        type=_positive_int,
        help="Only sync orders updated within the last N hours.",
    )
    parser.add_argument(
        "--schedule",
        action="store_true",
        help="Start the hourly scheduler and keep running.",
    )
    return parser


async def _run_once(resource: str | None, hours: int | None) -> dict:
    await init_db()
    try:
        return await run_sync(resource=resource, hours=hours)
    finally:
        await get_engine().dispose()


async def _run_scheduler() -> None:
    from shopmirror.services.scheduler import start_scheduler, stop_scheduler

    await init_db()
    start_scheduler()
    try:
        await asyncio.Event().wait()
    finally:
        stop_scheduler()
        await get_engine().dispose()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as e:
        logging.basicConfig(level=logging.INFO)
        logger.error(f"Missing or invalid configuration: {e}")
        return 1

    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.schedule:
        try:
            asyncio.run(_run_scheduler())
        except KeyboardInterrupt:
            logger.info("Scheduler interrupted")
        return 0

    result = asyncio.run(_run_once(args.resource, args.hours))
    if result["skipped"]:
        logger.warning("Sync skipped: another sync is in progress")
    elif result["success"]:
        logger.info("Sync completed")
    else:
        logger.error(f"Sync completed with errors: {result['errors'][:10]}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
