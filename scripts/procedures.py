"""
Command line entry points for the load procedures, for host job runners.

    python scripts/procedures.py insert-log Started --message "nightly"
    python scripts/procedures.py get-watermark
    python scripts/procedures.py update-watermark
"""

import argparse
import asyncio
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.database import async_session_maker, engine
from core.exceptions import ETLException
from core.logging import setup_logging
from delta_load import procedures

logger = logging.getLogger(__name__)


async def main(args: argparse.Namespace) -> int:
    try:
        async with async_session_maker() as session:
            if args.command == "insert-log":
                log_id = await procedures.insert_log(session, args.status, args.message)
                print(log_id)
            elif args.command == "get-watermark":
                print(await procedures.get_watermark(session))
            elif args.command == "update-watermark":
                new_value = await procedures.update_watermark_from_staging(session)
                if new_value is None:
                    logger.info("Staging is empty, watermark unchanged")
                    new_value = await procedures.get_watermark(session)
                print(new_value)
        return 0
    except ETLException as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    finally:
        await engine.dispose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="InternetSales delta load procedures")
    subparsers = parser.add_subparsers(dest="command", required=True)

    insert_log = subparsers.add_parser("insert-log", help="Append an entry to InternetSales_LoadLog")
    insert_log.add_argument("status", choices=["Started", "Succeeded", "Failed"])
    insert_log.add_argument("--message", default=None)

    subparsers.add_parser("get-watermark", help="Print LastOrderDateKey")
    subparsers.add_parser(
        "update-watermark",
        help="Set LastOrderDateKey to MAX(OrderDateKey) of InternetSales_Staging"
    )
    return parser


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(main(build_parser().parse_args())))
