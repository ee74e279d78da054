"""Settlement entrypoint.

Runs the settlement job once (``--once``) or on a fixed interval until
SIGINT/SIGTERM. Configuration comes from the environment, ``.env`` and an
optional YAML file.
"""

import argparse
import asyncio
import logging
import os
import signal
from typing import Any, Optional

from dotenv import load_dotenv

from settleboard.config import Settings, load_settings, sanitize_dict
from settleboard.database.dbm import DBM
from settleboard.database.repository import (
    SqlExpertDirectory,
    SqlOutcomeSource,
    SqlPositionStore,
    SqlStatisticsStore,
)
from settleboard.events.publisher import OutboxPublisher
from settleboard.jobs.runner import JobRunner
from settleboard.jobs.settle_positions import SettlePositionsJob
from settleboard.shared.logging import configure_logging, setup_events_logger
from settleboard.statistics.service import ExpertStatisticsService

logger = logging.getLogger("settleboard.settle")


def build_job(settings: Settings, db: Any, events_logger: Optional[logging.Logger] = None) -> SettlePositionsJob:
    """Wire the settlement job against SQL collaborators."""
    params = settings.params
    positions = SqlPositionStore(db)
    experts = SqlExpertDirectory(db)
    publisher = OutboxPublisher(db, events_logger=events_logger)
    statistics = ExpertStatisticsService(
        experts=experts,
        positions=positions,
        statistics=SqlStatisticsStore(db),
        publisher=publisher,
        params=params,
    )
    return SettlePositionsJob(
        db,
        logging.getLogger("settleboard.jobs.settle_positions"),
        outcomes=SqlOutcomeSource(db),
        positions=positions,
        experts=experts,
        publisher=publisher,
        statistics=statistics,
        params=params,
    )


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Settle pending positions and refresh expert statistics")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--once", action="store_true", help="Run a single settlement pass and exit")
    mode.add_argument("--loop", action="store_true", help="Run on the configured interval (default)")
    parser.add_argument("--config", type=str, default=None, help="YAML config file")
    parser.add_argument("--log-level", type=str, default=None)
    return parser.parse_args(argv)


async def _run(settings: Settings, once: bool) -> int:
    events_logger = None
    if settings.logging.events_dir:
        events_logger = setup_events_logger(
            settings.logging.events_dir,
            settings.logging.events_retention_bytes,
        )

    db = DBM(settings.database)
    runner = JobRunner(build_job(settings, db, events_logger), params=settings.params.job)
    stop = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, runner.request_stop, stop)
        except NotImplementedError:
            pass

    try:
        if once:
            report = await runner.run_with_retry(stop)
            logger.info(f"Run report: {report}")
        else:
            await runner.run_forever(stop)
    finally:
        await db.dispose()
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)

    # Load .env if not in test mode
    if os.environ.get("SETTLEBOARD_RUNTIME__TEST_MODE", "").lower() != "true":
        load_dotenv()

    settings = load_settings(args.config)
    configure_logging(args.log_level or settings.logging.level)
    logger.info(f"Settings: {sanitize_dict(settings.model_dump(mode='json'))}")

    try:
        return asyncio.run(_run(settings, once=args.once))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
