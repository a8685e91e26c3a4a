from planboard.logger import setup_logging, logger
from planboard.config.settings import *
setup_logging(
    log_level=PLANBOARD_LOG_LEVEL,
    log_file=PLANBOARD_LOG_FILE,
    console_level=PLANBOARD_CONSOLE_LOG_LEVEL,
    rotation=PLANBOARD_LOG_ROTATION,
    retention=PLANBOARD_LOG_RETENTION,
    error_retention=PLANBOARD_ERROR_LOG_RETENTION,
)

import asyncio
import sys

import planboard.actions as actions
import planboard.storage.db_config as db_config
from planboard.errors import PlanboardError
from planboard.metrics import runtime_metrics


async def main(user_id: int) -> int:
    await db_config.init_db(PLANBOARD_DB_PATH)
    try:
        report = await actions.auto_schedule(user_id)
    except PlanboardError as e:
        logger.error(f"auto schedule aborted: {e}")
        return 1
    finally:
        logger.info("closing database connection...")
        await db_config.close_db()

    for outcome in report.outcomes:
        if outcome.status == "scheduled":
            logger.info(f"  {outcome.title}: {outcome.date} {outcome.start_time}-{outcome.end_time}")
        else:
            logger.info(f"  {outcome.title}: {outcome.status}")
    logger.debug(f"metrics: {runtime_metrics.snapshot()}")
    return 0


def run() -> None:
    if len(sys.argv) != 2 or not sys.argv[1].isdigit():
        logger.error("usage: planboard-autoschedule <user_id>")
        raise SystemExit(2)
    raise SystemExit(asyncio.run(main(int(sys.argv[1]))))


if __name__ == "__main__":
    run()
