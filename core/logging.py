"""
Logging configuration

Every record carries the id of the delta load run it belongs to ("-" outside
a run), so interleaved scheduler, API and run output can be told apart.
"""

import contextvars
import logging
import sys
from core.config import settings

current_run_id: contextvars.ContextVar[str] = contextvars.ContextVar("current_run_id", default="-")

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | run=%(run_id)s | %(message)s"


class RunIdFilter(logging.Filter):
    """Stamp records with the run id of the current task"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = current_run_id.get()
        return True


def setup_logging(level: str = None):
    """Configure application logging"""
    level_name = (level or settings.LOG_LEVEL).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RunIdFilter())

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[handler]
    )

    # Engine and pool chatter stays at WARNING even in debug runs
    for name in ("sqlalchemy.engine", "sqlalchemy.pool", "apscheduler"):
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging configured at {level_name} level")
