import sys
from loguru import logger
import logging

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"
# Failed deliveries carry the sink and booking so they can be replayed by hand
INTEGRATION_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {extra[sink]: <8} | booking={extra[booking_id]} | {message}"

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("uvicorn.access", "googleapiclient", "httpx", "httpcore", "hpack")


class InterceptHandler(logging.Handler):
    """Forwards stdlib logging records (uvicorn, googleapiclient, httpx) to loguru."""

    def emit(self, record):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip logging's own frames so loguru reports the original caller
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _is_integration_record(record) -> bool:
    return "sink" in record["extra"] and "booking_id" in record["extra"]


def setup_logging(
    level: str = "INFO",
    error_log: str = "logs/errors.log",
    integration_log: str = "logs/integrations.log",
    serialize: bool = False,
):
    """
    Configure loguru for the service.

    - stdout at `level`; `serialize=True` writes one JSON object per line
      for log collectors instead of the coloured format.
    - `error_log`: every ERROR record, rotated at 10 MB.
    - `integration_log`: WARNING and above from notification sinks, i.e.
      records bound with `sink` and `booking_id`.

    An empty path disables that file. Safe to call more than once.
    """
    logger.remove()

    if serialize:
        logger.add(sys.stdout, level=level, serialize=True)
    else:
        logger.add(sys.stdout, level=level, format=CONSOLE_FORMAT)

    if error_log:
        logger.add(
            error_log,
            level="ERROR",
            rotation="10 MB",
            retention="1 month",
            compression="zip",
            format=FILE_FORMAT,
        )

    if integration_log:
        logger.add(
            integration_log,
            level="WARNING",
            filter=_is_integration_record,
            rotation="10 MB",
            retention="1 month",
            format=INTEGRATION_FORMAT,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["logger", "setup_logging"]
