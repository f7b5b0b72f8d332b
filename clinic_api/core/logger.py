import inspect
import logging
import sys
from typing import Union

from loguru import logger

CONSOLE_FORMAT = "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"
QUIET_LOGGERS = ("uvicorn.access", "httpx", "hpack")


class InterceptHandler(logging.Handler):
    """Forwards stdlib log records (uvicorn, httpx, supabase) to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        level: Union[str, int]
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip frames inside the logging module so loguru reports the real caller
        frame, depth = inspect.currentframe(), 0
        while frame is not None and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = "INFO", error_log: str = "logs/errors.log"):
    logger.remove()
    logger.add(sys.stdout, level=level, format=CONSOLE_FORMAT)

    # Errors only, kept for a month
    logger.add(error_log, level="ERROR", rotation="10 MB", retention="1 month", compression="zip", format=FILE_FORMAT)

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

__all__ = ["logger", "setup_logging"]
