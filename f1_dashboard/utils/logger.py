"""
Loguru setup for the data core.

Colorized console sink, an optional daily file sink, and a bridge that routes
standard-library loggers (uvicorn, urllib3 retry warnings) into loguru so
every line shares one format.
"""
import logging
import sys
from pathlib import Path

from loguru import logger as _logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"

# Third-party loggers forwarded into loguru
BRIDGED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "urllib3")


class InterceptHandler(logging.Handler):
    """Re-emit standard logging records through loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = _logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip logging's own frames so loguru reports the real caller
        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        _logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def bridge_stdlib_logging(names: tuple[str, ...] = BRIDGED_LOGGERS) -> None:
    handler = InterceptHandler()
    for name in names:
        std_logger = logging.getLogger(name)
        std_logger.handlers = [handler]
        std_logger.propagate = False


def setup_logger(log_dir: Path | None = None, level: str = "INFO") -> None:
    """
    Configure loguru with a console sink and an optional file sink.

    Args:
        log_dir: Directory for ``f1_dashboard_<date>.log`` files. If None,
            file logging is skipped.
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR).
    """
    _logger.remove()
    _logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT, colorize=True)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        _logger.add(
            log_dir / "f1_dashboard_{time:YYYY-MM-DD}.log",
            level=level,
            format=FILE_FORMAT,
            rotation="1 day",
            retention="7 days",
            compression="gz",
            # Sinks are written from worker threads and the cache sweeper
            enqueue=True,
        )

    bridge_stdlib_logging()


logger = _logger
