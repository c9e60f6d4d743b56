"""Logging configuration for manhwa-hub using loguru.

Console output goes to stderr (WARNING, or DEBUG with --debug); everything is
also written to a rotating log file under the data directory.

Records carry an ``extra[plugin]`` field naming the extractor plugin they
concern ("-" when none). Use get_logger() for module loggers and
plugin_logger() for messages about one plugin.
"""

import sys
from pathlib import Path

from loguru import logger as _base_logger

from models.config import get_data_path

LOG_FILE_NAME = "manhwa-hub.log"
NO_PLUGIN = "-"

CONSOLE_FORMAT = (
    "<level>{level: <8}</level> | <cyan>{name}</cyan> "
    "<magenta>[{extra[plugin]}]</magenta> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {extra[plugin]} - {message}"

_initialized = False


def configure_logging(debug: bool = False, force: bool = False, log_dir: Path | None = None) -> None:
    """Configure loguru for the entire application.

    Args:
        debug: Log DEBUG to the console instead of WARNING
        force: Reconfigure even if logging was already set up (the CLI calls
            this after modules have already requested loggers)
        log_dir: Directory of the log file (default: get_data_path())
    """
    global _initialized

    if _initialized and not force:
        return

    log_dir = Path(log_dir) if log_dir is not None else get_data_path()
    log_dir.mkdir(parents=True, exist_ok=True)

    _base_logger.remove()
    _base_logger.configure(extra={"plugin": NO_PLUGIN})

    _base_logger.add(sys.stderr, format=CONSOLE_FORMAT, level="DEBUG" if debug else "WARNING")

    # 50MB per file, last 10 files kept zipped
    _base_logger.add(
        log_dir / LOG_FILE_NAME,
        format=FILE_FORMAT,
        level="DEBUG",
        rotation="50 MB",
        retention=10,
        compression="zip",
    )

    _initialized = True


def get_logger(name: str):
    """Get a logger for a module, configuring logging on first use."""
    if not _initialized:
        configure_logging()
    return _base_logger.bind(name=name)


def plugin_logger(logger, key: str):
    """Bind a module logger to one plugin key."""
    return logger.bind(plugin=key)
