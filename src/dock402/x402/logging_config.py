"""
Logging configuration for x402
"""

import logging
import sys
from typing import TYPE_CHECKING, Iterable, TextIO

if TYPE_CHECKING:
    from dock402.x402.settings import X402Settings

LOG_FORMAT = "%(asctime)s - %(levelname)-8s %(name)s %(filename)s:%(lineno)d %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Transport libraries that log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "web3", "solana")


def setup_logging(
    level: int | str = logging.INFO,
    stream: TextIO | None = None,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """
    Configure root logging with timestamp, file and line number information

    Args:
        level: Logging level, as an int or a name such as "DEBUG" (default: INFO)
        stream: Output stream (default: stdout)
        quiet: Loggers held at WARNING unless *level* is DEBUG
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(stream or sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(console_handler)

    for name in quiet:
        logging.getLogger(name).setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)


def setup_logging_from_settings(settings: "X402Settings") -> None:
    """Apply the ``X402_LOG_LEVEL`` setting"""
    setup_logging(settings.log_level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
