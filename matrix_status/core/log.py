"""
Logging setup

All components log through children of the ``matrix_status`` logger so that a
single handler configured here covers the whole package.
"""

import logging
import sys

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"
DATE_FORMAT = "%H:%M:%S"


class LogManager:
    _configured: set[str] = set()

    @classmethod
    def get_logger(cls, log_name: str = "matrix_status") -> logging.Logger:
        """Return the named logger, attaching the console handler once."""
        logger = logging.getLogger(log_name)
        if log_name in cls._configured:
            return logger

        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        cls._configured.add(log_name)
        return logger

    @staticmethod
    def set_level(logger: logging.Logger, level: str | int) -> None:
        if isinstance(level, str):
            level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level}")
        logger.setLevel(level)
