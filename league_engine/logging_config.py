"""
Logging configuration for the league engine.
Console output always, plus rotating application and error logs when enabled.
"""

import logging
import logging.handlers
import os

from .config import LOG_DIR, LOG_LEVEL, LOG_TO_FILE


class ColoredFormatter(logging.Formatter):
    """Colored formatter for console output"""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",  # Reset
    }

    def format(self, record):
        log_color = self.COLORS.get(record.levelname, self.COLORS["RESET"])
        reset_color = self.COLORS["RESET"]

        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{log_color}{record.levelname}{reset_color}"

        return super().format(record)


def setup_logging(level=None, log_dir=None, to_file=None, colored=False):
    """
    Configure the root logger for the engine and its task endpoints.

    Args:
        level: Level name, defaults to LOG_LEVEL
        log_dir: Directory for rotating log files, defaults to LOG_DIR
        to_file: Write league_engine.log / errors.log, defaults to LOG_TO_FILE
        colored: Colour the level name on the console
    """
    log_level = getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO)
    log_dir = log_dir or LOG_DIR
    to_file = LOG_TO_FILE if to_file is None else to_file

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Clear existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    formatter_cls = ColoredFormatter if colored else logging.Formatter
    console_handler.setFormatter(
        formatter_cls(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root_logger.addHandler(console_handler)

    if to_file:
        os.makedirs(log_dir, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            os.path.join(log_dir, "league_engine.log"),
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root_logger.addHandler(file_handler)

        error_handler = logging.handlers.RotatingFileHandler(
            os.path.join(log_dir, "errors.log"),
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=3,
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s "
                "[%(pathname)s:%(lineno)d]",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root_logger.addHandler(error_handler)

    # Third-party loggers
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging configured - Level: {logging.getLevelName(log_level)}"
    )
