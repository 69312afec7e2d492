"""Logging configuration for vodreview."""

import logging
import sys
from typing import Optional

# Package logger
logger = logging.getLogger("vodreview")


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name when writing to a terminal."""

    COLORS = {
        logging.DEBUG: "\033[36m",    # Cyan
        logging.INFO: "\033[32m",     # Green
        logging.WARNING: "\033[33m",  # Yellow
        logging.ERROR: "\033[31m",    # Red
        logging.CRITICAL: "\033[35m", # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, fmt: str, datefmt: str = None, use_colors: bool = True):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        if not (self.use_colors and sys.stderr.isatty()):
            return super().format(record)
        # Color a copy so file handlers sharing the record stay plain
        colored = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelno, "")
        colored.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(colored)


def setup_logging(
    verbose: bool = False,
    quiet: bool = False,
    log_file: Optional[str] = None,
    use_colors: bool = True,
) -> logging.Logger:
    """Configure the vodreview logger.

    Args:
        verbose: If True, log at DEBUG and include timestamps
        quiet: If True, only log errors
        log_file: Optional path that receives every record at DEBUG
        use_colors: Color level names on a TTY

    Returns:
        The configured package logger
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.INFO

    package_logger = logging.getLogger("vodreview")
    package_logger.setLevel(logging.DEBUG if log_file else level)
    package_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_fmt = "%(levelname)s: %(message)s"
    if verbose:
        console_fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    console_handler.setFormatter(
        ColoredFormatter(console_fmt, datefmt="%H:%M:%S", use_colors=use_colors)
    )
    package_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        package_logger.addHandler(file_handler)

    package_logger.propagate = False
    return package_logger


def get_logger(name: str) -> logging.Logger:
    """Get the child logger for a module.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger named ``vodreview.<module>``
    """
    return logging.getLogger(f"vodreview.{name.split('.')[-1]}")
