"""
Logging configuration module.

Colored console output plus an optional plain log file.
"""

import logging
import sys
from pathlib import Path
from typing import Optional


class Colors:
    """ANSI escape sequences for terminal colors."""
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"
    WHITE = "\033[37m"
    CYAN = "\033[36m"
    YELLOW = "\033[33m"
    BRIGHT_RED = "\033[91m"
    BG_RED = "\033[41m"


class ColoredFormatter(logging.Formatter):
    """
    Formatter that colors the level name.

    DEBUG is dim, INFO cyan, WARNING yellow, ERROR red, CRITICAL on red.
    """

    LEVEL_COLORS = {
        logging.DEBUG: Colors.DIM + Colors.WHITE,
        logging.INFO: Colors.CYAN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.BRIGHT_RED,
        logging.CRITICAL: Colors.BOLD + Colors.WHITE + Colors.BG_RED,
    }

    def __init__(self, fmt: str, datefmt: Optional[str] = None, use_colors: bool = True):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_colors:
            return super().format(record)

        original_levelname = record.levelname
        original_name = record.name
        color = self.LEVEL_COLORS.get(record.levelno, Colors.WHITE)
        record.levelname = f"{color}{record.levelname:8}{Colors.RESET}"
        record.name = f"{Colors.DIM}{record.name}{Colors.RESET}"
        try:
            return super().format(record)
        finally:
            # Other handlers (file) must see the plain values
            record.levelname = original_levelname
            record.name = original_name


def setup_logging(level: int = logging.WARNING, log_file: Optional[str] = None) -> None:
    """
    Configure application-wide logging.

    Console output goes to stderr so that stdout carries only results.

    Args:
        level: Console logging level
        log_file: Optional path to a log file that always receives DEBUG
    """
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(ColoredFormatter(
        fmt="[%(asctime)s] %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        use_colors=sys.stderr.isatty(),
    ))
    console_handler.setLevel(level)
    handlers: list[logging.Handler] = [console_handler]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(
            fmt="[%(asctime)s] %(levelname)-8s [%(threadName)s] [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        file_handler.setLevel(logging.DEBUG)
        handlers.append(file_handler)

    logging.basicConfig(level=logging.DEBUG, handlers=handlers, force=True)

    # Reduce noise from libraries
    for name in ("winrm", "requests", "urllib3", "requests_ntlm", "spnego"):
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.debug("Logging initialized at %s", logging.getLevelName(level))
    if log_file:
        logger.debug("Log file: %s", log_file)
