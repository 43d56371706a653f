"""
Logging utilities for org_resolver scripts.

Provides logging setup with tqdm compatibility.
"""

import logging
import sys
import time
from pathlib import Path

from org_resolver.utils.tqdm_logging import TqdmLoggingHandler


def setup_logging(
    script_name: str,
    level: str = "INFO",
    log_to_file: bool = False,
    log_dir: Path = Path("logs"),
    tqdm_compatible: bool = True,
) -> logging.Logger:
    """
    Set up logging for a script.

    Args:
        script_name: Name of the script (for logger and log file naming)
        level: Console level name (e.g. "INFO", "DEBUG")
        log_to_file: If True, also write DEBUG and above to a timestamped file
        log_dir: Directory for log files
        tqdm_compatible: If True, use TqdmLoggingHandler for clean progress bar output

    Returns:
        Configured logger instance
    """
    console_level = logging.getLevelName(level.upper())
    if not isinstance(console_level, int):
        console_level = logging.INFO

    if tqdm_compatible:
        console_handler: logging.Handler = TqdmLoggingHandler(level=console_level)
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))

    handlers: list[logging.Handler] = [console_handler]
    log_file = None
    if log_to_file:
        log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = time.strftime("%Y%m%d_%H%M%S")
        log_file = log_dir / f"{script_name}_{timestamp}.log"
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        handlers.append(file_handler)

    logger = logging.getLogger(script_name)
    # Package loggers (org_resolver.resolution.*) route through the same handlers
    pkg_logger = logging.getLogger("org_resolver")
    for target in (logger, pkg_logger):
        target.setLevel(logging.DEBUG)
        target.handlers = list(handlers)
        target.propagate = False

    if log_file is not None:
        logger.info(f"Log file: {log_file}")
    return logger


def print_header(title: str, logger: logging.Logger | None = None):
    """Print a standard section header."""
    if logger is None:
        logger = logging.getLogger(__name__)

    logger.info("=" * 70)
    logger.info(title)
    logger.info("=" * 70)
