"""Logging setup for command-line entry points."""

import logging
import sys


def setup_logging(log_level: str = "INFO", log_format: str = "simple") -> None:
    """Configure logging for fragment_foundry.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
        log_format: "simple" for level and message, "detailed" adds time and logger.
    """
    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    level = level_map.get(log_level.upper(), logging.INFO)

    if log_format == "simple":
        format_str = "%(levelname)s: %(message)s"
    else:
        format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=level,
        format=format_str,
        stream=sys.stdout,
    )
    logging.getLogger("fragment_foundry").setLevel(level)
