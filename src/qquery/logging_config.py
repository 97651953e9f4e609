"""Logging configuration for qquery."""

import sys

from loguru import logger


def configure_logging(*, verbose: bool = False) -> None:
    """Send diagnostics to stderr.

    stdout belongs to CLI results and to the MCP stdio transport.
    """
    logger.remove()
    if verbose:
        logger.add(
            sys.stderr,
            level="DEBUG",
            format="{time:HH:mm:ss} {level.icon} {name}: {message}",
        )
    else:
        logger.add(sys.stderr, level="INFO", format="{level.icon} {message}")
