"""
Structured logging helpers for consistent log formatting.

Provides utilities for structured, clean logging without excessive decorative separators.
"""
import logging
from datetime import datetime, timezone


def log_section_start(logger: logging.Logger, section_name: str) -> None:
    """
    Log the start of a processing section.

    Args:
        logger: Logger instance
        section_name: Name of the section being started
    """
    logger.info(f"Starting: {section_name}")


def log_section_end(logger: logging.Logger, section_name: str) -> None:
    """
    Log the end of a processing section.

    Args:
        logger: Logger instance
        section_name: Name of the section being ended
    """
    logger.info(f"Completed: {section_name}")


def log_refresh_start(logger: logging.Logger) -> None:
    """Log dub schedule refresh start."""
    logger.info(f"Dub schedule refresh started at {datetime.now(timezone.utc).isoformat()}")


def log_refresh_end(logger: logging.Logger) -> None:
    """Log dub schedule refresh end."""
    logger.info(f"Dub schedule refresh completed at {datetime.now(timezone.utc).isoformat()}")


def log_snapshot_summary(
    logger: logging.Logger,
    confirmed_count: int,
    projected_count: int,
    unresolved_count: int
) -> None:
    """
    Log snapshot build summary.

    Args:
        logger: Logger instance
        confirmed_count: Number of airings reported by the feeds and resolved
        projected_count: Number of synthesized future airings
        unresolved_count: Number of airings dropped for media not in the collection
    """
    logger.info(
        f"Snapshot summary - Confirmed: {confirmed_count}, Projected: {projected_count}, "
        f"Unresolved: {unresolved_count}"
    )
