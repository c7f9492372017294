"""Logging helpers."""

import logging
from logging import Logger


def configure_logging(level: str = "INFO") -> None:
    """Install the root handler once and (re)apply the root level."""
    logging.basicConfig(
        format="%(asctime)s | %(levelname)8s | %(name)s | %(message)s",
    )
    logging.getLogger().setLevel(getattr(logging, level.upper(), logging.INFO))


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)
