from __future__ import annotations

"""Process-wide logging setup driven by LoggingSettings."""

import logging

from .config import LoggingSettings

getLogger = logging.getLogger


def configure_logging(settings: LoggingSettings) -> None:
    """
    Configure the root logger once from `settings`.

    Calling again only adjusts the level, so tests and embedding
    applications can reconfigure without stacking handlers.
    """
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=settings.level, format=settings.format)
    root.setLevel(settings.level)


__all__ = ["configure_logging", "getLogger"]
