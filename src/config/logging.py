"""Process-wide logging setup for the assistant."""

from __future__ import annotations

import logging

_QUIET_LOGGERS = ("aiogram.event", "tzlocal")


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging from the `LOG_LEVEL` setting.

    Messages are key=value diagnostics for operators; nothing logged here is ever shown to the user.

    Raises:
        ValueError: If `level` is not a known logging level name.
    """

    level_name = level.strip().upper()
    if level_name not in logging.getLevelNamesMapping():
        raise ValueError(f"Unknown LOG_LEVEL: {level!r}")

    logging.basicConfig(
        level=level_name,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    # aiogram logs every update at INFO; dateparser's tzlocal warns on hosts without a zone.
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
