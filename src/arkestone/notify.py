"""User-facing notifications emitted by the request layer."""

from __future__ import annotations

import logging
from typing import Protocol

_notify_logger = logging.getLogger("arkestone.notify")


class Notifier(Protocol):
    """Structural interface for toast-style notifications."""

    def success(self, message: str) -> None:
        ...

    def error(self, message: str) -> None:
        ...


class LoggingNotifier:
    """Default notifier: routes notifications to the ``arkestone.notify`` logger."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or _notify_logger

    def success(self, message: str) -> None:
        self._logger.info("%s", message)

    def error(self, message: str) -> None:
        self._logger.error("%s", message)


_notifier: Notifier = LoggingNotifier()


def get_notifier() -> Notifier:
    return _notifier


def set_notifier(notifier: Notifier | None) -> None:
    """Install a host notifier; ``None`` restores the logging default."""
    global _notifier
    _notifier = notifier if notifier is not None else LoggingNotifier()
