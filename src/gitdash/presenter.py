"""Presentation collaborator used by the core to surface outcomes to a human."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, Protocol

Severity = Literal["success", "error", "warning", "info"]

_LEVELS: dict[str, int] = {
    "success": logging.INFO,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class Presenter(Protocol):
    """One-way rendering calls; the core never reads a value back."""

    def notify(self, message: str, severity: Severity = "info") -> None:
        ...

    def show_modal(self, title: str, content: str) -> None:
        ...

    def highlight(self, selector: str | None) -> None:
        ...


class LoggingPresenter:
    """Presenter that writes everything to the ``gitdash.presenter`` logger."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(__name__)

    def notify(self, message: str, severity: Severity = "info") -> None:
        self._logger.log(_LEVELS.get(severity, logging.INFO), message, extra={"severity": severity})

    def show_modal(self, title: str, content: str) -> None:
        self._logger.info("%s\n%s", title, content, extra={"modal": True})

    def highlight(self, selector: str | None) -> None:
        if selector:
            self._logger.debug("Highlighting %s", selector)


@dataclass(slots=True)
class Notification:
    message: str
    severity: str


@dataclass(slots=True)
class Modal:
    title: str
    content: str


class RecordingPresenter(LoggingPresenter):
    """Keeps everything it was asked to render so a caller can relay it later."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        super().__init__(logger)
        self.notifications: list[Notification] = []
        self.modals: list[Modal] = []
        self.highlighted: str | None = None

    def notify(self, message: str, severity: Severity = "info") -> None:
        self.notifications.append(Notification(message=message, severity=severity))
        super().notify(message, severity)

    def show_modal(self, title: str, content: str) -> None:
        self.modals.append(Modal(title=title, content=content))
        super().show_modal(title, content)

    def highlight(self, selector: str | None) -> None:
        self.highlighted = selector
        super().highlight(selector)

    def drain(self) -> dict[str, list[dict[str, str]]]:
        """Return and clear everything recorded since the last drain."""

        payload = {
            "notifications": [
                {"message": item.message, "severity": item.severity} for item in self.notifications
            ],
            "modals": [{"title": item.title, "content": item.content} for item in self.modals],
        }
        self.notifications.clear()
        self.modals.clear()
        return payload


__all__ = [
    "Presenter",
    "LoggingPresenter",
    "RecordingPresenter",
    "Notification",
    "Modal",
    "Severity",
]
