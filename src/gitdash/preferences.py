"""Persisted dashboard theme preference."""

from __future__ import annotations

import logging
from typing import Literal, cast

from .presenter import Presenter
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

THEME_KEY = "dashboard-theme"
THEMES = ("light", "dark")

Theme = Literal["light", "dark"]


class ThemePreference:
    """Read, write, and toggle the ``light``/``dark`` theme setting."""

    def __init__(self, store: KeyValueStore | None, presenter: Presenter, *, default: Theme = "light") -> None:
        self._store = store
        self._presenter = presenter
        self._default = default
        self._value: Theme | None = None

    def get(self) -> Theme:
        if self._value is not None:
            return self._value
        stored = None
        if self._store is not None:
            try:
                stored = self._store.get(THEME_KEY)
            except Exception as exc:  # persistence is best effort
                logger.warning("Failed to load theme preference", extra={"error": str(exc)})
        self._value = cast(Theme, stored) if stored in THEMES else self._default
        return self._value

    def set(self, theme: str) -> Theme:
        if theme not in THEMES:
            raise ValueError(f"theme must be one of {', '.join(THEMES)}")
        self._value = cast(Theme, theme)
        if self._store is not None:
            try:
                self._store.set(THEME_KEY, theme)
            except Exception as exc:  # persistence is best effort
                logger.warning("Failed to persist theme preference", extra={"error": str(exc)})
        return self._value

    def toggle(self) -> Theme:
        theme = self.set("light" if self.get() == "dark" else "dark")
        self._presenter.notify(f"Switched to {theme} theme", "info")
        return theme


__all__ = ["ThemePreference", "THEME_KEY", "THEMES", "Theme"]
