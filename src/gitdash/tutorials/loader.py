"""Tutorial loading utilities."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

import yaml
from pydantic import ValidationError

from .models import Tutorial

logger = logging.getLogger(__name__)

BUILTIN_TUTORIALS = Path(__file__).resolve().parent / "definitions"


class TutorialLoadError(RuntimeError):
    """Raised when one or more tutorial files cannot be parsed."""


class TutorialLoader:
    """Loads tutorials from YAML files, packaged ones first."""

    def __init__(self, search_paths: Iterable[Path] | None = None, *, include_builtin: bool = True) -> None:
        paths = [BUILTIN_TUTORIALS] if include_builtin else []
        paths.extend(Path(path) for path in (search_paths or []))
        self._search_paths: list[Path] = [path for path in paths if path.exists()]

    @property
    def search_paths(self) -> list[Path]:
        return list(self._search_paths)

    def load_all(self) -> dict[str, Tutorial]:
        """Load tutorials from all search paths.

        A tutorial in a later directory replaces a packaged or earlier one
        with the same id. Two files defining the same id inside one
        directory is an error.
        """

        catalog: dict[str, Tutorial] = {}
        errors: list[str] = []

        for directory in self._search_paths:
            seen: dict[str, Path] = {}
            for path in sorted(directory.glob("*.yml")) + sorted(directory.glob("*.yaml")):
                tutorial, error = self._load_file(path)
                if error is not None:
                    errors.append(error)
                    continue
                if tutorial is None:
                    continue
                if tutorial.id in seen:
                    errors.append(f"Duplicate tutorial id '{tutorial.id}' in {path} and {seen[tutorial.id]}")
                    continue
                seen[tutorial.id] = path
                if tutorial.id in catalog:
                    logger.debug("Tutorial overridden", extra={"tutorial": tutorial.id, "path": str(path)})
                catalog[tutorial.id] = tutorial

        if errors:
            raise TutorialLoadError("; ".join(errors))

        return catalog

    @staticmethod
    def _load_file(path: Path) -> tuple[Tutorial | None, str | None]:
        try:
            document = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            return None, f"Failed to parse YAML in {path}: {exc}"
        if document is None:
            return None, None
        try:
            return Tutorial.model_validate(document), None
        except ValidationError as exc:
            return None, f"Tutorial validation error in {path}: {exc}"


__all__ = ["BUILTIN_TUTORIALS", "TutorialLoadError", "TutorialLoader"]
