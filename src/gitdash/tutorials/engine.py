"""Step sequencer for guided walkthroughs."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping

from ..errors import GitDashError
from ..operations import OperationResult, OperationSequencer
from ..presenter import Presenter
from .loader import TutorialLoadError
from .models import Tutorial, TutorialStep

logger = logging.getLogger(__name__)

DEFAULT_TUTORIAL = "basic-workflow"


class TutorialState(str, Enum):
    NOT_STARTED = "not_started"
    STEP_DISPLAYED = "step_displayed"
    COMPLETED = "completed"


@dataclass(slots=True)
class TutorialSession:
    active: bool = False
    step_index: int = 0
    steps: list[TutorialStep] = field(default_factory=list)
    name: str | None = None


class TutorialEngine:
    """Drive a tutorial through NotStarted -> StepDisplayed(i) -> Completed.

    Progress never depends on command outcomes: a failed step action still
    advances, and ``advance``/``skip`` are always safe to call.
    """

    def __init__(
        self,
        tutorials: Mapping[str, Tutorial],
        sequencer: OperationSequencer,
        presenter: Presenter,
        *,
        default: str = DEFAULT_TUTORIAL,
    ) -> None:
        self._tutorials = dict(tutorials)
        self._sequencer = sequencer
        self._presenter = presenter
        self._default = default
        self._state = TutorialState.NOT_STARTED
        self._session = TutorialSession()

    @property
    def state(self) -> TutorialState:
        return self._state

    @property
    def session(self) -> TutorialSession:
        return self._session

    @property
    def available(self) -> list[str]:
        return sorted(self._tutorials)

    @property
    def current_step(self) -> TutorialStep | None:
        if self._state is not TutorialState.STEP_DISPLAYED:
            return None
        return self._session.steps[self._session.step_index]

    def start(self, name: str) -> TutorialStep:
        """Begin ``name`` from its first step, discarding any session in progress."""

        tutorial = self._tutorials.get(name)
        if tutorial is None:
            logger.warning("Unknown tutorial; using default", extra={"tutorial": name, "default": self._default})
            tutorial = self._tutorials.get(self._default)
        if tutorial is None:
            raise TutorialLoadError(f"Tutorial '{name}' not found and no default is available")

        self._session = TutorialSession(active=True, step_index=0, steps=list(tutorial.steps), name=tutorial.id)
        self._state = TutorialState.STEP_DISPLAYED
        self._show_current()
        return self._session.steps[0]

    def advance(self) -> TutorialStep | None:
        """Move to the next step, completing after the last one; no-op when inactive."""

        if self._state is not TutorialState.STEP_DISPLAYED:
            return None
        next_index = self._session.step_index + 1
        if next_index < len(self._session.steps):
            self._session.step_index = next_index
            self._show_current()
            return self._session.steps[next_index]
        self._complete()
        return None

    async def run_step_action(self) -> OperationResult | None:
        """Run the current step's bound operation, then advance."""

        step = self.current_step
        if step is None:
            return None
        session = self._session
        index = session.step_index

        result: OperationResult | None = None
        if step.action is not None:
            try:
                result = await self._sequencer.dispatch(step.action)
            except GitDashError as exc:
                logger.warning("Tutorial action failed", extra={"tutorial": session.name, "error": str(exc)})
                self._presenter.notify(f"Tutorial action failed: {exc}", "error")

        # A restart or skip while the action ran owns the session now.
        if self._session is session and session.step_index == index:
            self.advance()
        return result

    def skip(self) -> None:
        """End the running tutorial immediately."""

        if self._state is TutorialState.STEP_DISPLAYED:
            self._complete()

    def _show_current(self) -> None:
        step = self._session.steps[self._session.step_index]
        position = f"{self._session.step_index + 1}/{len(self._session.steps)}"
        self._presenter.show_modal(f"{step.title} ({position})", step.content)
        self._presenter.highlight(step.highlight)

    def _complete(self) -> None:
        logger.info("Tutorial completed", extra={"tutorial": self._session.name})
        self._session = TutorialSession()
        self._state = TutorialState.COMPLETED
        self._presenter.highlight(None)
        self._presenter.notify("Tutorial completed!", "success")


__all__ = ["DEFAULT_TUTORIAL", "TutorialEngine", "TutorialSession", "TutorialState"]
