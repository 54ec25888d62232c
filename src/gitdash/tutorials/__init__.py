"""Guided tutorials that drive the operation sequencer."""

from .engine import DEFAULT_TUTORIAL, TutorialEngine, TutorialSession, TutorialState
from .loader import TutorialLoadError, TutorialLoader
from .models import Tutorial, TutorialStep

__all__ = [
    "DEFAULT_TUTORIAL",
    "Tutorial",
    "TutorialEngine",
    "TutorialLoadError",
    "TutorialLoader",
    "TutorialSession",
    "TutorialState",
    "TutorialStep",
]
