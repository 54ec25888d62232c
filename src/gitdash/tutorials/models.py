"""Tutorial definitions."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from ..operations import OperationRequest


class TutorialStep(BaseModel):
    """One screen of a walkthrough, optionally bound to an operation."""

    title: str = Field(..., description="Heading shown for the step.")
    content: str = Field(..., description="Explanatory text shown for the step.")
    action: OperationRequest | None = Field(
        default=None,
        description="Operation the user can trigger from this step.",
    )
    highlight: str | None = Field(
        default=None,
        description="Opaque selector of the dashboard element to emphasize.",
    )


class Tutorial(BaseModel):
    """A named, ordered sequence of steps."""

    id: str = Field(..., description="Unique identifier used to start the tutorial.")
    title: str = Field(..., description="Display title for the tutorial.")
    description: str = Field(default="", description="Short summary of what the tutorial covers.")
    steps: list[TutorialStep] = Field(..., min_length=1)

    @field_validator("id")
    @classmethod
    def _normalize_id(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("Tutorial id must not be empty")
        return normalized


__all__ = ["Tutorial", "TutorialStep"]
