"""The normalized outcome of a single command execution."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Mapping


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Holds the outcome of one command, whichever backend produced it.

    ``stdout`` and ``stderr`` are always whitespace-trimmed. ``manual`` marks a
    result that stands in for a command a human runs elsewhere, ``simulated``
    marks canned output, and ``cancelled`` marks a dismissed manual prompt.
    """

    command: str
    success: bool
    stdout: str = ""
    stderr: str = ""
    error: str | None = None
    timestamp: datetime = field(default_factory=_utcnow)
    manual: bool = False
    simulated: bool = False
    cancelled: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "stdout", (self.stdout or "").strip())
        object.__setattr__(self, "stderr", (self.stderr or "").strip())
        if self.error is not None:
            object.__setattr__(self, "error", self.error.strip() or None)

    @property
    def failure_text(self) -> str:
        """Best human-readable description of why the command failed."""

        return self.stderr or self.error or "command failed"

    def normalized(self) -> "CommandResult":
        """Return a copy whose ``error`` is filled from ``stderr`` on failure."""

        if self.success or self.cancelled or self.error:
            return self
        return replace(self, error=self.stderr or "command failed")

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["timestamp"] = self.timestamp.isoformat()
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any], *, command: str | None = None) -> "CommandResult":
        """Build a result from a JSON-shaped mapping, tolerating missing keys.

        Raises ``TypeError`` or ``ValueError`` when a present field has the wrong
        shape; ``success`` must be a real boolean.
        """

        success = payload.get("success", False)
        if not isinstance(success, bool):
            raise TypeError(f"success must be a boolean, got {success!r}")
        raw_timestamp = payload.get("timestamp")
        if isinstance(raw_timestamp, str):
            timestamp = datetime.fromisoformat(raw_timestamp.replace("Z", "+00:00"))
        else:
            timestamp = _utcnow()
        return cls(
            command=str(payload.get("command") or command or ""),
            success=success,
            stdout=str(payload.get("stdout") or ""),
            stderr=str(payload.get("stderr") or ""),
            error=str(payload["error"]) if payload.get("error") else None,
            timestamp=timestamp,
            manual=bool(payload.get("manual", False)),
            simulated=bool(payload.get("simulated", False)),
            cancelled=bool(payload.get("cancelled", False)),
        )


__all__ = ["CommandResult"]
