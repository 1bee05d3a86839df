"""Exception taxonomy for the cognitive state engine.

* :class:`InvalidSample` — a sample is missing a required measurement or a
  value is out of range.  Per-sample; the session carries on.
* :class:`SensorUnavailable` — camera permission denied or hardware absent.
  Reported through the session snapshot, never raised on the hot path.
* :class:`UpstreamFailure` — forwarding a classification result failed.
  The caller owns the retry policy.
"""

from __future__ import annotations


class CognitiveEngineError(Exception):
    """Base class for all engine errors."""


class InvalidSample(CognitiveEngineError):
    """A sensor sample failed validation."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class SensorUnavailable(CognitiveEngineError):
    """A required sensor cannot be used."""

    def __init__(self, message: str, *, reason: str = "unavailable") -> None:
        super().__init__(message)
        self.reason = reason


class UpstreamFailure(CognitiveEngineError):
    """Delivering a result to an upstream service failed."""

    def __init__(self, message: str, *, target: str = "") -> None:
        super().__init__(message)
        self.target = target
