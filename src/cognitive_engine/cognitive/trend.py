"""Cognitive-load trend tracking over recent classifications."""

from __future__ import annotations

from collections import deque
from enum import Enum

from pydantic import BaseModel

from cognitive_engine.models import CognitiveState

# ── Thresholds ────────────────────────────────────────────────

FOCUS_MEDIUM = 0.6
FOCUS_HIGH = 0.7
LOAD_LOW = 0.3
LOAD_HIGH = 0.7
READINESS_MEDIUM = 0.7
READINESS_HIGH = 0.9

_AVERAGE_WINDOW = 5
_TREND_WINDOW = 3


class LoadTrend(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class PacingAdvice(str, Enum):
    CONTINUE = "continue"
    BREAK = "break"
    SIMPLIFY = "simplify"
    CHALLENGE = "challenge"


class LoadTrendMetrics(BaseModel):
    current_load: float
    trend: LoadTrend = LoadTrend.STABLE
    peak: float
    average: float  # over the last five states
    recommendation: PacingAdvice = PacingAdvice.CONTINUE
    samples: int = 0


class CognitiveLoadTracker:
    """Keeps the last *maxlen* states for one learner and summarises them.

    A trend is only reported when the last three loads move strictly in one
    direction; anything else is ``stable``.
    """

    def __init__(self, maxlen: int = 20) -> None:
        self._states: deque[CognitiveState] = deque(maxlen=maxlen)

    def record(self, state: CognitiveState) -> None:
        self._states.append(state)

    def reset(self) -> None:
        self._states.clear()

    def __len__(self) -> int:
        return len(self._states)

    @property
    def latest(self) -> CognitiveState | None:
        return self._states[-1] if self._states else None

    def metrics(self) -> LoadTrendMetrics | None:
        """Return the current summary, or ``None`` with no history yet."""
        latest = self.latest
        if latest is None:
            return None

        loads = [s.cognitive_load for s in self._states]
        recent = loads[-_AVERAGE_WINDOW:]
        return LoadTrendMetrics(
            current_load=latest.cognitive_load,
            trend=_trend(loads[-_TREND_WINDOW:]),
            peak=max(loads),
            average=sum(recent) / len(recent),
            recommendation=pacing_advice(latest),
            samples=len(loads),
        )


def _trend(last: list[float]) -> LoadTrend:
    if len(last) < _TREND_WINDOW:
        return LoadTrend.STABLE
    a, b, c = last
    if a < b < c:
        return LoadTrend.INCREASING
    if a > b > c:
        return LoadTrend.DECREASING
    return LoadTrend.STABLE


def pacing_advice(state: CognitiveState) -> PacingAdvice:
    if state.cognitive_load > LOAD_HIGH:
        return PacingAdvice.SIMPLIFY if state.focus_level > FOCUS_HIGH else PacingAdvice.BREAK
    if state.cognitive_load < LOAD_LOW and state.learning_readiness > READINESS_HIGH:
        return PacingAdvice.CHALLENGE
    return PacingAdvice.CONTINUE


def is_optimal_learning_state(state: CognitiveState) -> bool:
    """High focus, moderate load and high readiness at the same time."""
    return (
        state.focus_level > FOCUS_MEDIUM
        and LOAD_LOW < state.cognitive_load < LOAD_HIGH
        and state.learning_readiness > READINESS_MEDIUM
    )
