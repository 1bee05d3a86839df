"""Haptic feedback sequencer — a two-state machine over an asyncio task.

States
~~~~~~
``idle``     nothing playing; :meth:`HapticSequencer.trigger` starts a pattern.
``playing``  a pattern's steps are being rendered in order on a background
             task.  Further triggers are discarded: never queued, never
             interrupting the current pattern.

Each step is sent to the driver and then the task sleeps ``duration_ms``.
The sleep is the only suspension point, so sensor ingestion on the same
loop is never stalled by playback.  :meth:`HapticSequencer.cancel` stops
an in-flight pattern and returns to ``idle``.
"""

from __future__ import annotations

import asyncio
from collections import deque
from enum import Enum
from typing import Awaitable, Callable, Mapping

import structlog

from cognitive_engine.haptics.drivers import HapticDriver, LogHapticDriver
from cognitive_engine.haptics.patterns import HAPTIC_PATTERNS, get_pattern, intensity_category
from cognitive_engine.models import HapticCommand, HapticFeedbackType, HapticPattern, MotionSample

logger = structlog.get_logger(__name__)

MOTION_ROTATION_THRESHOLD = 0.5  # rad/s


class SequencerState(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"


class HapticSequencer:
    """Play static haptic patterns one at a time.

    Parameters
    ----------
    driver : HapticDriver
        Where each step is rendered (defaults to the structured log).
    patterns : Mapping[HapticFeedbackType, HapticPattern]
        Pattern table; the built-in one unless overridden.
    motion_threshold : float
        ``|rotation_gamma|`` above which a motion sample triggers a warning.
    sleep : Callable[[float], Awaitable[None]]
        Suspension primitive between steps (``asyncio.sleep``).
    """

    def __init__(
        self,
        driver: HapticDriver | None = None,
        *,
        patterns: Mapping[HapticFeedbackType, HapticPattern] = HAPTIC_PATTERNS,
        motion_threshold: float = MOTION_ROTATION_THRESHOLD,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._driver = driver or LogHapticDriver()
        self._patterns = patterns
        self._motion_threshold = motion_threshold
        self._sleep = sleep

        self._state = SequencerState.IDLE
        self._current: HapticFeedbackType | None = None
        self._task: asyncio.Task | None = None

        self._steps_played = 0
        self._patterns_completed = 0
        self._triggers_discarded = 0
        self._recent: deque[HapticCommand] = deque(maxlen=50)

    # ── State ─────────────────────────────────────────────────

    @property
    def state(self) -> SequencerState:
        return self._state

    @property
    def is_playing(self) -> bool:
        return self._state is SequencerState.PLAYING

    @property
    def current(self) -> HapticFeedbackType | None:
        return self._current

    @property
    def steps_played(self) -> int:
        return self._steps_played

    @property
    def recent_commands(self) -> list[HapticCommand]:
        return list(self._recent)

    @property
    def stats(self) -> dict[str, int]:
        return {
            "steps_played": self._steps_played,
            "patterns_completed": self._patterns_completed,
            "triggers_discarded": self._triggers_discarded,
        }

    # ── Triggers ──────────────────────────────────────────────

    def trigger(self, kind: HapticFeedbackType) -> bool:
        """Start playing the pattern for *kind*.

        Returns ``False`` (and does nothing) when a pattern is already
        playing.  Must be called from within a running event loop.
        """
        if self._state is SequencerState.PLAYING:
            self._triggers_discarded += 1
            logger.debug(
                "haptics.trigger_discarded",
                requested=kind.value,
                playing=self._current.value if self._current else None,
            )
            return False

        pattern = get_pattern(kind, self._patterns)
        loop = asyncio.get_running_loop()
        self._state = SequencerState.PLAYING
        self._current = kind
        self._task = loop.create_task(self._play(pattern), name=f"haptic-{kind.value}")
        logger.debug("haptics.triggered", feedback_type=kind.value, steps=len(pattern.steps))
        return True

    def on_motion(self, sample: MotionSample) -> bool:
        """Trigger a warning for abrupt rotation.  Returns whether it started."""
        if abs(sample.rotation_gamma) > self._motion_threshold:
            return self.trigger(HapticFeedbackType.WARNING)
        return False

    # ── Cancellation ──────────────────────────────────────────

    def cancel_nowait(self) -> bool:
        """Cancel any in-flight pattern and go back to ``idle`` immediately."""
        task = self._task
        self._reset()
        if task is None or task.done():
            return False
        task.cancel()
        logger.debug("haptics.cancelled")
        return True

    async def cancel(self) -> bool:
        """Cancel any in-flight pattern and wait for its task to finish."""
        task = self._task
        cancelled = self.cancel_nowait()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
        return cancelled

    async def wait_idle(self) -> None:
        """Wait until the current pattern (if any) has finished."""
        task = self._task
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    # ── Playback ──────────────────────────────────────────────

    async def _play(self, pattern: HapticPattern) -> None:
        try:
            for index, step in enumerate(pattern.steps):
                command = HapticCommand(
                    feedback_type=pattern.feedback_type,
                    step_index=index,
                    intensity=intensity_category(step.intensity),
                    raw_intensity=step.intensity,
                    duration_ms=step.duration_ms,
                )
                try:
                    await self._driver.play(command)
                except Exception as exc:
                    logger.error(
                        "haptics.driver_error",
                        driver=self._driver.name,
                        feedback_type=pattern.feedback_type.value,
                        step=index,
                        error=str(exc),
                    )
                    return
                self._steps_played += 1
                self._recent.append(command)
                if step.duration_ms > 0:
                    await self._sleep(step.duration_ms / 1000)
            self._patterns_completed += 1
            logger.debug("haptics.completed", feedback_type=pattern.feedback_type.value)
        finally:
            if self._task is asyncio.current_task():
                self._reset()

    def _reset(self) -> None:
        self._state = SequencerState.IDLE
        self._current = None
        self._task = None
