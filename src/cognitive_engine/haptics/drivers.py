"""Haptic output drivers — where sequencer commands end up.

Adding a new output
~~~~~~~~~~~~~~~~~~~
1. Subclass ``HapticDriver``.
2. Implement ``async play(command)``.
3. Pass an instance to :class:`~cognitive_engine.haptics.sequencer.HapticSequencer`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Awaitable, Callable

import structlog

from cognitive_engine.models import HapticCommand

logger = structlog.get_logger(__name__)


class HapticDriver(ABC):
    """Contract for actuator back-ends.

    ``play`` should return promptly; the sequencer owns step timing.
    """

    name: str = "base"

    @abstractmethod
    async def play(self, command: HapticCommand) -> None:
        """Render one haptic step."""


class LogHapticDriver(HapticDriver):
    """Write haptic commands to the structured log."""

    name = "log"

    async def play(self, command: HapticCommand) -> None:
        logger.info(
            "haptics.play",
            feedback_type=command.feedback_type.value,
            step=command.step_index,
            intensity=command.intensity.value,
            duration_ms=command.duration_ms,
        )


class CallbackHapticDriver(HapticDriver):
    """Hand each command to an async callback (e.g. a WebSocket send)."""

    name = "callback"

    def __init__(self, callback: Callable[[HapticCommand], Awaitable[None]]) -> None:
        self._callback = callback

    async def play(self, command: HapticCommand) -> None:
        await self._callback(command)
