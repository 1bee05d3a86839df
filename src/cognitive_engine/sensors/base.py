"""Sensor sources and scoped subscriptions.

A :class:`SensorSource` fans samples out to listeners.  Subscribing returns
a :class:`Subscription` handle; releasing it twice is harmless, so owners can
release on every exit path without bookkeeping.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable

import structlog

from cognitive_engine.errors import InvalidSample
from cognitive_engine.models import SampleKind, SensorSample
from cognitive_engine.sensors.normalize import normalize_sample

logger = structlog.get_logger(__name__)

SampleListener = Callable[[SensorSample], None]


class Subscription:
    """Handle for one listener registration."""

    def __init__(self, source: SensorSource, listener: SampleListener) -> None:
        self._source = source
        self._listener = listener
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    @property
    def source(self) -> SensorSource:
        return self._source

    def release(self) -> None:
        """Detach the listener.  Safe to call more than once."""
        if not self._active:
            return
        self._active = False
        self._source._remove(self._listener)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()


class SensorSource(ABC):
    """Contract for anything that produces sensor samples.

    Concrete sources decide *when* samples arrive; this base class handles
    listener bookkeeping and isolates listener failures from each other.
    """

    kind: SampleKind

    def __init__(self, sampling_interval_ms: int | None = None) -> None:
        self._listeners: list[SampleListener] = []
        self.sampling_interval_ms = sampling_interval_ms

    @property
    @abstractmethod
    def available(self) -> bool:
        """Whether the underlying sensor can currently deliver samples."""

    def subscribe(self, listener: SampleListener) -> Subscription:
        self._listeners.append(listener)
        logger.debug("sensor.subscribed", kind=self.kind.value, listeners=len(self._listeners))
        return Subscription(self, listener)

    def _remove(self, listener: SampleListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)
            logger.debug("sensor.unsubscribed", kind=self.kind.value, listeners=len(self._listeners))

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _deliver(self, sample: SensorSample) -> None:
        for listener in list(self._listeners):
            try:
                listener(sample)
            except Exception as exc:
                logger.error(
                    "sensor.listener_error",
                    kind=self.kind.value,
                    listener=getattr(listener, "__qualname__", repr(listener)),
                    error=str(exc),
                )


class PushSensorSource(SensorSource):
    """Source fed by an external producer calling :meth:`emit`.

    Used for client-side feeds (face detector callback, device-motion
    listener) relayed over the live-session WebSocket.  With a
    ``sampling_interval_ms``, samples arriving sooner than that after the
    last delivered one are dropped and counted in :attr:`throttled_total`.
    """

    def __init__(
        self,
        kind: SampleKind,
        sampling_interval_ms: int | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(sampling_interval_ms)
        self.kind = kind
        self._available = True
        self._clock = clock
        self._last_delivered: float | None = None
        self._delivered_total = 0
        self._throttled_total = 0

    @property
    def available(self) -> bool:
        return self._available

    def set_available(self, available: bool) -> None:
        self._available = available

    @property
    def throttled_total(self) -> int:
        return self._throttled_total

    @property
    def stats(self) -> dict[str, int]:
        return {"delivered_total": self._delivered_total, "throttled_total": self._throttled_total}

    def emit(self, raw: Any) -> SensorSample | None:
        """Normalise *raw* and deliver it to all listeners.

        Returns ``None`` when the sample falls inside the sampling interval.
        Raises :class:`~cognitive_engine.errors.InvalidSample` for malformed
        input, before any listener sees it.
        """
        sample = normalize_sample(raw)
        if sample.kind != self.kind.value:
            raise InvalidSample(
                f"{self.kind.value} source cannot emit a {sample.kind} sample.",
                field="kind",
            )
        now = self._clock()
        if (
            self.sampling_interval_ms
            and self._last_delivered is not None
            and (now - self._last_delivered) * 1000 < self.sampling_interval_ms
        ):
            self._throttled_total += 1
            logger.debug("sensor.sample_throttled", kind=self.kind.value, throttled=self._throttled_total)
            return None
        self._last_delivered = now
        self._delivered_total += 1
        self._deliver(sample)
        return sample


@dataclass(frozen=True, slots=True)
class CameraBinding:
    """Caller-owned camera handle.

    The engine never asks for permission itself; it only reads the state
    the caller reports here.
    """

    permission_granted: bool = True
    hardware_available: bool = True
    device_id: str = "default"

    @property
    def usable(self) -> bool:
        return self.permission_granted and self.hardware_available

    @property
    def unavailable_reason(self) -> str | None:
        if not self.permission_granted:
            return "permission_denied"
        if not self.hardware_available:
            return "hardware_absent"
        return None
