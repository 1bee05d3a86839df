"""Async sample pipeline connecting sensor callbacks → session processing."""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable

import structlog

from cognitive_engine.models import SampleKind, SensorSample

logger = structlog.get_logger(__name__)


class SamplePipeline:
    """In-process pipeline with one pending slot per sample kind.

    Producers (sensor callbacks) call :meth:`offer`, which never blocks.  If
    the consumer loop has not yet picked up the previous sample of the same
    kind, that sample is replaced by the newer one and counted as dropped:
    the latest sample wins and nothing queues without bound.  Surviving
    samples are handed to consumers in arrival order.
    """

    def __init__(self) -> None:
        self._pending: dict[SampleKind, tuple[int, SensorSample]] = {}
        self._seq = 0
        self._ready = asyncio.Event()
        self._consumers: list[Callable[[SensorSample], Awaitable[None]]] = []
        self._running = False
        self._processed_total = 0
        self._dropped_total = 0

    # ── Configuration ─────────────────────────────────────────

    def add_consumer(self, fn: Callable[[SensorSample], Awaitable[None]]) -> None:
        """Register an async callback that receives every surviving sample."""
        self._consumers.append(fn)

    # ── Producer side ─────────────────────────────────────────

    def offer(self, sample: SensorSample) -> bool:
        """Hand a sample to the pipeline.

        Returns ``False`` when it replaced an unprocessed sample of the same
        kind.
        """
        kind = SampleKind(sample.kind)
        replaced = kind in self._pending
        if replaced:
            self._dropped_total += 1
            logger.debug("sample_pipeline.dropped", kind=kind.value, dropped_total=self._dropped_total)
        self._seq += 1
        self._pending[kind] = (self._seq, sample)
        self._ready.set()
        return not replaced

    # ── Consumer loop ─────────────────────────────────────────

    async def start(self) -> None:
        """Run the consumer loop (run as a background task)."""
        self._running = True
        logger.info("sample_pipeline.started", consumers=len(self._consumers))
        last_stats_time = time.monotonic()

        while self._running:
            try:
                await asyncio.wait_for(self._ready.wait(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            self._ready.clear()

            batch = [sample for _, sample in sorted(self._pending.values(), key=lambda item: item[0])]
            self._pending.clear()

            for sample in batch:
                for consumer in self._consumers:
                    try:
                        await consumer(sample)
                    except Exception as exc:
                        logger.error(
                            "sample_pipeline.consumer_error",
                            consumer=getattr(consumer, "__qualname__", repr(consumer)),
                            kind=sample.kind,
                            error=str(exc),
                        )
                self._processed_total += 1

            now = time.monotonic()
            if now - last_stats_time >= 60:
                logger.info("sample_pipeline.stats", **self.stats)
                last_stats_time = now

    async def stop(self) -> None:
        """Stop the consumer loop and discard anything still pending."""
        self._running = False
        self._pending.clear()
        self._ready.set()
        logger.info("sample_pipeline.stopped", **self.stats)

    # ── Introspection ─────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self._running

    @property
    def pending(self) -> int:
        return len(self._pending)

    @property
    def stats(self) -> dict[str, int]:
        return {
            "processed_total": self._processed_total,
            "dropped_total": self._dropped_total,
            "pending": len(self._pending),
        }
