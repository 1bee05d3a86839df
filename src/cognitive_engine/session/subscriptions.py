"""Owned group of sensor subscriptions, released together."""

from __future__ import annotations

from typing import Iterator

import structlog

from cognitive_engine.sensors.base import Subscription

logger = structlog.get_logger(__name__)


class SubscriptionSet:
    """Holds every subscription a session opened.

    ``release_all`` detaches each one even when an earlier release fails, and
    can be called any number of times.
    """

    def __init__(self) -> None:
        self._items: list[Subscription] = []

    def add(self, subscription: Subscription) -> Subscription:
        self._items.append(subscription)
        return subscription

    def release_all(self) -> int:
        """Release everything; returns how many were still active."""
        released = 0
        items, self._items = self._items, []
        for subscription in items:
            if not subscription.active:
                continue
            try:
                subscription.release()
                released += 1
            except Exception as exc:
                logger.error(
                    "session.subscription_release_failed",
                    kind=subscription.source.kind.value,
                    error=str(exc),
                )
        return released

    @property
    def active_count(self) -> int:
        return sum(1 for s in self._items if s.active)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Subscription]:
        return iter(list(self._items))
