"""In-memory classification history, bounded per user."""

from __future__ import annotations

import uuid
from collections import deque
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from cognitive_engine.cognitive.trend import CognitiveLoadTracker
from cognitive_engine.models import BiometricBundle, CognitiveState


class ClassificationRecord(BaseModel):
    """One classified bundle for a user, in forwarding / history shape."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    biometric_data: dict[str, Any]
    cognitive_state: dict[str, Any]
    needs_adaptation: bool
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class ClassificationHistory:
    """Recent classifications and load trackers keyed by user.

    Each user keeps at most ``max_per_user`` records; the oldest are evicted.
    """

    def __init__(self, max_per_user: int = 100, load_history_size: int = 20) -> None:
        self._max = max_per_user
        self._load_history_size = load_history_size
        self._records: dict[str, deque[ClassificationRecord]] = {}
        self._trackers: dict[str, CognitiveLoadTracker] = {}

    def record(
        self,
        user_id: str,
        bundle: BiometricBundle,
        state: CognitiveState,
        *,
        needs_adaptation: bool,
    ) -> ClassificationRecord:
        rec = ClassificationRecord(
            user_id=user_id,
            biometric_data=bundle.model_dump(mode="json"),
            cognitive_state=state.to_wire(),
            needs_adaptation=needs_adaptation,
        )
        self._records.setdefault(user_id, deque(maxlen=self._max)).append(rec)
        tracker = self._trackers.get(user_id)
        if tracker is None:
            tracker = self._trackers[user_id] = CognitiveLoadTracker(maxlen=self._load_history_size)
        tracker.record(state)
        return rec

    def recent(self, user_id: str, limit: int = 50) -> list[ClassificationRecord]:
        """Newest first."""
        rows = self._records.get(user_id)
        if not rows:
            return []
        return list(reversed(rows))[:limit]

    def get_tracker(self, user_id: str) -> CognitiveLoadTracker | None:
        """Load tracker for *user_id*, or ``None`` if nothing was recorded."""
        return self._trackers.get(user_id)

    def clear(self, user_id: str) -> bool:
        had = user_id in self._records
        self._records.pop(user_id, None)
        self._trackers.pop(user_id, None)
        return had

    @property
    def user_count(self) -> int:
        return len(self._records)

    @property
    def tracker_count(self) -> int:
        return len(self._trackers)
