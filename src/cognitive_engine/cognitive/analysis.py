"""Bundle analysis — classification, recommendations, history and forwarding.

:meth:`CognitiveAnalyser.analyse` is the per-sample entry point: it never
raises for bad input and returns a tagged
:class:`~cognitive_engine.models.ClassificationResult` so a stream consumer
can skip a malformed bundle and carry on.

:meth:`CognitiveAnalyser.run` serves the HTTP request path: it normalises the
wire payload, records the result in the per-user history and optionally
forwards it upstream.
"""

from __future__ import annotations

from typing import Any, Mapping

import structlog
from pydantic import BaseModel

from cognitive_engine.cognitive.classifier import AdaptationThresholds, CognitiveStateClassifier
from cognitive_engine.cognitive.history import ClassificationHistory
from cognitive_engine.cognitive.recommendations import RecommendationGenerator, recommendation_messages
from cognitive_engine.cognitive.trend import LoadTrendMetrics
from cognitive_engine.config import Settings
from cognitive_engine.errors import InvalidSample
from cognitive_engine.forwarding import ResultForwarder
from cognitive_engine.models import BiometricBundle, ClassificationResult, CognitiveState
from cognitive_engine.sensors.normalize import bundle_from_payload

logger = structlog.get_logger(__name__)


class AnalysisReport(BaseModel):
    """Everything the HTTP layer returns for one classified bundle."""
    record_id: str
    state: CognitiveState
    recommendations: list[str]
    needs_adaptation: bool
    load_trend: LoadTrendMetrics | None = None

    def to_wire(self) -> dict[str, Any]:
        return {
            "cognitive_state": self.state.to_wire(),
            "recommendations": self.recommendations,
            "needs_adaptation": self.needs_adaptation,
            "load_trend": self.load_trend.model_dump(mode="json") if self.load_trend else None,
        }


class CognitiveAnalyser:
    """Classifies bundles and records them in per-user history."""

    def __init__(
        self,
        classifier: CognitiveStateClassifier | None = None,
        recommender: RecommendationGenerator | None = None,
        *,
        history: ClassificationHistory | None = None,
        forwarder: ResultForwarder | None = None,
    ) -> None:
        self._classifier = classifier or CognitiveStateClassifier()
        self._recommender = recommender or RecommendationGenerator(
            focus_low=self._classifier.thresholds.focus_low,
            load_high=self._classifier.thresholds.load_high,
        )
        self._history = history or ClassificationHistory()
        self._forwarder = forwarder

    @classmethod
    def from_settings(cls, settings: Settings) -> CognitiveAnalyser:
        thresholds = AdaptationThresholds(
            load_high=settings.load_high_threshold,
            focus_low=settings.focus_low_threshold,
        )
        forwarder = None
        if settings.forward_url:
            forwarder = ResultForwarder(settings.forward_url, timeout=settings.forward_timeout)
        return cls(
            CognitiveStateClassifier(thresholds=thresholds),
            RecommendationGenerator(
                focus_low=settings.focus_low_threshold,
                load_high=settings.load_high_threshold,
            ),
            history=ClassificationHistory(
                max_per_user=settings.history_max_per_user,
                load_history_size=settings.load_history_size,
            ),
            forwarder=forwarder,
        )

    @property
    def history(self) -> ClassificationHistory:
        return self._history

    @property
    def forwarder(self) -> ResultForwarder | None:
        return self._forwarder

    # ── Tagged per-sample analysis ────────────────────────────

    def analyse(self, bundle: BiometricBundle | Mapping[str, Any]) -> ClassificationResult:
        """Classify *bundle* (model or wire dict) without raising on bad input."""
        try:
            if not isinstance(bundle, BiometricBundle):
                bundle = bundle_from_payload(bundle)
            state = self._classifier.classify(bundle)
        except InvalidSample as exc:
            logger.warning("analysis.invalid_bundle", field=exc.field, error=str(exc))
            return ClassificationResult(ok=False, error=str(exc), error_field=exc.field)

        tags = self._recommender.recommend(state)
        return ClassificationResult(
            ok=True,
            state=state,
            recommendation_tags=tags,
            recommendations=recommendation_messages(tags),
            needs_adaptation=self._classifier.needs_adaptation(state),
        )

    # ── Request path ──────────────────────────────────────────

    async def run(self, user_id: str, biometric_data: Mapping[str, Any]) -> AnalysisReport:
        """Classify, record and (optionally) forward one wire payload.

        Raises :class:`InvalidSample` for a malformed payload and
        :class:`~cognitive_engine.errors.UpstreamFailure` when forwarding
        fails.
        """
        bundle = bundle_from_payload(biometric_data)
        state = self._classifier.classify(bundle)
        tags = self._recommender.recommend(state)
        adapt = self._classifier.needs_adaptation(state)

        record = self._history.record(user_id, bundle, state, needs_adaptation=adapt)
        logger.info(
            "analysis.classified",
            user_id=user_id,
            record_id=record.id,
            focus=state.focus_level,
            load=state.cognitive_load,
            needs_adaptation=adapt,
        )
        if self._forwarder is not None:
            await self._forwarder.forward(record)

        return AnalysisReport(
            record_id=record.id,
            state=state,
            recommendations=recommendation_messages(tags),
            needs_adaptation=adapt,
            load_trend=self._history.get_tracker(user_id).metrics(),
        )
