"""Tracking session controller — owns one learner's live sensor session.

The controller is the single owner of the session state.  Callers only ever
see :class:`~cognitive_engine.models.ServiceState` copies returned by
:meth:`TrackingSessionController.get_state`.

Typical use::

    async with TrackingSessionController.from_settings(get_settings()) as session:
        session.bind_camera(CameraBinding(permission_granted=True))
        session.attach_source(face_source)
        session.attach_source(motion_source)
        session.start_tracking()
        ...
    # subscriptions released, haptics cancelled, pipeline stopped

Haptic triggers start asyncio tasks, so the ``process_*`` methods must be
called from inside a running event loop.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import asdict, dataclass
from typing import Any, Mapping

import structlog

from cognitive_engine.cognitive.classifier import (
    FOCUS_LOW_THRESHOLD,
    AdaptationThresholds,
    CognitiveStateClassifier,
)
from cognitive_engine.config import Settings
from cognitive_engine.errors import InvalidSample
from cognitive_engine.haptics.drivers import HapticDriver
from cognitive_engine.haptics.sequencer import HapticSequencer
from cognitive_engine.models import (
    BiometricBundle,
    CognitiveState,
    FaceSample,
    HapticFeedbackType,
    MotionSample,
    OutcomeStatus,
    SampleKind,
    SampleOutcome,
    SensorSample,
    ServiceState,
)
from cognitive_engine.scoring.attention import AttentionScorer, AttentionWeights
from cognitive_engine.sensors.base import CameraBinding, SensorSource, Subscription
from cognitive_engine.sensors.normalize import face_from_landmarks, motion_from_device, normalize_sample
from cognitive_engine.session.subscriptions import SubscriptionSet
from cognitive_engine.streaming.pipeline import SamplePipeline

logger = structlog.get_logger(__name__)


@dataclass
class _SessionState:
    is_tracking: bool = False
    last_attention_score: float = 0.0
    calibration_complete: bool = False


class TrackingSessionController:
    """Session lifecycle, sensor wiring and haptic triggering for one learner.

    Parameters
    ----------
    scorer : AttentionScorer
        Face-sample attention scorer.
    sequencer : HapticSequencer
        Haptic playback state machine.
    classifier : CognitiveStateClassifier
        Used for biometric bundles fed into the session.
    focus_low_threshold : float
        Attention score below which a ``focus`` haptic is triggered.
    calibration_samples : int
        Valid face samples required before calibration counts as complete.
    sensor_unavailable_limit : int
        Unavailable-sensor reports after which the session logs a
        session-level error (once).
    """

    def __init__(
        self,
        *,
        scorer: AttentionScorer | None = None,
        sequencer: HapticSequencer | None = None,
        classifier: CognitiveStateClassifier | None = None,
        focus_low_threshold: float = FOCUS_LOW_THRESHOLD,
        calibration_samples: int = 5,
        sensor_unavailable_limit: int = 3,
        session_id: str | None = None,
    ) -> None:
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self._scorer = scorer or AttentionScorer()
        self._sequencer = sequencer or HapticSequencer()
        self._classifier = classifier or CognitiveStateClassifier()
        self._focus_low = focus_low_threshold
        self._calibration_samples = calibration_samples
        self._unavailable_limit = sensor_unavailable_limit

        self._state = _SessionState()
        self._camera: CameraBinding | None = None
        self._subscriptions = SubscriptionSet()
        self._pipeline: SamplePipeline | None = None
        self._pipeline_task: asyncio.Task | None = None
        self._last_cognitive_state: CognitiveState | None = None

        self._valid_face_samples = 0
        self._invalid_samples = 0
        self._unavailable_count = 0
        self._unavailable_escalated = False
        self._closed = False

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        driver: HapticDriver | None = None,
        session_id: str | None = None,
    ) -> TrackingSessionController:
        """Build a controller with every policy value taken from *settings*."""
        thresholds = AdaptationThresholds(
            load_high=settings.load_high_threshold,
            focus_low=settings.focus_low_threshold,
        )
        return cls(
            scorer=AttentionScorer(
                AttentionWeights(
                    eye=settings.attention_eye_weight,
                    head=settings.attention_head_weight,
                )
            ),
            sequencer=HapticSequencer(driver, motion_threshold=settings.motion_rotation_threshold),
            classifier=CognitiveStateClassifier(thresholds=thresholds),
            focus_low_threshold=settings.focus_low_threshold,
            calibration_samples=settings.calibration_samples,
            sensor_unavailable_limit=settings.sensor_unavailable_limit,
            session_id=session_id,
        )

    # ── Snapshot ──────────────────────────────────────────────

    def get_state(self) -> ServiceState:
        """Return a copy of the session state."""
        return ServiceState(**asdict(self._state))

    @property
    def sequencer(self) -> HapticSequencer:
        return self._sequencer

    @property
    def last_cognitive_state(self) -> CognitiveState | None:
        return self._last_cognitive_state

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def diagnostics(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "camera_bound": self._camera is not None,
            "subscriptions": self._subscriptions.active_count,
            "valid_face_samples": self._valid_face_samples,
            "invalid_samples": self._invalid_samples,
            "sensor_unavailable_count": self._unavailable_count,
            "haptics": {"state": self._sequencer.state.value, **self._sequencer.stats},
            "pipeline": self._pipeline.stats if self._pipeline else None,
        }

    # ── Camera binding ────────────────────────────────────────

    def bind_camera(self, binding: CameraBinding) -> bool:
        """Attach the caller's camera.

        An unusable binding (permission denied, no hardware) leaves the
        session without a camera and is reported through the snapshot's
        ``calibration_complete=False``; nothing is raised.
        """
        if not binding.usable:
            self._camera = None
            if self._state.is_tracking:
                self.stop_tracking()
            self._report_unavailable(binding.unavailable_reason or "unavailable")
            return False
        self._camera = binding
        logger.info("session.camera_bound", session=self.session_id, device=binding.device_id)
        return True

    def unbind_camera(self) -> None:
        if self._state.is_tracking:
            self.stop_tracking()
        if self._camera is not None:
            logger.info("session.camera_unbound", session=self.session_id)
        self._camera = None

    @property
    def has_camera(self) -> bool:
        return self._camera is not None

    def _report_unavailable(self, reason: str) -> None:
        self._unavailable_count += 1
        self._state.calibration_complete = False
        self._valid_face_samples = 0
        if self._unavailable_count >= self._unavailable_limit and not self._unavailable_escalated:
            self._unavailable_escalated = True
            logger.error(
                "session.sensor_unavailable",
                session=self.session_id,
                reason=reason,
                attempts=self._unavailable_count,
            )
        else:
            logger.debug("session.sensor_unavailable_attempt", session=self.session_id, reason=reason)

    # ── Tracking lifecycle ────────────────────────────────────

    def start_tracking(self) -> bool:
        """Begin processing samples.  No-op without a camera or if already tracking."""
        if self._closed or self._state.is_tracking or self._camera is None:
            logger.debug(
                "session.start_ignored",
                session=self.session_id,
                tracking=self._state.is_tracking,
                camera=self._camera is not None,
            )
            return False
        self._state.is_tracking = True
        logger.info("session.tracking_started", session=self.session_id)
        return True

    def stop_tracking(self) -> bool:
        """Stop processing samples and cancel any playing haptic pattern."""
        if not self._state.is_tracking:
            return False
        self._state.is_tracking = False
        self._sequencer.cancel_nowait()
        logger.info("session.tracking_stopped", session=self.session_id)
        return True

    # ── Sample processing ─────────────────────────────────────

    def process_face_sample(self, sample: FaceSample | Mapping[str, Any]) -> SampleOutcome:
        """Score one face and update ``last_attention_score``.

        A score below the focus threshold triggers a ``focus`` haptic.
        """
        if not self._state.is_tracking:
            return SampleOutcome(status=OutcomeStatus.SKIPPED, kind=SampleKind.FACE)
        try:
            face = sample if isinstance(sample, FaceSample) else face_from_landmarks(sample)
        except InvalidSample as exc:
            return self._invalid(SampleKind.FACE, exc)

        score = self._scorer.score(face)
        self._state.last_attention_score = score.value
        self._valid_face_samples += 1
        if not self._state.calibration_complete and self._valid_face_samples >= self._calibration_samples:
            self._state.calibration_complete = True
            logger.info("session.calibrated", session=self.session_id, samples=self._valid_face_samples)

        haptic = None
        if score.value < self._focus_low and self._sequencer.trigger(HapticFeedbackType.FOCUS):
            haptic = HapticFeedbackType.FOCUS
        return SampleOutcome(
            status=OutcomeStatus.PROCESSED,
            kind=SampleKind.FACE,
            attention_score=score.value,
            haptic_triggered=haptic,
        )

    def process_motion_sample(self, sample: MotionSample | Mapping[str, Any]) -> SampleOutcome:
        """Apply the abrupt-motion rule to one device-motion sample."""
        if not self._state.is_tracking:
            return SampleOutcome(status=OutcomeStatus.SKIPPED, kind=SampleKind.MOTION)
        try:
            motion = sample if isinstance(sample, MotionSample) else motion_from_device(sample)
        except InvalidSample as exc:
            return self._invalid(SampleKind.MOTION, exc)

        started = self._sequencer.on_motion(motion)
        return SampleOutcome(
            status=OutcomeStatus.PROCESSED,
            kind=SampleKind.MOTION,
            haptic_triggered=HapticFeedbackType.WARNING if started else None,
        )

    def process_biometric_sample(self, bundle: BiometricBundle) -> SampleOutcome:
        """Classify a bundle; low focus cues ``focus``, overload cues ``warning``."""
        if not self._state.is_tracking:
            return SampleOutcome(status=OutcomeStatus.SKIPPED, kind=SampleKind.BIOMETRIC)
        try:
            state = self._classifier.classify(bundle)
        except InvalidSample as exc:
            return self._invalid(SampleKind.BIOMETRIC, exc)

        self._last_cognitive_state = state
        thresholds = self._classifier.thresholds
        haptic = None
        if state.focus_level < thresholds.focus_low:
            haptic = HapticFeedbackType.FOCUS
        elif state.cognitive_load > thresholds.load_high:
            haptic = HapticFeedbackType.WARNING
        if haptic is not None and not self._sequencer.trigger(haptic):
            haptic = None
        return SampleOutcome(
            status=OutcomeStatus.PROCESSED,
            kind=SampleKind.BIOMETRIC,
            haptic_triggered=haptic,
        )

    def process_sample(self, sample: SensorSample | Mapping[str, Any]) -> SampleOutcome:
        """Dispatch any supported sample to the matching ``process_*`` method."""
        try:
            normalized = normalize_sample(sample)
        except InvalidSample as exc:
            kind = _guess_kind(sample)
            if not self._state.is_tracking:
                return SampleOutcome(status=OutcomeStatus.SKIPPED, kind=kind)
            return self._invalid(kind, exc)
        if isinstance(normalized, FaceSample):
            return self.process_face_sample(normalized)
        if isinstance(normalized, MotionSample):
            return self.process_motion_sample(normalized)
        return self.process_biometric_sample(normalized)

    def handle_faces_detected(self, result: Mapping[str, Any]) -> SampleOutcome:
        """Face-detector callback: ``{"faces": [...]}``; only the first face is used."""
        faces = result.get("faces") or []
        if not self._state.is_tracking:
            return SampleOutcome(status=OutcomeStatus.SKIPPED, kind=SampleKind.FACE)
        if not isinstance(faces, (list, tuple)):
            return self._invalid(
                SampleKind.FACE, InvalidSample("Field 'faces' must be a list.", field="faces")
            )
        if not faces:
            return SampleOutcome(status=OutcomeStatus.SKIPPED, kind=SampleKind.FACE)
        return self.process_face_sample(faces[0])

    def _invalid(self, kind: SampleKind, exc: InvalidSample) -> SampleOutcome:
        self._invalid_samples += 1
        logger.warning(
            "session.invalid_sample",
            session=self.session_id,
            kind=kind.value,
            field=exc.field,
            error=str(exc),
        )
        return SampleOutcome(status=OutcomeStatus.INVALID, kind=kind, error=str(exc))

    # ── Sensor sources ────────────────────────────────────────

    def attach_source(self, source: SensorSource) -> Subscription:
        """Subscribe to *source*; the subscription is released on :meth:`close`.

        When the session pipeline is running, samples go through it
        (latest sample wins per kind); otherwise they are processed inline.
        """
        if self._closed:
            raise RuntimeError(f"Session {self.session_id} is closed.")
        if not source.available:
            self._report_unavailable(f"{source.kind.value}_source_unavailable")
        return self._subscriptions.add(source.subscribe(self._on_source_sample))

    def _on_source_sample(self, sample: SensorSample) -> None:
        if self._pipeline is not None and self._pipeline.running:
            self._pipeline.offer(sample)
        else:
            self.process_sample(sample)

    async def _consume(self, sample: SensorSample) -> None:
        self.process_sample(sample)

    async def start_pipeline(self) -> SamplePipeline:
        """Start the background sample pipeline (idempotent)."""
        if self._pipeline is None:
            self._pipeline = SamplePipeline()
            self._pipeline.add_consumer(self._consume)
            self._pipeline_task = asyncio.create_task(
                self._pipeline.start(), name=f"session-{self.session_id}-pipeline"
            )
            # Let the loop enter its wait so offers are accepted immediately.
            await asyncio.sleep(0)
        return self._pipeline

    # ── Teardown ──────────────────────────────────────────────

    async def close(self) -> None:
        """Stop tracking, cancel haptics, release subscriptions, stop the pipeline.

        Safe to call more than once.
        """
        if self._closed:
            return
        self._closed = True
        try:
            self.stop_tracking()
            await self._sequencer.cancel()
        finally:
            self._subscriptions.release_all()
            if self._pipeline is not None:
                await self._pipeline.stop()
            if self._pipeline_task is not None:
                self._pipeline_task.cancel()
                try:
                    await self._pipeline_task
                except asyncio.CancelledError:
                    pass
                self._pipeline_task = None
            logger.info("session.closed", session=self.session_id)

    async def __aenter__(self) -> TrackingSessionController:
        await self.start_pipeline()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


def _guess_kind(raw: Any) -> SampleKind:
    if isinstance(raw, Mapping):
        kind = raw.get("kind")
        if kind in {k.value for k in SampleKind}:
            return SampleKind(kind)
        if "rotation" in raw:
            return SampleKind.MOTION
        if "eeg_patterns" in raw:
            return SampleKind.BIOMETRIC
    return SampleKind.FACE
