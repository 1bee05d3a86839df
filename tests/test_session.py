"""Tests for the tracking session controller."""

import asyncio

import pytest

from cognitive_engine.config import Settings
from cognitive_engine.haptics.sequencer import SequencerState
from cognitive_engine.models import HapticFeedbackType, OutcomeStatus, SampleKind, ServiceState
from cognitive_engine.sensors.base import CameraBinding, PushSensorSource
from cognitive_engine.session.controller import TrackingSessionController
from cognitive_engine.session.subscriptions import SubscriptionSet

_ATTENTIVE = {"leftEyeOpenProbability": 0.9, "rightEyeOpenProbability": 0.9, "rollAngle": 10}
_DROWSY = {"leftEyeOpenProbability": 0.05, "rightEyeOpenProbability": 0.05, "rollAngle": 150}


def _tracking(session: TrackingSessionController) -> TrackingSessionController:
    session.bind_camera(CameraBinding())
    assert session.start_tracking() is True
    return session


class TestLifecycle:
    def test_initial_state(self, session):
        assert session.get_state() == ServiceState()

    def test_start_requires_camera(self, session):
        assert session.start_tracking() is False
        assert session.get_state().is_tracking is False

    def test_start_stop_guards(self, session):
        _tracking(session)
        assert session.start_tracking() is False
        assert session.stop_tracking() is True
        assert session.stop_tracking() is False

    def test_get_state_returns_copies(self, session):
        first = session.get_state()
        assert session.get_state() == first
        assert session.get_state() is not first

    def test_denied_camera_reported_not_raised(self, session):
        assert session.bind_camera(CameraBinding(permission_granted=False)) is False
        assert session.has_camera is False
        assert session.get_state().calibration_complete is False
        assert session.start_tracking() is False
        assert session.diagnostics["sensor_unavailable_count"] == 1

    def test_losing_camera_stops_tracking(self, session):
        _tracking(session)
        session.bind_camera(CameraBinding(hardware_available=False))
        assert session.get_state().is_tracking is False

    def test_from_settings(self):
        settings = Settings(attention_eye_weight=0.5, attention_head_weight=0.5, calibration_samples=2)
        controller = TrackingSessionController.from_settings(settings, session_id="cfg")
        assert controller.session_id == "cfg"
        assert controller.sequencer.state is SequencerState.IDLE


class TestSampleProcessing:
    @pytest.mark.asyncio
    async def test_samples_ignored_when_not_tracking(self, session, attentive_face, abrupt_motion):
        assert session.process_face_sample(attentive_face).status is OutcomeStatus.SKIPPED
        assert session.process_motion_sample(abrupt_motion).status is OutcomeStatus.SKIPPED
        assert session.get_state().last_attention_score == 0.0
        assert session.sequencer.state is SequencerState.IDLE

    @pytest.mark.asyncio
    async def test_face_updates_score(self, session, attentive_face):
        _tracking(session)
        outcome = session.process_face_sample(attentive_face)
        assert outcome.status is OutcomeStatus.PROCESSED
        assert outcome.attention_score == pytest.approx(0.918, abs=1e-3)
        assert outcome.haptic_triggered is None
        assert session.get_state().last_attention_score == pytest.approx(0.918, abs=1e-3)

    @pytest.mark.asyncio
    async def test_low_attention_triggers_focus(self, session, drowsy_face, driver):
        _tracking(session)
        outcome = session.process_face_sample(drowsy_face)
        assert outcome.haptic_triggered is HapticFeedbackType.FOCUS
        await session.sequencer.wait_idle()
        assert {c.feedback_type for c in driver.commands} == {HapticFeedbackType.FOCUS}

    @pytest.mark.asyncio
    async def test_abrupt_motion_triggers_warning(self, session, abrupt_motion, steady_motion):
        _tracking(session)
        assert session.process_motion_sample(steady_motion).haptic_triggered is None
        assert session.process_motion_sample(abrupt_motion).haptic_triggered is HapticFeedbackType.WARNING
        await session.sequencer.wait_idle()

    @pytest.mark.asyncio
    async def test_invalid_sample_is_tagged(self, session):
        _tracking(session)
        outcome = session.process_sample({"leftEyeOpenProbability": 2.0, "rightEyeOpenProbability": 0.5, "rollAngle": 0})
        assert outcome.status is OutcomeStatus.INVALID
        assert outcome.kind is SampleKind.FACE
        assert session.process_face_sample(_ATTENTIVE).status is OutcomeStatus.PROCESSED

    @pytest.mark.asyncio
    async def test_calibration_completes_after_valid_faces(self, session):
        _tracking(session)
        for _ in range(2):
            session.process_face_sample(_ATTENTIVE)
        assert session.get_state().calibration_complete is False
        session.process_face_sample(_ATTENTIVE)
        assert session.get_state().calibration_complete is True

    @pytest.mark.asyncio
    async def test_biometric_overload_triggers_warning(self, session, overloaded_payload):
        _tracking(session)
        outcome = session.process_sample(overloaded_payload)
        assert outcome.kind is SampleKind.BIOMETRIC
        assert outcome.haptic_triggered is HapticFeedbackType.WARNING
        assert session.last_cognitive_state.cognitive_load == 1.0
        await session.sequencer.wait_idle()

    @pytest.mark.asyncio
    async def test_biometric_low_focus_triggers_focus(self, session, scenario_payload):
        _tracking(session)
        scenario_payload["eeg_patterns"] = [0.1, 0.1, 0.8, 0.1]
        scenario_payload["eye_tracking"]["fixation_duration"] = 0.1
        scenario_payload["facial_expressions"]["attention"] = 0.1
        outcome = session.process_sample(scenario_payload)
        assert outcome.status is OutcomeStatus.PROCESSED
        assert outcome.haptic_triggered is HapticFeedbackType.FOCUS
        assert session.last_cognitive_state.focus_level == pytest.approx(0.07)
        await session.sequencer.wait_idle()


class TestFacesDetected:
    @pytest.mark.asyncio
    async def test_first_face_only(self, session):
        _tracking(session)
        outcome = session.handle_faces_detected({"faces": [_ATTENTIVE, _DROWSY]})
        assert outcome.haptic_triggered is None
        assert session.get_state().last_attention_score == pytest.approx(0.918, abs=1e-3)

    @pytest.mark.asyncio
    async def test_no_faces_or_not_tracking(self, session):
        assert session.handle_faces_detected({"faces": [_ATTENTIVE]}).status is OutcomeStatus.SKIPPED
        _tracking(session)
        assert session.handle_faces_detected({"faces": []}).status is OutcomeStatus.SKIPPED
        assert session.get_state().last_attention_score == 0.0

    @pytest.mark.asyncio
    async def test_faces_not_a_list_is_tagged_invalid(self, session):
        _tracking(session)
        outcome = session.handle_faces_detected({"faces": {"leftEyeOpenProbability": 0.5}})
        assert outcome.status is OutcomeStatus.INVALID
        assert outcome.kind is SampleKind.FACE
        assert "faces" in outcome.error
        assert session.diagnostics["invalid_samples"] == 1
        assert session.handle_faces_detected({"faces": [_ATTENTIVE]}).status is OutcomeStatus.PROCESSED


class TestTeardown:
    @pytest.mark.asyncio
    async def test_close_releases_everything(self, session, fake_sleep):
        faces = PushSensorSource(SampleKind.FACE)
        motion = PushSensorSource(SampleKind.MOTION)
        session.attach_source(faces)
        session.attach_source(motion)
        _tracking(session)
        fake_sleep.release.clear()
        session.process_face_sample(_DROWSY)
        assert session.sequencer.is_playing

        await session.close()
        assert faces.listener_count == 0
        assert motion.listener_count == 0
        assert session.get_state().is_tracking is False
        assert session.sequencer.state is SequencerState.IDLE

        await session.close()  # idempotent
        with pytest.raises(RuntimeError):
            session.attach_source(faces)

    @pytest.mark.asyncio
    async def test_async_with_tears_down_on_error(self, sequencer):
        faces = PushSensorSource(SampleKind.FACE)
        with pytest.raises(ValueError):
            async with TrackingSessionController(sequencer=sequencer) as session:
                session.attach_source(faces)
                raise ValueError("boom")
        assert faces.listener_count == 0
        assert session.closed

    @pytest.mark.asyncio
    async def test_source_samples_flow_through_pipeline(self, sequencer):
        faces = PushSensorSource(SampleKind.FACE)
        async with TrackingSessionController(sequencer=sequencer) as session:
            session.attach_source(faces)
            _tracking(session)
            faces.emit(_DROWSY)
            faces.emit(_ATTENTIVE)  # replaces the unprocessed drowsy sample
            await asyncio.sleep(0.05)
            state = session.get_state()
            assert state.last_attention_score == pytest.approx(0.918, abs=1e-3)
            assert session.diagnostics["pipeline"]["dropped_total"] == 1


def test_subscription_set_release_all_is_idempotent():
    source = PushSensorSource(SampleKind.MOTION)
    subs = SubscriptionSet()
    subs.add(source.subscribe(lambda s: None))
    subs.add(source.subscribe(lambda s: None))
    assert subs.active_count == 2
    assert subs.release_all() == 2
    assert subs.release_all() == 0
    assert source.listener_count == 0
