"""Shared pytest fixtures."""

from __future__ import annotations

import asyncio
import copy
from typing import Any

import pytest

from cognitive_engine.cognitive.classifier import CognitiveStateClassifier
from cognitive_engine.haptics.drivers import HapticDriver
from cognitive_engine.haptics.sequencer import HapticSequencer
from cognitive_engine.models import BiometricBundle, BrainwaveBands, FaceSample, HapticCommand, MotionSample
from cognitive_engine.scoring.attention import AttentionScorer
from cognitive_engine.session.controller import TrackingSessionController

_SCENARIO_PAYLOAD: dict[str, Any] = {
    "eeg_patterns": [0.2, 0.7, 0.1, 0.1],
    "heart_rate": 90,
    "gsr_level": 0.8,
    "eye_tracking": {
        "gaze_position": {"x": 0.4, "y": 0.6},
        "pupil_dilation": 0.6,
        "fixation_duration": 0.5,
    },
    "facial_expressions": {
        "attention": 0.5,
        "emotion": "neutral",
        "micro_expressions": ["brow_raise"],
        "engagement_score": 0.5,
    },
    "timestamp": "2024-05-01T10:00:00Z",
}


class RecordingDriver(HapticDriver):
    """Keeps every command it is asked to play."""

    name = "recording"

    def __init__(self) -> None:
        self.commands: list[HapticCommand] = []

    async def play(self, command: HapticCommand) -> None:
        self.commands.append(command)


class RecordingSleep:
    """Stand-in for ``asyncio.sleep`` that records durations and yields once."""

    def __init__(self) -> None:
        self.calls: list[float] = []
        self.release = asyncio.Event()
        self.release.set()

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        await asyncio.sleep(0)
        await self.release.wait()


# ── Samples ───────────────────────────────────────────────────


@pytest.fixture
def attentive_face() -> FaceSample:
    return FaceSample(
        left_eye_open_probability=0.9,
        right_eye_open_probability=0.9,
        roll_angle=10.0,
    )


@pytest.fixture
def drowsy_face() -> FaceSample:
    return FaceSample(
        left_eye_open_probability=0.05,
        right_eye_open_probability=0.1,
        roll_angle=120.0,
    )


@pytest.fixture
def abrupt_motion() -> MotionSample:
    return MotionSample(rotation_alpha=0.1, rotation_beta=0.2, rotation_gamma=0.9)


@pytest.fixture
def steady_motion() -> MotionSample:
    return MotionSample(rotation_gamma=0.1)


@pytest.fixture
def scenario_payload() -> dict[str, Any]:
    return copy.deepcopy(_SCENARIO_PAYLOAD)


@pytest.fixture
def overloaded_payload() -> dict[str, Any]:
    payload = copy.deepcopy(_SCENARIO_PAYLOAD)
    payload["heart_rate"] = 160
    payload["gsr_level"] = 1.0
    payload["eye_tracking"]["pupil_dilation"] = 1.0
    return payload


@pytest.fixture
def bundle() -> BiometricBundle:
    return BiometricBundle(
        eeg_bands=BrainwaveBands(alpha=0.2, beta=0.7, theta=0.1, delta=0.1),
        heart_rate=90,
        gsr_level=0.8,
        pupil_dilation=0.6,
        fixation_duration=0.5,
        facial_attention=0.5,
        emotion_label="neutral",
    )


# ── Components ────────────────────────────────────────────────


@pytest.fixture
def classifier() -> CognitiveStateClassifier:
    return CognitiveStateClassifier()


@pytest.fixture
def scorer() -> AttentionScorer:
    return AttentionScorer()


@pytest.fixture
def driver() -> RecordingDriver:
    return RecordingDriver()


@pytest.fixture
def fake_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def sequencer(driver: RecordingDriver, fake_sleep: RecordingSleep) -> HapticSequencer:
    return HapticSequencer(driver, sleep=fake_sleep)


@pytest.fixture
def session(sequencer: HapticSequencer) -> TrackingSessionController:
    return TrackingSessionController(sequencer=sequencer, calibration_samples=3, session_id="test")
