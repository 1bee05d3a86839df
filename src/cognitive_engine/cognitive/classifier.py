"""Cognitive state classifier — fuses eye tracking, facial attention, EEG
bands and physiological arousal into a :class:`CognitiveState`.

Formulae
--------
=====================  ===========================================================
Output                 Computation (all clamped to [0, 1])
=====================  ===========================================================
brainwave attention    0.6·beta − 0.4·theta
focus level            0.4·fixation + 0.3·facial attention + 0.3·brainwave attention
cognitive load         0.3·pupil + 0.3·(HR − 60)/100 + 0.4·GSR
learning readiness     0.4·focus + 0.3·(1 − load) + 0.3·emotional factor
=====================  ===========================================================

The emotion label is produced by an external facial-expression classifier
and copied verbatim; EEG band separation also happens upstream.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

import structlog

from cognitive_engine.errors import InvalidSample
from cognitive_engine.models import (
    BiometricBundle,
    BrainwaveBands,
    CognitiveState,
    ContentModality,
)
from cognitive_engine.scoring.attention import clamp01

logger = structlog.get_logger(__name__)

# ── Policy constants ──────────────────────────────────────────

FOCUS_LOW_THRESHOLD = 0.3
LOAD_HIGH_THRESHOLD = 0.7
MODALITY_BAND_THRESHOLD = 0.6
RESTING_HEART_RATE = 60.0
HEART_RATE_SPAN = 100.0

EMOTIONAL_FACTORS: Mapping[str, float] = MappingProxyType({
    "focused": 1.0,
    "excited": 0.8,
    "neutral": 0.6,
    "bored": 0.4,
})
DEFAULT_EMOTIONAL_FACTOR = 0.2


@dataclass(frozen=True, slots=True)
class ClassifierWeights:
    """Component weights for the composite scores."""

    focus_fixation: float = 0.4
    focus_facial: float = 0.3
    focus_brainwave: float = 0.3
    load_pupil: float = 0.3
    load_heart_rate: float = 0.3
    load_gsr: float = 0.4
    readiness_focus: float = 0.4
    readiness_load: float = 0.3
    readiness_emotion: float = 0.3
    beta_attention: float = 0.6
    theta_attention: float = 0.4


@dataclass(frozen=True, slots=True)
class AdaptationThresholds:
    """When a state calls for content adaptation (strict comparisons)."""

    load_high: float = LOAD_HIGH_THRESHOLD
    focus_low: float = FOCUS_LOW_THRESHOLD


# ── Component scores ──────────────────────────────────────────


def brainwave_attention(bands: BrainwaveBands, weights: ClassifierWeights) -> float:
    """Higher beta and lower theta indicate attention."""
    return clamp01(weights.beta_attention * bands.beta - weights.theta_attention * bands.theta)


def emotional_factor(label: str) -> float:
    return EMOTIONAL_FACTORS.get(label, DEFAULT_EMOTIONAL_FACTOR)


def optimal_content_type(bands: BrainwaveBands) -> ContentModality:
    """First matching rule wins: beta, then alpha, then theta; default auditory."""
    if bands.beta > MODALITY_BAND_THRESHOLD:
        return ContentModality.READING
    if bands.alpha > MODALITY_BAND_THRESHOLD:
        return ContentModality.VISUAL
    if bands.theta > MODALITY_BAND_THRESHOLD:
        return ContentModality.KINESTHETIC
    return ContentModality.AUDITORY


def needs_adaptation(
    state: CognitiveState,
    thresholds: AdaptationThresholds | None = None,
) -> bool:
    t = thresholds or AdaptationThresholds()
    return state.cognitive_load > t.load_high or state.focus_level < t.focus_low


# ── Classifier ────────────────────────────────────────────────


@dataclass
class CognitiveStateClassifier:
    """Stateless classifier; one instance can serve any number of sessions."""

    weights: ClassifierWeights = field(default_factory=ClassifierWeights)
    thresholds: AdaptationThresholds = field(default_factory=AdaptationThresholds)

    def classify(self, bundle: BiometricBundle) -> CognitiveState:
        """Compute a :class:`CognitiveState` from a validated bundle.

        Raises :class:`InvalidSample` if *bundle* is not a
        :class:`BiometricBundle` (e.g. a raw dict that skipped normalisation).
        """
        if not isinstance(bundle, BiometricBundle):
            raise InvalidSample(
                f"Expected a BiometricBundle, got {type(bundle).__name__}.",
                field="biometric_data",
            )
        w = self.weights
        bands = bundle.eeg_bands

        focus = clamp01(
            w.focus_fixation * bundle.fixation_duration
            + w.focus_facial * bundle.facial_attention
            + w.focus_brainwave * brainwave_attention(bands, w)
        )
        load = clamp01(
            w.load_pupil * bundle.pupil_dilation
            + w.load_heart_rate * (bundle.heart_rate - RESTING_HEART_RATE) / HEART_RATE_SPAN
            + w.load_gsr * bundle.gsr_level
        )
        readiness = clamp01(
            w.readiness_focus * focus
            + w.readiness_load * (1 - load)
            + w.readiness_emotion * emotional_factor(bundle.emotion_label)
        )

        state = CognitiveState(
            focus_level=focus,
            cognitive_load=load,
            emotional_state=bundle.emotion_label,
            brainwave_bands=bands,
            learning_readiness=readiness,
            optimal_content_type=optimal_content_type(bands),
        )
        logger.debug(
            "classifier.classified",
            focus=round(focus, 3),
            load=round(load, 3),
            readiness=round(readiness, 3),
            modality=state.optimal_content_type.value,
        )
        return state

    def needs_adaptation(self, state: CognitiveState) -> bool:
        return needs_adaptation(state, self.thresholds)
