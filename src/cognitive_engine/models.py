"""Shared Pydantic models used across the engine.

Sensor samples are immutable once constructed and always timestamped.
Numeric fields reject ``NaN`` / ``inf`` so that a malformed measurement can
never leak into a score.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

_FROZEN = ConfigDict(frozen=True, allow_inf_nan=False)

# ── Enums ─────────────────────────────────────────────────────


class SampleKind(str, Enum):
    """Discriminator values for :data:`SensorSample`."""
    FACE = "face"
    MOTION = "motion"
    BIOMETRIC = "biometric"


class ContentModality(str, Enum):
    """Content presentation style best suited to the learner right now."""
    VISUAL = "visual"
    AUDITORY = "auditory"
    KINESTHETIC = "kinesthetic"
    READING = "reading"


class HapticFeedbackType(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    FOCUS = "focus"


class HapticIntensity(str, Enum):
    """Coarse actuator categories a device can actually render."""
    STRONG = "strong"
    MEDIUM = "medium"
    LIGHT = "light"


class RecommendationTag(str, Enum):
    """Actionable content-adaptation recommendations."""
    TAKE_A_BREAK = "take_a_break"
    MINDFULNESS = "mindfulness"
    CHUNK_CONTENT = "chunk_content"
    REVIEW_BASICS = "review_basics"
    SWITCH_TO_INTERACTIVE = "switch_to_interactive"
    CHANGE_MODALITY = "change_modality"
    VISUAL_AIDS = "visual_aids"
    AUDIO_EXPLANATIONS = "audio_explanations"
    HANDS_ON_PRACTICE = "hands_on_practice"
    TEXT_MATERIALS = "text_materials"


class OutcomeStatus(str, Enum):
    PROCESSED = "processed"
    SKIPPED = "skipped"  # not tracking, or nothing to process
    INVALID = "invalid"


# ── Sensor samples ────────────────────────────────────────────


class FaceSample(BaseModel):
    """Face-landmark classification result for a single detected face."""
    model_config = _FROZEN

    kind: Literal["face"] = "face"
    left_eye_open_probability: float = Field(ge=0.0, le=1.0)
    right_eye_open_probability: float = Field(ge=0.0, le=1.0)
    roll_angle: float = Field(ge=-180.0, le=180.0)
    yaw_angle: float | None = None
    pitch_angle: float | None = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class MotionSample(BaseModel):
    """Device rotation rates in rad/s."""
    model_config = _FROZEN

    kind: Literal["motion"] = "motion"
    rotation_alpha: float = 0.0
    rotation_beta: float = 0.0
    rotation_gamma: float
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class BrainwaveBands(BaseModel):
    """EEG band powers, already separated upstream."""
    model_config = _FROZEN

    alpha: float
    beta: float
    theta: float
    delta: float


class GazePosition(BaseModel):
    model_config = _FROZEN

    x: float
    y: float


class BiometricBundle(BaseModel):
    """Server-side multi-modal measurement bundle.

    ``emotion_label`` comes from an external facial-expression classifier
    and is trusted as-is.
    """
    model_config = _FROZEN

    kind: Literal["biometric"] = "biometric"
    eeg_bands: BrainwaveBands
    heart_rate: float
    gsr_level: float
    pupil_dilation: float
    fixation_duration: float
    facial_attention: float
    emotion_label: str = Field(min_length=1)
    gaze_position: GazePosition | None = None
    micro_expressions: tuple[str, ...] = ()
    engagement_score: float | None = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)


SensorSample = Annotated[
    Union[FaceSample, MotionSample, BiometricBundle],
    Field(discriminator="kind"),
]


# ── Derived values ────────────────────────────────────────────


class AttentionScore(BaseModel):
    """Attention score, always attached to the face sample that produced it."""
    model_config = _FROZEN

    value: float = Field(ge=0.0, le=1.0)
    sample: FaceSample


class CognitiveState(BaseModel):
    """Instantaneous learner state produced by one classification call."""
    model_config = _FROZEN

    focus_level: float = Field(ge=0.0, le=1.0)
    cognitive_load: float = Field(ge=0.0, le=1.0)
    emotional_state: str
    brainwave_bands: BrainwaveBands = Field(serialization_alias="brainwave_states")
    learning_readiness: float = Field(ge=0.0, le=1.0)
    optimal_content_type: ContentModality
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    def to_wire(self) -> dict:
        """Serialise in the JSON shape used by the HTTP interface."""
        return self.model_dump(mode="json", by_alias=True)


class ClassificationResult(BaseModel):
    """Tagged result of analysing one biometric bundle.

    Exactly one of ``state`` / ``error`` is set, depending on ``ok``.
    """
    model_config = ConfigDict(frozen=True)

    ok: bool
    state: CognitiveState | None = None
    recommendation_tags: list[RecommendationTag] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    needs_adaptation: bool = False
    error: str | None = None
    error_field: str | None = None


# ── Haptics ───────────────────────────────────────────────────


class HapticStep(BaseModel):
    model_config = _FROZEN

    intensity: float = Field(ge=0.0, le=1.0)
    duration_ms: int = Field(ge=0)


class HapticPattern(BaseModel):
    """Ordered steps defining one tactile cue."""
    model_config = _FROZEN

    feedback_type: HapticFeedbackType
    steps: tuple[HapticStep, ...]


class HapticCommand(BaseModel):
    """A single actuator instruction emitted while a pattern plays."""
    model_config = ConfigDict(frozen=True)

    feedback_type: HapticFeedbackType
    step_index: int
    intensity: HapticIntensity
    raw_intensity: float
    duration_ms: int
    timestamp: datetime = Field(default_factory=datetime.utcnow)


# ── Session ───────────────────────────────────────────────────


class ServiceState(BaseModel):
    """Read-only snapshot of a tracking session."""
    model_config = ConfigDict(frozen=True)

    is_tracking: bool = False
    last_attention_score: float = 0.0
    calibration_complete: bool = False


class SampleOutcome(BaseModel):
    """Tagged result of processing one sample in a tracking session."""
    model_config = ConfigDict(frozen=True)

    status: OutcomeStatus
    kind: SampleKind
    attention_score: float | None = None
    haptic_triggered: HapticFeedbackType | None = None
    error: str | None = None
