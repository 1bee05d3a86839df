"""Attention scoring from eye openness and head pose."""

from __future__ import annotations

from dataclasses import dataclass

from cognitive_engine.models import AttentionScore, FaceSample


@dataclass(frozen=True, slots=True)
class AttentionWeights:
    """Blend of the eye-openness and head-angle components.

    The weights are policy, not algorithm: tune them per deployment via
    ``ATTENTION_EYE_WEIGHT`` / ``ATTENTION_HEAD_WEIGHT``.
    """

    eye: float = 0.6
    head: float = 0.4

    def __post_init__(self) -> None:
        if self.eye < 0 or self.head < 0:
            raise ValueError("Attention weights must be non-negative.")
        if abs(self.eye + self.head - 1.0) > 1e-9:
            raise ValueError(
                f"Attention weights must sum to 1.0 (got {self.eye} + {self.head})."
            )


DEFAULT_ATTENTION_WEIGHTS = AttentionWeights()


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def eye_open_score(face: FaceSample) -> float:
    return (face.left_eye_open_probability + face.right_eye_open_probability) / 2


def head_angle_score(face: FaceSample) -> float:
    """1.0 for an upright head, falling linearly to 0.0 at ±180°."""
    return clamp01(1 - abs(face.roll_angle) / 180)


class AttentionScorer:
    """Pure scorer mapping a :class:`FaceSample` to an :class:`AttentionScore`.

    Range checks on the sample happen when the sample is constructed, so
    every ``FaceSample`` reaching :meth:`score` is already valid.
    """

    def __init__(self, weights: AttentionWeights | None = None) -> None:
        self._weights = weights or DEFAULT_ATTENTION_WEIGHTS

    @property
    def weights(self) -> AttentionWeights:
        return self._weights

    def score(self, face: FaceSample) -> AttentionScore:
        value = (
            eye_open_score(face) * self._weights.eye
            + head_angle_score(face) * self._weights.head
        )
        return AttentionScore(value=clamp01(value), sample=face)
