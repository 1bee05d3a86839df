"""Static haptic pattern table and intensity categorisation."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from cognitive_engine.models import HapticFeedbackType, HapticIntensity, HapticPattern, HapticStep

STRONG_MIN_INTENSITY = 0.8
MEDIUM_MIN_INTENSITY = 0.5


def _pattern(kind: HapticFeedbackType, *steps: tuple[float, int]) -> HapticPattern:
    return HapticPattern(
        feedback_type=kind,
        steps=tuple(HapticStep(intensity=i, duration_ms=d) for i, d in steps),
    )


HAPTIC_PATTERNS: Mapping[HapticFeedbackType, HapticPattern] = MappingProxyType({
    HapticFeedbackType.SUCCESS: _pattern(
        HapticFeedbackType.SUCCESS, (1.0, 100), (0.0, 50), (0.7, 100),
    ),
    HapticFeedbackType.WARNING: _pattern(
        HapticFeedbackType.WARNING, (0.7, 200), (0.0, 100), (0.7, 200),
    ),
    HapticFeedbackType.ERROR: _pattern(
        HapticFeedbackType.ERROR, (1.0, 300), (0.0, 100), (1.0, 300),
    ),
    HapticFeedbackType.FOCUS: _pattern(
        HapticFeedbackType.FOCUS, (0.3, 100), (0.0, 50), (0.3, 100),
    ),
})


def intensity_category(intensity: float) -> HapticIntensity:
    """Map a 0-1 step intensity to the coarse category a device can play."""
    if intensity >= STRONG_MIN_INTENSITY:
        return HapticIntensity.STRONG
    if intensity >= MEDIUM_MIN_INTENSITY:
        return HapticIntensity.MEDIUM
    return HapticIntensity.LIGHT


def get_pattern(
    kind: HapticFeedbackType,
    patterns: Mapping[HapticFeedbackType, HapticPattern] = HAPTIC_PATTERNS,
) -> HapticPattern:
    """Look up the pattern for *kind*.

    Raises :class:`ValueError` if the table has no entry for it.
    """
    pattern = patterns.get(kind)
    if pattern is None:
        raise ValueError(
            f"No haptic pattern registered for {kind.value}. "
            f"Available: {[k.value for k in patterns]}"
        )
    return pattern


def total_duration_ms(pattern: HapticPattern) -> int:
    return sum(step.duration_ms for step in pattern.steps)
