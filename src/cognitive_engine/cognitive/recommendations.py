"""Recommendation generator — maps a :class:`CognitiveState` to ordered,
actionable content-adaptation tags.

Output order is the rule evaluation order; UIs rely on it for display.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from cognitive_engine.cognitive.classifier import FOCUS_LOW_THRESHOLD, LOAD_HIGH_THRESHOLD
from cognitive_engine.models import CognitiveState, ContentModality, RecommendationTag

READINESS_LOW_THRESHOLD = 0.5

RECOMMENDATION_MESSAGES: Mapping[RecommendationTag, str] = MappingProxyType({
    RecommendationTag.TAKE_A_BREAK: "Take a short break",
    RecommendationTag.MINDFULNESS: "Try mindfulness exercises",
    RecommendationTag.CHUNK_CONTENT: "Break content into smaller chunks",
    RecommendationTag.REVIEW_BASICS: "Review foundational concepts",
    RecommendationTag.SWITCH_TO_INTERACTIVE: "Switch to interactive exercises",
    RecommendationTag.CHANGE_MODALITY: "Try a different learning modality",
    RecommendationTag.VISUAL_AIDS: "Use more diagrams and visual aids",
    RecommendationTag.AUDIO_EXPLANATIONS: "Try audio explanations or discussions",
    RecommendationTag.HANDS_ON_PRACTICE: "Engage in hands-on exercises",
    RecommendationTag.TEXT_MATERIALS: "Focus on text-based materials",
})

MODALITY_TAGS: Mapping[ContentModality, RecommendationTag] = MappingProxyType({
    ContentModality.VISUAL: RecommendationTag.VISUAL_AIDS,
    ContentModality.AUDITORY: RecommendationTag.AUDIO_EXPLANATIONS,
    ContentModality.KINESTHETIC: RecommendationTag.HANDS_ON_PRACTICE,
    ContentModality.READING: RecommendationTag.TEXT_MATERIALS,
})


class RecommendationGenerator:
    """Evaluate the recommendation rules in a fixed order.

    1. focus below ``focus_low`` → take a break, mindfulness
    2. load above ``load_high`` → chunk content, review basics
    3. readiness below ``readiness_low`` → switch to interactive, change modality
    4. exactly one modality-specific tag
    """

    def __init__(
        self,
        *,
        focus_low: float = FOCUS_LOW_THRESHOLD,
        load_high: float = LOAD_HIGH_THRESHOLD,
        readiness_low: float = READINESS_LOW_THRESHOLD,
    ) -> None:
        self._focus_low = focus_low
        self._load_high = load_high
        self._readiness_low = readiness_low

    def recommend(self, state: CognitiveState) -> list[RecommendationTag]:
        tags: list[RecommendationTag] = []
        if state.focus_level < self._focus_low:
            tags += [RecommendationTag.TAKE_A_BREAK, RecommendationTag.MINDFULNESS]
        if state.cognitive_load > self._load_high:
            tags += [RecommendationTag.CHUNK_CONTENT, RecommendationTag.REVIEW_BASICS]
        if state.learning_readiness < self._readiness_low:
            tags += [RecommendationTag.SWITCH_TO_INTERACTIVE, RecommendationTag.CHANGE_MODALITY]
        tags.append(MODALITY_TAGS[state.optimal_content_type])
        return tags


def recommendation_messages(tags: list[RecommendationTag]) -> list[str]:
    """Human-readable text for *tags*, preserving order."""
    return [RECOMMENDATION_MESSAGES[t] for t in tags]
