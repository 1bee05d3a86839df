"""Cognitive state inference from multi-modal biometric bundles.

Architecture
------------
1. **Classification** (`classifier.py`)
   - Focus from fixation, facial attention and EEG beta/theta balance
   - Cognitive load from pupil dilation, heart rate and GSR
   - Learning readiness from focus, spare capacity and emotion label
   - Preferred content modality from the dominant EEG band

2. **Recommendations** (`recommendations.py`)
   - Ordered content-adaptation tags with human-readable messages

3. **Trend & history** (`trend.py`, `history.py`)
   - Per-learner load trend, peak and pacing advice
   - Bounded in-memory record of recent classifications

4. **Analysis** (`analysis.py`)
   - Tagged per-bundle results and the HTTP request path

The emotion label is produced upstream by a facial-expression classifier
and is passed through unchanged.
"""

from cognitive_engine.cognitive.classifier import (
    AdaptationThresholds,
    ClassifierWeights,
    CognitiveStateClassifier,
    needs_adaptation,
)
from cognitive_engine.cognitive.recommendations import RecommendationGenerator, recommendation_messages
from cognitive_engine.cognitive.trend import CognitiveLoadTracker, LoadTrend, LoadTrendMetrics, PacingAdvice

__all__ = [
    "AdaptationThresholds",
    "ClassifierWeights",
    "CognitiveLoadTracker",
    "CognitiveStateClassifier",
    "LoadTrend",
    "LoadTrendMetrics",
    "PacingAdvice",
    "RecommendationGenerator",
    "needs_adaptation",
    "recommendation_messages",
]
