"""Haptic sub-package — static patterns, playback sequencer and output drivers."""

from cognitive_engine.haptics.drivers import CallbackHapticDriver, HapticDriver, LogHapticDriver
from cognitive_engine.haptics.patterns import HAPTIC_PATTERNS, get_pattern, intensity_category
from cognitive_engine.haptics.sequencer import HapticSequencer, SequencerState

__all__ = [
    "HAPTIC_PATTERNS",
    "CallbackHapticDriver",
    "HapticDriver",
    "HapticSequencer",
    "LogHapticDriver",
    "SequencerState",
    "get_pattern",
    "intensity_category",
]
