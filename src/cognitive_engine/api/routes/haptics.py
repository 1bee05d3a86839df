"""Haptic pattern table route."""

from __future__ import annotations

from fastapi import APIRouter

from cognitive_engine.haptics.patterns import HAPTIC_PATTERNS, intensity_category, total_duration_ms

router = APIRouter(prefix="/haptics", tags=["haptics"])


@router.get("/patterns")
async def list_patterns():
    return {
        kind.value: {
            "steps": [
                {
                    "intensity": step.intensity,
                    "category": intensity_category(step.intensity).value,
                    "duration_ms": step.duration_ms,
                }
                for step in pattern.steps
            ],
            "total_duration_ms": total_duration_ms(pattern),
        }
        for kind, pattern in HAPTIC_PATTERNS.items()
    }
