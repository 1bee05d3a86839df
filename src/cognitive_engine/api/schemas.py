"""Request models shared across API route modules."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class AnalysisRequest(BaseModel):
    """Body of ``POST /bio-cognitive-analysis``.

    ``biometric_data`` keeps the client's wire shape; it is normalised into a
    :class:`~cognitive_engine.models.BiometricBundle` by the analyser.
    """
    user_id: str = Field(min_length=1)
    biometric_data: dict[str, Any]


class CameraMessage(BaseModel):
    """Live-session message reporting the caller's camera state."""
    type: Literal["camera"] = "camera"
    permission_granted: bool = True
    available: bool = True
    device_id: str = "default"
