"""Normalise heterogeneous sensor inputs into :data:`SensorSample` models.

Three input shapes are understood:

* face-detector results (``leftEyeOpenProbability`` / ``rollAngle`` ... in
  camelCase, or the snake_case model field names)
* device-motion measurements ``{"rotation": {"alpha", "beta", "gamma"}}``
* the biometric wire payload posted to ``/bio-cognitive-analysis``

Anything missing or out of range raises :class:`InvalidSample`; a missing
measurement is never replaced by zero.
"""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel, ValidationError

from cognitive_engine.errors import InvalidSample
from cognitive_engine.models import (
    BiometricBundle,
    FaceSample,
    MotionSample,
    SensorSample,
)

_MISSING = object()

_FACE_KEYS = {
    "leftEyeOpenProbability": "left_eye_open_probability",
    "rightEyeOpenProbability": "right_eye_open_probability",
    "rollAngle": "roll_angle",
    "yawAngle": "yaw_angle",
    "pitchAngle": "pitch_angle",
}

# Model field → wire path, for error messages on biometric payloads.
_BUNDLE_WIRE_PATHS = {
    "eeg_bands": "eeg_patterns",
    "heart_rate": "heart_rate",
    "gsr_level": "gsr_level",
    "pupil_dilation": "eye_tracking.pupil_dilation",
    "fixation_duration": "eye_tracking.fixation_duration",
    "gaze_position": "eye_tracking.gaze_position",
    "facial_attention": "facial_expressions.attention",
    "emotion_label": "facial_expressions.emotion",
    "micro_expressions": "facial_expressions.micro_expressions",
    "engagement_score": "facial_expressions.engagement_score",
    "timestamp": "timestamp",
}


# ── Helpers ───────────────────────────────────────────────────


def _build(model: type[BaseModel], data: dict[str, Any], paths: Mapping[str, str] | None = None):
    """Validate *data* into *model*, translating errors to :class:`InvalidSample`."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        loc = [str(p) for p in first.get("loc", ())]
        field = ".".join(loc) if loc else None
        if paths and loc and loc[0] in paths:
            field = ".".join([paths[loc[0]], *loc[1:]])
        raise InvalidSample(
            f"Invalid {model.__name__} field '{field}': {first.get('msg', 'invalid value')}",
            field=field,
        ) from exc


def _require(data: Mapping[str, Any], key: str, path: str) -> Any:
    value = data.get(key, _MISSING)
    if value is _MISSING or value is None:
        raise InvalidSample(f"Missing required field '{path}'.", field=path)
    return value


def _mapping(value: Any, path: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise InvalidSample(f"Field '{path}' must be an object.", field=path)
    return value


# ── Per-variant constructors ──────────────────────────────────


def face_from_landmarks(face: Mapping[str, Any]) -> FaceSample:
    """Build a :class:`FaceSample` from one detected face."""
    face = _mapping(face, "face")
    data = {_FACE_KEYS.get(k, k): v for k, v in face.items() if _FACE_KEYS.get(k, k) in FaceSample.model_fields}
    for field in ("left_eye_open_probability", "right_eye_open_probability", "roll_angle"):
        _require(data, field, field)
    data["kind"] = "face"
    return _build(FaceSample, data)


def motion_from_device(measurement: Mapping[str, Any]) -> MotionSample:
    """Build a :class:`MotionSample` from a device-motion measurement."""
    measurement = _mapping(measurement, "motion")
    rotation = _mapping(_require(measurement, "rotation", "rotation"), "rotation")
    data: dict[str, Any] = {
        "kind": "motion",
        "rotation_gamma": _require(rotation, "gamma", "rotation.gamma"),
    }
    for axis in ("alpha", "beta"):
        if rotation.get(axis) is not None:
            data[f"rotation_{axis}"] = rotation[axis]
    if measurement.get("timestamp") is not None:
        data["timestamp"] = measurement["timestamp"]
    return _build(MotionSample, data)


def bundle_from_payload(payload: Mapping[str, Any]) -> BiometricBundle:
    """Build a :class:`BiometricBundle` from the HTTP wire payload.

    ``eeg_patterns`` holds band powers in ``[alpha, beta, theta, delta]``
    order; any trailing values are ignored.
    """
    payload = _mapping(payload, "biometric_data")

    eeg = _require(payload, "eeg_patterns", "eeg_patterns")
    if not isinstance(eeg, (list, tuple)) or len(eeg) < 4:
        raise InvalidSample(
            "Field 'eeg_patterns' must list at least 4 band powers (alpha, beta, theta, delta).",
            field="eeg_patterns",
        )
    eye = _mapping(_require(payload, "eye_tracking", "eye_tracking"), "eye_tracking")
    facial = _mapping(
        _require(payload, "facial_expressions", "facial_expressions"), "facial_expressions"
    )

    data: dict[str, Any] = {
        "kind": "biometric",
        "eeg_bands": {
            "alpha": eeg[0],
            "beta": eeg[1],
            "theta": eeg[2],
            "delta": eeg[3],
        },
        "heart_rate": _require(payload, "heart_rate", "heart_rate"),
        "gsr_level": _require(payload, "gsr_level", "gsr_level"),
        "pupil_dilation": _require(eye, "pupil_dilation", "eye_tracking.pupil_dilation"),
        "fixation_duration": _require(eye, "fixation_duration", "eye_tracking.fixation_duration"),
        "facial_attention": _require(facial, "attention", "facial_expressions.attention"),
        "emotion_label": _require(facial, "emotion", "facial_expressions.emotion"),
    }
    if eye.get("gaze_position") is not None:
        data["gaze_position"] = eye["gaze_position"]
    if facial.get("micro_expressions") is not None:
        data["micro_expressions"] = facial["micro_expressions"]
    if facial.get("engagement_score") is not None:
        data["engagement_score"] = facial["engagement_score"]
    if payload.get("timestamp") is not None:
        data["timestamp"] = payload["timestamp"]

    return _build(BiometricBundle, data, _BUNDLE_WIRE_PATHS)


# ── Dispatcher ────────────────────────────────────────────────


def normalize_sample(raw: Any) -> SensorSample:
    """Turn any supported input into a :data:`SensorSample`.

    Already-built samples pass through unchanged.  Mappings are routed on an
    explicit ``kind`` key first, then on their shape.
    """
    if isinstance(raw, (FaceSample, MotionSample, BiometricBundle)):
        return raw
    raw = _mapping(raw, "sample")

    kind = raw.get("kind")
    if kind == "face" or (kind is None and ("leftEyeOpenProbability" in raw or "left_eye_open_probability" in raw)):
        return face_from_landmarks(raw)
    if kind == "motion" or (kind is None and "rotation" in raw):
        return motion_from_device(raw)
    if kind == "biometric" or (kind is None and "eeg_patterns" in raw):
        return bundle_from_payload(raw)
    raise InvalidSample("Unrecognised sensor sample shape.", field="kind")
