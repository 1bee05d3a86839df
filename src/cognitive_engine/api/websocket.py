"""Live tracking session over a WebSocket — one controller per connection.

Client → server (JSON)::

    {"type": "camera", "permission_granted": true, "available": true}
    {"type": "start"}
    {"type": "stop"}
    {"type": "faces", "faces": [{"leftEyeOpenProbability": ..., ...}]}
    {"type": "motion", "rotation": {"alpha": ..., "beta": ..., "gamma": ...}}
    {"type": "state"}

Server → client::

    {"type": "state", "data": {...ServiceState}}
    {"type": "haptic", "data": {...HapticCommand}}
    {"type": "error", "data": {"error": "...", ...}}
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import structlog
from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from cognitive_engine.api.schemas import CameraMessage
from cognitive_engine.config import Settings
from cognitive_engine.errors import InvalidSample
from cognitive_engine.haptics.drivers import CallbackHapticDriver
from cognitive_engine.logger import session_context
from cognitive_engine.models import HapticCommand, SampleKind
from cognitive_engine.sensors.base import CameraBinding, PushSensorSource
from cognitive_engine.sensors.normalize import face_from_landmarks, motion_from_device
from cognitive_engine.session.controller import TrackingSessionController

logger = structlog.get_logger(__name__)


class LiveSession:
    """Bridges one WebSocket to one :class:`TrackingSessionController`.

    Face and motion messages are pushed through sensor sources so the
    session's pipeline coalesces bursts (latest sample wins).
    """

    def __init__(self, ws: WebSocket, settings: Settings) -> None:
        self._ws = ws
        self._send_lock = asyncio.Lock()
        self.controller = TrackingSessionController.from_settings(
            settings, driver=CallbackHapticDriver(self._send_haptic)
        )
        self.faces = PushSensorSource(SampleKind.FACE, settings.face_sampling_interval_ms)
        self.motion = PushSensorSource(SampleKind.MOTION, settings.motion_sampling_interval_ms)

    @property
    def session_id(self) -> str:
        return self.controller.session_id

    # ── Outbound ──────────────────────────────────────────────

    async def send(self, msg_type: str, data: Any) -> None:
        async with self._send_lock:
            await self._ws.send_json({"type": msg_type, "data": data})

    async def send_state(self) -> None:
        await self.send("state", self.controller.get_state().model_dump(mode="json"))

    async def send_error(self, message: str, **extra: Any) -> None:
        await self.send("error", {"error": message, **extra})

    async def _send_haptic(self, command: HapticCommand) -> None:
        await self.send("haptic", command.model_dump(mode="json"))

    # ── Inbound ───────────────────────────────────────────────

    async def handle(self, message: dict[str, Any]) -> None:
        """Apply one client message to the session."""
        msg_type = message.get("type")
        if msg_type == "camera":
            camera = CameraMessage.model_validate(message)
            self.controller.bind_camera(
                CameraBinding(
                    permission_granted=camera.permission_granted,
                    hardware_available=camera.available,
                    device_id=camera.device_id,
                )
            )
            await self.send_state()
        elif msg_type == "start":
            self.controller.start_tracking()
            await self.send_state()
        elif msg_type == "stop":
            self.controller.stop_tracking()
            await self.send_state()
        elif msg_type == "faces":
            faces = message.get("faces") or []
            if not isinstance(faces, (list, tuple)):
                raise InvalidSample("Field 'faces' must be a list.", field="faces")
            if faces and self.controller.get_state().is_tracking:
                self.faces.emit(face_from_landmarks(faces[0]))
        elif msg_type == "motion":
            if self.controller.get_state().is_tracking:
                self.motion.emit(motion_from_device(message))
        elif msg_type == "state":
            await self.send_state()
        else:
            await self.send_error(f"Unknown message type '{msg_type}'.", type=msg_type)

    async def serve(self) -> None:
        """Receive messages until the client disconnects, then tear down."""
        with session_context(self.session_id):
            async with self.controller:
                self.controller.attach_source(self.faces)
                self.controller.attach_source(self.motion)
                logger.info("ws.session_opened")
                try:
                    while True:
                        raw = await self._ws.receive_text()
                        try:
                            message = json.loads(raw)
                        except json.JSONDecodeError:
                            await self.send_error("Message is not valid JSON.")
                            continue
                        if not isinstance(message, dict):
                            await self.send_error("Message must be a JSON object.")
                            continue
                        try:
                            await self.handle(message)
                        except InvalidSample as exc:
                            await self.send_error(str(exc), field=exc.field)
                        except ValidationError as exc:
                            await self.send_error(str(exc.errors()[0].get("msg", "invalid message")))
                except WebSocketDisconnect:
                    logger.info(
                        "ws.session_disconnected",
                        faces=self.faces.stats,
                        motion=self.motion.stats,
                    )
