"""Tests for the FastAPI server endpoints and the live-session WebSocket."""

import httpx
import pytest
from asgi_lifespan import LifespanManager
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from cognitive_engine.api import server
from cognitive_engine.api.server import app
from cognitive_engine.cognitive.analysis import CognitiveAnalyser
from cognitive_engine.forwarding import ResultForwarder


@pytest.fixture
async def client():
    """Async test client with lifespan (startup / shutdown) fully executed."""
    async with LifespanManager(app) as manager:
        transport = ASGITransport(app=manager.app)
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            yield c


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


# ── Analysis ──────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_analysis_scenario(client: AsyncClient, scenario_payload):
    resp = await client.post("/bio-cognitive-analysis", json={"user_id": "u1", "biometric_data": scenario_payload})
    assert resp.status_code == 200
    body = resp.json()

    state = body["cognitive_state"]
    assert state["optimal_content_type"] == "reading"
    assert state["emotional_state"] == "neutral"
    assert state["brainwave_states"] == {"alpha": 0.2, "beta": 0.7, "theta": 0.1, "delta": 0.1}
    assert state["cognitive_load"] == pytest.approx(0.59)
    # load 0.59 and focus 0.464 sit inside both thresholds
    assert body["needs_adaptation"] is False
    assert body["recommendations"][-1] == "Focus on text-based materials"
    assert body["load_trend"]["samples"] == 1


@pytest.mark.asyncio
async def test_analysis_overloaded_needs_adaptation(client: AsyncClient, overloaded_payload):
    resp = await client.post("/bio-cognitive-analysis", json={"user_id": "u2", "biometric_data": overloaded_payload})
    assert resp.status_code == 200
    body = resp.json()
    assert body["needs_adaptation"] is True
    assert body["cognitive_state"]["optimal_content_type"] == "reading"
    assert "Break content into smaller chunks" in body["recommendations"]
    assert body["load_trend"]["recommendation"] == "break"


@pytest.mark.asyncio
@pytest.mark.parametrize("drop", ["user_id", "biometric_data"])
async def test_missing_fields_400(client: AsyncClient, scenario_payload, drop):
    body = {"user_id": "u1", "biometric_data": scenario_payload}
    del body[drop]
    resp = await client.post("/bio-cognitive-analysis", json=body)
    assert resp.status_code == 400
    assert resp.json() == {"error": "Missing required fields"}


@pytest.mark.asyncio
async def test_non_object_body_400(client: AsyncClient):
    resp = await client.post("/bio-cognitive-analysis", json=[1, 2, 3])
    assert resp.status_code == 400
    assert "error" in resp.json()

    resp = await client.post(
        "/bio-cognitive-analysis",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_invalid_bundle_400(client: AsyncClient, scenario_payload):
    del scenario_payload["gsr_level"]
    resp = await client.post("/bio-cognitive-analysis", json={"user_id": "u1", "biometric_data": scenario_payload})
    assert resp.status_code == 400
    assert "gsr_level" in resp.json()["error"]


@pytest.mark.asyncio
async def test_forwarding_failure_500(client: AsyncClient, scenario_payload, monkeypatch):
    failing = ResultForwarder(
        "https://example.test/history",
        transport=httpx.MockTransport(lambda request: httpx.Response(502)),
    )
    monkeypatch.setattr(server, "_analyser", CognitiveAnalyser(forwarder=failing))
    resp = await client.post("/bio-cognitive-analysis", json={"user_id": "u1", "biometric_data": scenario_payload})
    assert resp.status_code == 500
    assert "Forwarding classification" in resp.json()["error"]


@pytest.mark.asyncio
async def test_history_and_trend(client: AsyncClient, scenario_payload, overloaded_payload):
    for payload in (scenario_payload, overloaded_payload):
        resp = await client.post("/bio-cognitive-analysis", json={"user_id": "u3", "biometric_data": payload})
        assert resp.status_code == 200

    resp = await client.get("/bio-cognitive-analysis/u3/history", params={"limit": 1})
    assert resp.status_code == 200
    rows = resp.json()
    assert len(rows) == 1
    assert rows[0]["needs_adaptation"] is True

    resp = await client.get("/bio-cognitive-analysis/u3/trend")
    trend = resp.json()
    assert trend["load_trend"]["samples"] == 2
    assert trend["load_trend"]["peak"] == 1.0
    assert trend["optimal_learning_state"] is False

    resp = await client.get("/bio-cognitive-analysis/nobody/trend")
    assert resp.json()["load_trend"] is None


@pytest.mark.asyncio
async def test_unknown_user_trend_leaves_history_empty(client: AsyncClient):
    for i in range(20):
        resp = await client.get(f"/bio-cognitive-analysis/ghost{i}/trend")
        assert resp.status_code == 200
        assert resp.json()["optimal_learning_state"] is False
    assert server._analyser.history.tracker_count == 0
    assert server._analyser.history.user_count == 0


@pytest.mark.asyncio
async def test_haptic_patterns(client: AsyncClient):
    resp = await client.get("/haptics/patterns")
    assert resp.status_code == 200
    patterns = resp.json()
    assert set(patterns) == {"success", "warning", "error", "focus"}
    assert patterns["focus"]["steps"][0] == {"intensity": 0.3, "category": "light", "duration_ms": 100}
    assert patterns["error"]["total_duration_ms"] == 700


# ── Live session ──────────────────────────────────────────────

_DROWSY = {"leftEyeOpenProbability": 0.05, "rightEyeOpenProbability": 0.05, "rollAngle": 150}


def test_ws_session_flow():
    with TestClient(app) as tc, tc.websocket_connect("/ws/session") as ws:
        ws.send_json({"type": "state"})
        assert ws.receive_json() == {
            "type": "state",
            "data": {"is_tracking": False, "last_attention_score": 0.0, "calibration_complete": False},
        }

        ws.send_json({"type": "start"})
        assert ws.receive_json()["data"]["is_tracking"] is False  # no camera yet

        ws.send_json({"type": "camera", "permission_granted": True, "available": True})
        assert ws.receive_json()["type"] == "state"
        ws.send_json({"type": "start"})
        assert ws.receive_json()["data"]["is_tracking"] is True

        ws.send_json({"type": "motion", "rotation": {"alpha": 0.1}})
        error = ws.receive_json()
        assert error["type"] == "error"
        assert error["data"]["field"] == "rotation.gamma"

        ws.send_json({"type": "wave"})
        assert ws.receive_json()["type"] == "error"

        ws.send_text("not json")
        assert ws.receive_json()["data"]["error"] == "Message is not valid JSON."

        ws.send_json({"type": "faces", "faces": [_DROWSY]})
        haptic = ws.receive_json()
        assert haptic["type"] == "haptic"
        assert haptic["data"]["feedback_type"] == "focus"
        assert haptic["data"]["step_index"] == 0
        assert haptic["data"]["intensity"] == "light"


def test_ws_denied_camera_keeps_session_idle():
    with TestClient(app) as tc, tc.websocket_connect("/ws/session") as ws:
        ws.send_json({"type": "camera", "permission_granted": False})
        state = ws.receive_json()["data"]
        assert state["calibration_complete"] is False
        ws.send_json({"type": "start"})
        assert ws.receive_json()["data"]["is_tracking"] is False


def test_ws_faces_not_a_list_keeps_session_open():
    with TestClient(app) as tc, tc.websocket_connect("/ws/session") as ws:
        ws.send_json({"type": "camera", "permission_granted": True, "available": True})
        ws.receive_json()
        ws.send_json({"type": "start"})
        assert ws.receive_json()["data"]["is_tracking"] is True

        ws.send_json({"type": "faces", "faces": {"leftEyeOpenProbability": 0.5}})
        error = ws.receive_json()
        assert error["type"] == "error"
        assert error["data"]["field"] == "faces"

        ws.send_json({"type": "state"})
        assert ws.receive_json()["data"]["is_tracking"] is True
