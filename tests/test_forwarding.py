"""Tests for forwarding classification records upstream."""

import json

import httpx
import pytest

from cognitive_engine.cognitive.analysis import CognitiveAnalyser
from cognitive_engine.cognitive.history import ClassificationRecord
from cognitive_engine.errors import InvalidSample, UpstreamFailure
from cognitive_engine.forwarding import ResultForwarder


def _record() -> ClassificationRecord:
    return ClassificationRecord(
        user_id="u1",
        biometric_data={"heart_rate": 80},
        cognitive_state={"focus_level": 0.5},
        needs_adaptation=False,
    )


@pytest.mark.asyncio
async def test_forward_posts_record():
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(201, json={"ok": True})

    forwarder = ResultForwarder("https://example.test/history", transport=httpx.MockTransport(handler))
    record = _record()
    await forwarder.forward(record)
    assert seen[0]["id"] == record.id
    assert seen[0]["user_id"] == "u1"


@pytest.mark.asyncio
async def test_http_error_raises_upstream_failure():
    forwarder = ResultForwarder(
        "https://example.test/history",
        transport=httpx.MockTransport(lambda request: httpx.Response(503)),
    )
    with pytest.raises(UpstreamFailure) as exc_info:
        await forwarder.forward(_record())
    assert exc_info.value.target == "https://example.test/history"


@pytest.mark.asyncio
async def test_network_error_raises_upstream_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    forwarder = ResultForwarder("https://example.test/history", transport=httpx.MockTransport(handler))
    with pytest.raises(UpstreamFailure):
        await forwarder.forward(_record())


class TestAnalyserRun:
    @pytest.mark.asyncio
    async def test_run_records_and_forwards(self, scenario_payload):
        posted: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            posted.append(json.loads(request.content))
            return httpx.Response(200)

        analyser = CognitiveAnalyser(
            forwarder=ResultForwarder("https://example.test/h", transport=httpx.MockTransport(handler))
        )
        report = await analyser.run("u1", scenario_payload)
        assert report.state.optimal_content_type.value == "reading"
        assert report.needs_adaptation is False
        assert report.load_trend.samples == 1
        assert posted[0]["id"] == report.record_id
        assert analyser.history.recent("u1")[0].id == report.record_id

    @pytest.mark.asyncio
    async def test_run_rejects_invalid_payload(self, scenario_payload):
        analyser = CognitiveAnalyser()
        del scenario_payload["facial_expressions"]
        with pytest.raises(InvalidSample):
            await analyser.run("u1", scenario_payload)
        assert analyser.history.recent("u1") == []
