"""Forward classification records to an upstream HTTP endpoint."""

from __future__ import annotations

import httpx
import structlog

from cognitive_engine.cognitive.history import ClassificationRecord
from cognitive_engine.errors import UpstreamFailure

logger = structlog.get_logger(__name__)


class ResultForwarder:
    """POST each :class:`ClassificationRecord` as JSON to ``url``.

    Failures are logged and raised as :class:`UpstreamFailure`; retrying is
    the caller's decision.  ``transport`` lets tests plug in an
    :class:`httpx.MockTransport`.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._transport = transport

    @property
    def url(self) -> str:
        return self._url

    async def forward(self, record: ClassificationRecord) -> None:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(self._url, json=record.model_dump(mode="json"))
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error(
                "forwarder.failed",
                url=self._url,
                record_id=record.id,
                error=str(exc),
            )
            raise UpstreamFailure(
                f"Forwarding classification {record.id} failed: {exc}",
                target=self._url,
            ) from exc
        logger.info("forwarder.sent", url=self._url, record_id=record.id)
