"""
HTTP delivery of log batches to a LogBull server.

One ``deliver`` call is one POST of one batch. Delivery is at-most-once:
failures are reported through diagnostics and the batch is dropped, and
entries the server rejects are reported with their full content but never
resent.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .._version import __version__
from ..core import diagnostics
from ..core.envelope import LogBatch
from ..core.errors import SerializationError
from ..core.serialization import serialize_logs
from ..core.settings import Settings
from ..metrics.metrics import MetricsCollector

__all__ = [
    "DeliveryOutcome",
    "DeliveryResponse",
    "HttpDeliveryTransport",
    "RejectedLog",
    "USER_AGENT",
]

USER_AGENT = f"LogBull-Python-Client/{__version__}"
SUCCESS_STATUSES = frozenset({200, 202})
RECEIVING_PATH = "/api/v1/logs/receiving/{project_id}"


class DeliveryOutcome(str, Enum):
    ACCEPTED = "accepted"
    PARTIALLY_REJECTED = "partially_rejected"
    FAILED = "failed"


class RejectedLog(BaseModel):
    model_config = ConfigDict(extra="ignore")

    index: int
    message: str | None = None


class DeliveryResponse(BaseModel):
    """Body of a 200/202 response from the receiving endpoint."""

    model_config = ConfigDict(extra="ignore")

    accepted: int = 0
    rejected: int = 0
    message: str | None = None
    errors: list[RejectedLog] | None = None

    @field_validator("accepted", "rejected", mode="before")
    @classmethod
    def _null_count(cls, value: Any) -> Any:
        # null counts decode as zero
        return 0 if value is None else value


class HttpDeliveryTransport:
    """POSTs batches to ``{host}/api/v1/logs/receiving/{project_id}``.

    A single ``httpx.AsyncClient`` is reused for connection pooling. It is
    created lazily so that it binds to the event loop that runs deliveries.
    Pass ``client`` to supply your own; the transport then leaves closing it
    to the caller.
    """

    def __init__(
        self,
        *,
        host: str,
        project_id: str,
        api_key: str = "",
        timeout_seconds: float = 30.0,
        client: httpx.AsyncClient | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._url = host.rstrip("/") + RECEIVING_PATH.format(project_id=project_id)
        self._headers = {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }
        if api_key:
            self._headers["X-API-Key"] = api_key
        self._timeout_seconds = timeout_seconds
        self._client = client
        self._owns_client = client is None
        self._metrics = metrics

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        client: httpx.AsyncClient | None = None,
        metrics: MetricsCollector | None = None,
    ) -> HttpDeliveryTransport:
        return cls(
            host=settings.host,
            project_id=settings.project_id,
            api_key=settings.api_key,
            timeout_seconds=settings.sender.http_timeout_seconds,
            client=client,
            metrics=metrics,
        )

    @property
    def url(self) -> str:
        return self._url

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._headers)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout_seconds)
            )
        return self._client

    async def deliver(self, batch: LogBatch) -> DeliveryOutcome:
        """Send one batch. Never raises for transport or server problems."""
        if not len(batch):
            return DeliveryOutcome.ACCEPTED
        try:
            body = serialize_logs(entry.to_dict() for entry in batch).data
        except SerializationError as exc:
            diagnostics.warn(
                "http-transport",
                "failed to serialize batch",
                batch_size=len(batch),
                error=str(exc.cause or exc),
            )
            self._record_failure(len(batch))
            return DeliveryOutcome.FAILED

        start = time.perf_counter()
        try:
            resp = await self._get_client().post(
                self._url, content=body, headers=self._headers
            )
        except httpx.HTTPError as exc:
            diagnostics.warn(
                "http-transport",
                "HTTP request failed",
                endpoint=self._url,
                error_type=type(exc).__name__,
                error=str(exc),
                batch_size=len(batch),
            )
            self._record_failure(len(batch))
            return DeliveryOutcome.FAILED
        latency = time.perf_counter() - start

        if resp.status_code not in SUCCESS_STATUSES:
            snippet = None
            try:
                snippet = resp.text[:256]
            except Exception:
                snippet = None
            diagnostics.warn(
                "http-transport",
                "server rejected batch",
                status_code=resp.status_code,
                endpoint=self._url,
                body=snippet,
                batch_size=len(batch),
            )
            self._record_failure(len(batch))
            return DeliveryOutcome.FAILED

        try:
            response = DeliveryResponse.model_validate_json(resp.content)
        except ValidationError:
            # Unparsable success body still means the batch was taken
            self._record_success(len(batch), 0, latency)
            return DeliveryOutcome.ACCEPTED

        if response.rejected > 0:
            self._report_rejections(response, batch)
            self._record_success(len(batch), response.rejected, latency)
            return DeliveryOutcome.PARTIALLY_REJECTED
        self._record_success(len(batch), 0, latency)
        return DeliveryOutcome.ACCEPTED

    def _report_rejections(self, response: DeliveryResponse, batch: LogBatch) -> None:
        diagnostics.warn(
            "http-transport",
            f"rejected {response.rejected} log entries",
            rejected=response.rejected,
            accepted=response.accepted,
            server_message=response.message,
        )
        for error in response.errors or ():
            if not 0 <= error.index < len(batch):
                continue
            entry = batch[error.index]
            diagnostics.warn(
                "http-transport",
                "log entry rejected",
                index=error.index,
                reason=error.message or "",
                entry_level=entry.level.value,
                entry_message=entry.message,
                entry_timestamp=entry.timestamp,
                entry_fields=dict(entry.fields),
            )

    def _record_success(self, size: int, rejected: int, latency: float) -> None:
        if self._metrics is None:
            return
        self._metrics.record_delivery(
            delivered=max(size - rejected, 0),
            rejected=min(rejected, size),
            latency_seconds=latency,
        )

    def _record_failure(self, size: int) -> None:
        if self._metrics is not None:
            self._metrics.record_delivery_failure(size)

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            client, self._client = self._client, None
            await client.aclose()
