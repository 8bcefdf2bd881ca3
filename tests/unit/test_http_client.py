from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from logbull.core.envelope import LogBatch, build_entry
from logbull.core.levels import LogLevel
from logbull.core.timestamp import TimestampGenerator
from logbull.metrics.metrics import MetricsCollector
from logbull.sinks.http_client import (
    USER_AGENT,
    DeliveryOutcome,
    HttpDeliveryTransport,
)

PROJECT_ID = "12345678-1234-1234-1234-123456789012"


class _StubClient:
    def __init__(self, outcomes: list[Any]) -> None:
        self.outcomes = outcomes
        self.calls: list[tuple[str, bytes, dict[str, str]]] = []
        self.closed = False

    async def post(
        self,
        url: str,
        content: bytes | None = None,
        headers: Any = None,
    ) -> httpx.Response:
        self.calls.append((url, content or b"", dict(headers or {})))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def aclose(self) -> None:
        self.closed = True


def _batch(*messages: str) -> LogBatch:
    gen = TimestampGenerator()
    return LogBatch(
        tuple(
            build_entry(LogLevel.INFO, m, timestamps=gen, fields={"n": i})
            for i, m in enumerate(messages)
        )
    )


def _transport(
    client: _StubClient, *, api_key: str = "", metrics: MetricsCollector | None = None
) -> HttpDeliveryTransport:
    return HttpDeliveryTransport(
        host="https://logs.example.com/",
        project_id=PROJECT_ID,
        api_key=api_key,
        client=client,  # type: ignore[arg-type]
        metrics=metrics,
    )


@pytest.mark.asyncio
async def test_deliver_posts_batch_with_headers() -> None:
    client = _StubClient([httpx.Response(202, json={"accepted": 2, "rejected": 0})])
    metrics = MetricsCollector()
    transport = _transport(client, api_key="my-api-key-123", metrics=metrics)

    outcome = await transport.deliver(_batch("first", "second"))

    assert outcome is DeliveryOutcome.ACCEPTED
    url, body, headers = client.calls[0]
    assert url == f"https://logs.example.com/api/v1/logs/receiving/{PROJECT_ID}"
    assert headers["Content-Type"] == "application/json"
    assert headers["User-Agent"] == USER_AGENT
    assert headers["X-API-Key"] == "my-api-key-123"

    payload = json.loads(body)
    assert [log["message"] for log in payload["logs"]] == ["first", "second"]
    assert payload["logs"][1]["fields"] == {"n": 1}
    assert set(payload["logs"][0]) == {"level", "message", "timestamp", "fields"}
    assert metrics.snapshot().entries_delivered == 2


@pytest.mark.asyncio
async def test_no_api_key_header_without_key() -> None:
    client = _StubClient([httpx.Response(200, json={})])
    transport = _transport(client)

    await transport.deliver(_batch("x"))

    assert "X-API-Key" not in client.calls[0][2]


@pytest.mark.asyncio
async def test_empty_batch_is_not_sent() -> None:
    client = _StubClient([])
    transport = _transport(client)

    assert await transport.deliver(LogBatch(())) is DeliveryOutcome.ACCEPTED
    assert client.calls == []


@pytest.mark.asyncio
async def test_error_status_drops_batch_and_warns(
    captured_diagnostics: list[dict[str, Any]],
) -> None:
    client = _StubClient([httpx.Response(500, text="boom")])
    metrics = MetricsCollector()
    transport = _transport(client, metrics=metrics)

    outcome = await transport.deliver(_batch("a", "b"))

    assert outcome is DeliveryOutcome.FAILED
    assert len(client.calls) == 1
    diag = captured_diagnostics[0]
    assert diag["component"] == "http-transport"
    assert diag["status_code"] == 500
    assert diag["body"] == "boom"
    snap = metrics.snapshot()
    assert snap.delivery_failures == 1
    assert snap.entries_dropped == 2


@pytest.mark.asyncio
async def test_network_error_is_contained(
    captured_diagnostics: list[dict[str, Any]],
) -> None:
    client = _StubClient([httpx.ConnectError("refused")])
    transport = _transport(client)

    outcome = await transport.deliver(_batch("a"))

    assert outcome is DeliveryOutcome.FAILED
    assert captured_diagnostics[0]["message"] == "HTTP request failed"
    assert captured_diagnostics[0]["error_type"] == "ConnectError"


@pytest.mark.asyncio
async def test_unparsable_success_body_counts_as_accepted(
    captured_diagnostics: list[dict[str, Any]],
) -> None:
    client = _StubClient([httpx.Response(200, text="not json")])
    transport = _transport(client)

    assert await transport.deliver(_batch("a")) is DeliveryOutcome.ACCEPTED
    assert captured_diagnostics == []


@pytest.mark.asyncio
async def test_rejections_are_reported_with_entry_content(
    captured_diagnostics: list[dict[str, Any]],
) -> None:
    body = {
        "accepted": 1,
        "rejected": 1,
        "message": "partial",
        "errors": [{"index": 0, "message": "message too long"}],
    }
    client = _StubClient([httpx.Response(200, json=body)])
    metrics = MetricsCollector()
    transport = _transport(client, metrics=metrics)
    batch = _batch("bad one", "good one")

    outcome = await transport.deliver(batch)

    assert outcome is DeliveryOutcome.PARTIALLY_REJECTED
    # Rejected entries are never resent
    assert len(client.calls) == 1
    summary, detail = captured_diagnostics
    assert summary["message"] == "rejected 1 log entries"
    assert detail["message"] == "log entry rejected"
    assert detail["index"] == 0
    assert detail["reason"] == "message too long"
    assert detail["entry_message"] == "bad one"
    assert detail["entry_level"] == "INFO"
    assert detail["entry_timestamp"] == batch[0].timestamp
    assert detail["entry_fields"] == {"n": 0}
    snap = metrics.snapshot()
    assert snap.entries_delivered == 1
    assert snap.entries_rejected == 1


@pytest.mark.asyncio
async def test_out_of_range_rejection_index_is_skipped(
    captured_diagnostics: list[dict[str, Any]],
) -> None:
    body = {"rejected": 1, "errors": [{"index": 7, "message": "?"}]}
    client = _StubClient([httpx.Response(200, json=body)])
    transport = _transport(client)

    outcome = await transport.deliver(_batch("a"))

    assert outcome is DeliveryOutcome.PARTIALLY_REJECTED
    assert [d["message"] for d in captured_diagnostics] == ["rejected 1 log entries"]


@pytest.mark.asyncio
async def test_aclose_leaves_injected_client_open() -> None:
    client = _StubClient([])
    transport = _transport(client)
    await transport.aclose()
    assert client.closed is False


@pytest.mark.asyncio
async def test_aclose_closes_owned_client() -> None:
    transport = HttpDeliveryTransport(
        host="http://localhost:4005", project_id=PROJECT_ID
    )
    client = transport._get_client()
    assert isinstance(client, httpx.AsyncClient)

    await transport.aclose()

    assert client.is_closed


def test_from_settings_uses_configured_endpoint(settings_factory: Any) -> None:
    transport = HttpDeliveryTransport.from_settings(settings_factory())
    assert transport.url == (
        f"http://localhost:4005/api/v1/logs/receiving/{PROJECT_ID}"
    )
    assert transport.headers["User-Agent"].startswith("LogBull-Python-Client/")


@pytest.mark.asyncio
async def test_surrogate_in_one_entry_does_not_cost_the_batch(
    captured_diagnostics: list[dict[str, Any]],
) -> None:
    gen = TimestampGenerator()
    batch = LogBatch(
        (
            build_entry(LogLevel.INFO, "first", timestamps=gen),
            build_entry(
                LogLevel.INFO,
                "file \udcff moved",
                timestamps=gen,
                fields={"path": "bad\udcffname", "k\ud800": 1},
            ),
            build_entry(LogLevel.INFO, "third", timestamps=gen),
        )
    )
    client = _StubClient([httpx.Response(202, json={"accepted": 3})])

    outcome = await _transport(client).deliver(batch)

    assert outcome is DeliveryOutcome.ACCEPTED
    assert len(client.calls) == 1
    logs = json.loads(client.calls[0][1])["logs"]
    assert [log["message"] for log in logs] == [
        "first",
        "file \\udcff moved",
        "third",
    ]
    assert logs[1]["fields"] == {"path": "bad\\udcffname", "k\\ud800": 1}
    assert captured_diagnostics == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body, expected_details",
    [
        ({"rejected": 1, "errors": None}, []),
        ({"rejected": 1, "errors": [{"index": 0, "message": None}]}, [""]),
        ({"accepted": None, "rejected": 1, "message": None, "errors": []}, []),
    ],
)
async def test_null_values_in_rejection_body_are_tolerated(
    body: dict[str, Any],
    expected_details: list[str],
    captured_diagnostics: list[dict[str, Any]],
) -> None:
    client = _StubClient([httpx.Response(200, json=body)])
    metrics = MetricsCollector()

    outcome = await _transport(client, metrics=metrics).deliver(_batch("a"))

    assert outcome is DeliveryOutcome.PARTIALLY_REJECTED
    assert captured_diagnostics[0]["message"] == "rejected 1 log entries"
    assert [d["reason"] for d in captured_diagnostics[1:]] == expected_details
    assert metrics.snapshot().entries_rejected == 1
