import asyncio
import base64
import hashlib
import hmac
import json

import httpx
import pytest

from pubdash.errors import UpstreamError
from pubdash.modules.publicdashboards import HttpQueryDataClient
from pubdash.modules.publicdashboards.adapters.service_auth import mint_execution_token
from pubdash.modules.publicdashboards.domain.models import (
    AnonymousExecutionContext,
    DatasourceRef,
    MetricRequest,
    QueryDescriptor,
)
from pubdash.shared.infrastructure.settings import Settings

SECRET = "s" * 32


def _settings() -> Settings:
    return Settings(
        query_service_base_url="http://query-service.test",
        query_service_secret=SECRET,
        query_service_timeout_seconds=5,
    )


def _context() -> AnonymousExecutionContext:
    return AnonymousExecutionContext(
        org_id=7,
        permissions={
            "datasources:query": ["datasources:uid:prom"],
            "annotations:read": ["annotations:type:dashboard"],
        },
    )


def _request() -> MetricRequest:
    return MetricRequest(
        time_from="1000",
        time_to="2000",
        queries=[
            QueryDescriptor(
                ref_id="A",
                datasource=DatasourceRef(uid="prom", type="prometheus"),
                fields={"expr": "up"},
                interval_ms=1000,
                max_data_points=11000,
            )
        ],
    )


def _decode_segment(segment: str) -> dict:
    return json.loads(base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4)))


def test_query_data_posts_queries_with_signed_context() -> None:
    captured: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        captured["authorization"] = request.headers["authorization"]
        captured["skip_cache"] = request.headers.get("x-cache-skip")
        return httpx.Response(
            200,
            json={
                "results": {
                    "A": {
                        "frames": [
                            {
                                "schema": {"refId": "A", "meta": {"executedQueryString": "up"}},
                                "data": {"values": [[1], [2]]},
                            }
                        ]
                    }
                }
            },
        )

    client = HttpQueryDataClient(_settings(), transport=httpx.MockTransport(handler))
    response = asyncio.run(client.query_data(request=_request(), context=_context(), skip_cache=True))

    assert captured["path"] == "/api/ds/query"
    assert captured["skip_cache"] == "true"
    assert captured["body"] == {
        "from": "1000",
        "to": "2000",
        "queries": [
            {
                "expr": "up",
                "datasource": {"type": "prometheus", "uid": "prom"},
                "refId": "A",
                "intervalMs": 1000,
                "maxDataPoints": 11000,
            }
        ],
    }
    assert response.results["A"].frames[0].frame_schema.ref_id == "A"

    token = captured["authorization"].removeprefix("Bearer ")
    header_b64, payload_b64, signature_b64 = token.split(".")
    payload = _decode_segment(payload_b64)
    assert payload["org_id"] == 7
    assert payload["permissions"]["datasources:query"] == ["datasources:uid:prom"]
    expected_sig = hmac.new(SECRET.encode("utf-8"), f"{header_b64}.{payload_b64}".encode("ascii"), hashlib.sha256).digest()
    assert base64.urlsafe_b64encode(expected_sig).decode("ascii").rstrip("=") == signature_b64


def test_query_data_error_status_becomes_upstream_error() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(500, text="datasource exploded"))
    client = HttpQueryDataClient(_settings(), transport=transport)

    with pytest.raises(UpstreamError) as exc_info:
        asyncio.run(client.query_data(request=_request(), context=_context()))

    assert exc_info.value.status_code == 502
    assert exc_info.value.code == "query_execution_failed"
    assert "500" in exc_info.value.message


def test_query_data_transport_error_becomes_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = HttpQueryDataClient(_settings(), transport=httpx.MockTransport(handler))

    with pytest.raises(UpstreamError) as exc_info:
        asyncio.run(client.query_data(request=_request(), context=_context()))

    assert exc_info.value.status_code == 503
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


def test_execution_token_expires() -> None:
    token = mint_execution_token(secret=SECRET, context=_context(), ttl_seconds=60)
    payload = _decode_segment(token.split(".")[1])
    assert payload["exp"] - payload["iat"] == 60
    assert payload["aud"] == "query-service"
