from __future__ import annotations

from typing import Any

import httpx
from pydantic import ValidationError

from pubdash.errors import UpstreamError
from pubdash.modules.publicdashboards.adapters.service_auth import mint_execution_token
from pubdash.modules.publicdashboards.domain.models import AnonymousExecutionContext, MetricRequest
from pubdash.schemas import QueryDataResponse
from pubdash.shared.infrastructure.settings import Settings, get_settings


class HttpQueryDataClient:
    def __init__(
        self,
        settings: Settings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._transport = transport

    async def query_data(
        self,
        *,
        request: MetricRequest,
        context: AnonymousExecutionContext,
        skip_cache: bool = False,
    ) -> QueryDataResponse:
        payload = {
            "from": request.time_from,
            "to": request.time_to,
            "queries": [query.to_payload() for query in request.queries],
        }
        body = await self._request(path="/api/ds/query", json_payload=payload, context=context, skip_cache=skip_cache)
        try:
            return QueryDataResponse.model_validate(body)
        except ValidationError as exc:
            raise UpstreamError(
                code="query_execution_failed",
                message="Query service returned an unexpected response",
            ) from exc

    async def _request(
        self,
        *,
        path: str,
        json_payload: dict[str, Any],
        context: AnonymousExecutionContext,
        skip_cache: bool,
    ) -> Any:
        token = mint_execution_token(
            secret=self._settings.query_service_secret,
            context=context,
            ttl_seconds=int(self._settings.query_service_token_ttl_seconds),
        )
        headers: dict[str, str] = {"Authorization": f"Bearer {token}"}
        if skip_cache:
            headers["X-Cache-Skip"] = "true"

        timeout = float(self._settings.query_service_timeout_seconds)

        try:
            async with httpx.AsyncClient(
                base_url=self._settings.query_service_base_url,
                timeout=timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(path, json=json_payload, headers=headers)
        except httpx.RequestError as exc:
            raise UpstreamError(
                status_code=503,
                code="query_execution_failed",
                message=f"Query service unavailable: {exc}",
            ) from exc

        if response.status_code >= 400:
            raise UpstreamError(
                code="query_execution_failed",
                message=f"Query service returned {response.status_code}: {response.text[:200] or 'request failed'}",
            )

        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError(
                code="query_execution_failed",
                message="Query service returned invalid JSON",
            ) from exc
