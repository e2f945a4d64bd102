import logging
from typing import Any

from pubdash.shared.infrastructure.settings import get_settings

settings = get_settings()
logger = logging.getLogger("uvicorn.error")

_MAX_VALUE_LENGTH = 200


def _safe_value(value: Any) -> str:
    if value is None:
        return "NULL"
    text = str(value)
    if len(text) > _MAX_VALUE_LENGTH:
        text = text[:_MAX_VALUE_LENGTH] + "...(truncated)"
    return text


def _safe_queries(queries: list[dict[str, Any]]) -> list[dict[str, str]]:
    return [{key: _safe_value(value) for key, value in query.items()} for query in queries]


def _base_payload(
    *,
    access_token: str,
    org_id: int,
    panel_id: int,
    datasource_types: list[str],
    queries: list[dict[str, Any]] | None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        # the token is the only credential a public viewer has
        "access_token": access_token[:8] + "...",
        "org_id": org_id,
        "panel_id": panel_id,
        "datasource_types": datasource_types,
    }
    if settings.log_public_query_payloads and queries is not None:
        payload["queries"] = _safe_queries(queries)
    return payload


def log_public_query_success(
    *,
    access_token: str,
    org_id: int,
    panel_id: int,
    datasource_types: list[str],
    queries: list[dict[str, Any]] | None = None,
) -> None:
    """
    Emits observability logs for queries executed through a public dashboard.
    Controlled via PUBDASH_LOG_PUBLIC_QUERIES and PUBDASH_LOG_PUBLIC_QUERY_PAYLOADS.
    """
    if not settings.log_public_queries:
        return
    payload = _base_payload(
        access_token=access_token,
        org_id=org_id,
        panel_id=panel_id,
        datasource_types=datasource_types,
        queries=queries,
    )
    logger.info("publicdashboards.query.success | %s", payload)


def log_public_query_failure(
    *,
    access_token: str,
    org_id: int,
    panel_id: int,
    datasource_types: list[str],
    error: BaseException,
    queries: list[dict[str, Any]] | None = None,
) -> None:
    if not settings.log_public_queries:
        return
    payload = _base_payload(
        access_token=access_token,
        org_id=org_id,
        panel_id=panel_id,
        datasource_types=datasource_types,
        queries=queries,
    )
    payload["error"] = _safe_value(error)
    logger.warning("publicdashboards.query.failure | %s", payload)
