from __future__ import annotations

import copy
from typing import Any

from pubdash.schemas import QueryDataResponse

# Target keys an anonymous viewer needs to render a panel; query text stays server-side.
_VIEW_TARGET_KEYS = ("refId", "datasource", "hide")


def sanitize_metadata_from_query_data(response: QueryDataResponse) -> QueryDataResponse:
    """Drop executed query strings and backend custom metadata from every frame, in place."""
    for data_response in response.results.values():
        for frame in data_response.frames:
            meta = frame.frame_schema.meta
            if meta is None:
                continue
            meta.executed_query_string = None
            meta.custom = None
    return response


def _sanitize_panels(panels: Any) -> None:
    if not isinstance(panels, list):
        return
    for panel in panels:
        if not isinstance(panel, dict):
            continue
        targets = panel.get("targets")
        if isinstance(targets, list):
            panel["targets"] = [
                {key: target[key] for key in _VIEW_TARGET_KEYS if key in target}
                for target in targets
                if isinstance(target, dict)
            ]
        _sanitize_panels(panel.get("panels"))


def sanitize_dashboard_for_view(dashboard_data: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of the dashboard with every panel target reduced to its identity fields."""
    sanitized = copy.deepcopy(dashboard_data)
    _sanitize_panels(sanitized.get("panels"))
    return sanitized
