from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from pubdash.modules.publicdashboards.domain.models import LEGACY_DATASOURCE_TYPE, DatasourceRef, QueryDescriptor

# Keys lifted out of a raw target into typed descriptor attributes, or dropped entirely.
_RESERVED_TARGET_KEYS = frozenset({"datasource", "refId", "exemplar", "intervalMs", "maxDataPoints"})


def to_datasource_ref(value: Any) -> DatasourceRef | None:
    """Normalize a datasource reference across dashboard schema versions.

    Since schema 33 references are ``{"type", "uid"}`` objects. Older documents store
    a bare string, whose concrete type cannot be recovered, so it is tagged as
    ``public-ds``.
    """
    if isinstance(value, dict):
        uid = value.get("uid")
        ds_type = value.get("type")
        return DatasourceRef(
            uid=str(uid) if uid not in (None, "") else None,
            type=str(ds_type) if ds_type not in (None, "") else None,
        )
    if isinstance(value, str) and value:
        return DatasourceRef(uid=value, type=LEGACY_DATASOURCE_TYPE)
    return None


def _panel_id(panel: dict[str, Any]) -> int | None:
    raw_id = panel.get("id")
    if raw_id is None or isinstance(raw_id, bool):
        return None
    try:
        return int(raw_id)
    except (TypeError, ValueError):
        return None


def _iter_panels(panels: Any) -> Iterator[dict[str, Any]]:
    if not isinstance(panels, list):
        return
    for panel in panels:
        if not isinstance(panel, dict):
            continue
        yield panel
        # collapsed rows keep their children nested
        if panel.get("type") == "row":
            yield from _iter_panels(panel.get("panels"))


def _normalize_query(target: dict[str, Any], panel_datasource: DatasourceRef | None) -> QueryDescriptor | None:
    if target.get("hide") is True:
        return None

    raw_datasource = target.get("datasource")
    datasource = to_datasource_ref(raw_datasource) if raw_datasource is not None else None
    if datasource is None and panel_datasource is not None:
        datasource = DatasourceRef(uid=panel_datasource.uid, type=panel_datasource.type)

    ref_id = target.get("refId")
    return QueryDescriptor(
        ref_id=str(ref_id) if ref_id is not None else None,
        datasource=datasource,
        fields={key: value for key, value in target.items() if key not in _RESERVED_TARGET_KEYS},
    )


def group_queries_by_panel_id(dashboard_data: dict[str, Any]) -> dict[int, list[QueryDescriptor]]:
    """Map every panel id to its visible queries, in dashboard order.

    The dashboard document is never mutated; each call builds fresh descriptors.
    """
    result: dict[int, list[QueryDescriptor]] = {}
    for panel in _iter_panels(dashboard_data.get("panels")):
        panel_id = _panel_id(panel)
        # panels without an id cannot be addressed by a query request
        if panel_id is None:
            continue
        panel_datasource = to_datasource_ref(panel.get("datasource"))
        queries: list[QueryDescriptor] = []
        targets = panel.get("targets")
        if isinstance(targets, list):
            for target in targets:
                if not isinstance(target, dict):
                    continue
                query = _normalize_query(target, panel_datasource)
                if query is not None:
                    queries.append(query)
        result[panel_id] = queries
    return result


def group_queries_by_datasource(queries: list[QueryDescriptor]) -> dict[str | None, list[QueryDescriptor]]:
    # queries without a datasource uid share the None bucket
    groups: dict[str | None, list[QueryDescriptor]] = {}
    for query in queries:
        groups.setdefault(query.datasource_uid, []).append(query)
    return groups
