from __future__ import annotations

from typing import Any

from pubdash.modules.publicdashboards.application.queries import group_queries_by_panel_id
from pubdash.modules.publicdashboards.domain.models import (
    ACTION_ANNOTATIONS_READ,
    ACTION_DASHBOARDS_READ,
    ACTION_DATASOURCES_QUERY,
    ACTION_DATASOURCES_READ,
    SCOPE_ANNOTATIONS_TYPE_DASHBOARD,
    SCOPE_DASHBOARDS_ALL,
    AnonymousExecutionContext,
    Dashboard,
    datasource_scope,
)


def get_unique_dashboard_datasource_uids(dashboard_data: dict[str, Any]) -> list[str]:
    uids: set[str] = set()
    for queries in group_queries_by_panel_id(dashboard_data).values():
        for query in queries:
            if query.datasource_uid is not None:
                uids.add(query.datasource_uid)
    return sorted(uids)


def build_anonymous_context(dashboard: Dashboard) -> AnonymousExecutionContext:
    """Build the permission set an anonymous viewer needs for this dashboard and nothing more.

    Datasource access is limited to the datasources the visible queries point at.
    Dashboard read is granted on ``dashboards:*`` because annotation and query
    execution look dashboards up by id; annotation read stays limited to dashboard
    annotations, never to query-backed annotation types.
    """
    datasource_scopes = [datasource_scope(uid) for uid in get_unique_dashboard_datasource_uids(dashboard.data)]
    return AnonymousExecutionContext(
        org_id=dashboard.org_id,
        permissions={
            ACTION_DATASOURCES_QUERY: list(datasource_scopes),
            ACTION_DATASOURCES_READ: list(datasource_scopes),
            ACTION_DASHBOARDS_READ: [SCOPE_DASHBOARDS_ALL],
            ACTION_ANNOTATIONS_READ: [SCOPE_ANNOTATIONS_TYPE_DASHBOARD],
        },
    )
