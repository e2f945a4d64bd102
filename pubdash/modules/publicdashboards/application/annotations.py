from __future__ import annotations

import logging
from typing import Any

from pubdash.errors import UpstreamError
from pubdash.modules.publicdashboards.application.queries import to_datasource_ref
from pubdash.modules.publicdashboards.domain.models import (
    AnnotationEvent,
    AnnotationItem,
    AnnotationQuery,
    AnnotationTarget,
    AnonymousExecutionContext,
    Dashboard,
    DashboardAnnotation,
)
from pubdash.modules.publicdashboards.domain.ports import AnnotationRepositoryPort

logger = logging.getLogger("uvicorn.error")

BUILTIN_ANNOTATION_DATASOURCE_UIDS = frozenset({"grafana", "-- Grafana --"})
DEFAULT_ANNOTATION_LIMIT = 100


def _parse_target(raw_target: Any) -> AnnotationTarget:
    if not isinstance(raw_target, dict):
        return AnnotationTarget()
    try:
        limit = int(raw_target.get("limit") or DEFAULT_ANNOTATION_LIMIT)
    except (TypeError, ValueError):
        limit = DEFAULT_ANNOTATION_LIMIT
    raw_tags = raw_target.get("tags")
    tags = [str(tag) for tag in raw_tags] if isinstance(raw_tags, list) else []
    return AnnotationTarget(
        type="tags" if raw_target.get("type") == "tags" else "dashboard",
        limit=limit,
        match_any=bool(raw_target.get("matchAny", False)),
        tags=tags,
    )


def parse_dashboard_annotations(dashboard_data: dict[str, Any]) -> list[DashboardAnnotation]:
    section = dashboard_data.get("annotations")
    if not isinstance(section, dict):
        return []
    items = section.get("list")
    if not isinstance(items, list):
        return []

    annotations: list[DashboardAnnotation] = []
    for raw in items:
        if not isinstance(raw, dict):
            continue
        annotations.append(
            DashboardAnnotation(
                name=str(raw.get("name") or ""),
                enable=raw.get("enable") is True,
                datasource=to_datasource_ref(raw.get("datasource")),
                target=_parse_target(raw.get("target")),
                icon_color=raw.get("iconColor"),
                type=raw.get("type"),
                raw=raw,
            )
        )
    return annotations


def is_builtin_annotation(annotation: DashboardAnnotation) -> bool:
    return annotation.datasource is not None and annotation.datasource.uid in BUILTIN_ANNOTATION_DATASOURCE_UIDS


def _to_event(item: AnnotationItem, annotation: DashboardAnnotation) -> AnnotationEvent:
    return AnnotationEvent(
        id=item.id,
        dashboard_id=item.dashboard_id,
        dashboard_uid=item.dashboard_uid,
        # tag annotations belong to the whole dashboard, not a panel
        panel_id=0 if annotation.is_tags_query else int(item.panel_id or 0),
        tags=list(item.tags),
        is_region=item.time != item.time_end,
        text=item.text,
        color=annotation.icon_color or "",
        time=item.time,
        time_end=item.time_end,
        source=dict(annotation.raw),
    )


class AnnotationResolver:
    def __init__(self, repository: AnnotationRepositoryPort) -> None:
        self._repository = repository

    def resolve(
        self,
        *,
        dashboard: Dashboard,
        time_from: int,
        time_to: int,
        context: AnonymousExecutionContext,
    ) -> list[AnnotationEvent]:
        """Collect native annotation events for the dashboard's built-in annotation definitions.

        An event reached by several definitions is reported once. A tags-type
        definition replaces whatever an earlier definition attributed to the same
        event id; a dashboard-type definition only fills ids not yet seen.
        """
        unique_events: dict[int, AnnotationEvent] = {}
        for annotation in parse_dashboard_annotations(dashboard.data):
            if not annotation.enable or not is_builtin_annotation(annotation):
                continue
            # an empty tag filter would match every annotation in the org
            if annotation.is_tags_query and not annotation.target.tags:
                continue

            query = AnnotationQuery(
                org_id=dashboard.org_id,
                time_from=time_from,
                time_to=time_to,
                dashboard_id=dashboard.id,
                dashboard_uid=dashboard.uid,
                limit=annotation.target.limit,
                match_any=annotation.target.match_any,
                context=context,
            )
            if annotation.is_tags_query:
                query.dashboard_id = None
                query.dashboard_uid = None
                query.tags = list(annotation.target.tags)

            try:
                items = self._repository.find(query)
            except Exception as exc:
                logger.warning(
                    "publicdashboards.annotations.failure | %s",
                    {"dashboard_uid": dashboard.uid, "org_id": dashboard.org_id, "error": str(exc)},
                )
                raise UpstreamError(
                    code="annotations_query_failed",
                    message=f"Failed to find annotations: {exc}",
                ) from exc

            for item in items:
                if item.id not in unique_events or annotation.is_tags_query:
                    unique_events[item.id] = _to_event(item, annotation)

        return list(unique_events.values())
