from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

AnnotationTargetType = Literal["dashboard", "tags"]

ACTION_DATASOURCES_QUERY = "datasources:query"
ACTION_DATASOURCES_READ = "datasources:read"
ACTION_DASHBOARDS_READ = "dashboards:read"
ACTION_ANNOTATIONS_READ = "annotations:read"

SCOPE_DASHBOARDS_ALL = "dashboards:*"
SCOPE_ANNOTATIONS_TYPE_DASHBOARD = "annotations:type:dashboard"
SCOPE_ANNOTATIONS_TYPE_ORGANIZATION = "annotations:type:organization"

LEGACY_DATASOURCE_TYPE = "public-ds"


def datasource_scope(uid: str) -> str:
    return f"datasources:uid:{uid}"


@dataclass(slots=True)
class DatasourceRef:
    uid: str | None
    type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.type is not None:
            payload["type"] = self.type
        if self.uid is not None:
            payload["uid"] = self.uid
        return payload


@dataclass(slots=True)
class QueryDescriptor:
    ref_id: str | None
    datasource: DatasourceRef | None
    fields: dict[str, Any] = field(default_factory=dict)
    interval_ms: int | None = None
    max_data_points: int | None = None

    @property
    def datasource_uid(self) -> str | None:
        if self.datasource is None or not self.datasource.uid:
            return None
        return self.datasource.uid

    def to_payload(self) -> dict[str, Any]:
        payload = dict(self.fields)
        if self.datasource is not None:
            payload["datasource"] = self.datasource.to_dict()
        if self.ref_id is not None:
            payload["refId"] = self.ref_id
        if self.interval_ms is not None:
            payload["intervalMs"] = self.interval_ms
        if self.max_data_points is not None:
            payload["maxDataPoints"] = self.max_data_points
        return payload


@dataclass(slots=True)
class TimeSettings:
    from_: str | None = None
    to: str | None = None

    def to_dict(self) -> dict[str, str]:
        payload: dict[str, str] = {}
        if self.from_:
            payload["from"] = self.from_
        if self.to:
            payload["to"] = self.to
        return payload

    @classmethod
    def from_dict(cls, value: dict[str, Any] | None) -> TimeSettings:
        if not value:
            return cls()
        return cls(from_=value.get("from") or None, to=value.get("to") or None)


@dataclass(slots=True)
class Dashboard:
    uid: str
    org_id: int
    data: dict[str, Any]
    id: int | None = None
    title: str = ""


@dataclass(slots=True)
class PublicDashboard:
    uid: str
    dashboard_uid: str
    org_id: int
    access_token: str
    is_enabled: bool = False
    annotations_enabled: bool = False
    time_settings: TimeSettings = field(default_factory=TimeSettings)
    created_by: int | None = None
    created_at: datetime | None = None
    updated_by: int | None = None
    updated_at: datetime | None = None


@dataclass(slots=True)
class PublicDashboardListItem:
    uid: str
    access_token: str
    dashboard_uid: str
    title: str
    is_enabled: bool


@dataclass(slots=True)
class SavePublicDashboardCommand:
    dashboard_uid: str
    org_id: int
    user_id: int
    uid: str | None = None
    is_enabled: bool = False
    annotations_enabled: bool = False
    time_settings: TimeSettings | None = None


@dataclass(slots=True)
class MetricRequest:
    time_from: str
    time_to: str
    queries: list[QueryDescriptor] = field(default_factory=list)

    def datasource_types(self) -> list[str]:
        types = {query.datasource.type for query in self.queries if query.datasource and query.datasource.type}
        return sorted(types)


@dataclass(slots=True)
class AnonymousExecutionContext:
    org_id: int
    permissions: dict[str, list[str]] = field(default_factory=dict)

    def has_permission(self, action: str, scope: str) -> bool:
        return scope in self.permissions.get(action, [])

    @property
    def datasource_uids(self) -> list[str]:
        prefix = datasource_scope("")
        return [scope[len(prefix):] for scope in self.permissions.get(ACTION_DATASOURCES_QUERY, [])]


@dataclass(slots=True)
class AnnotationTarget:
    type: AnnotationTargetType = "dashboard"
    limit: int = 100
    match_any: bool = False
    tags: list[str] = field(default_factory=list)


@dataclass(slots=True)
class DashboardAnnotation:
    name: str
    enable: bool
    datasource: DatasourceRef | None
    target: AnnotationTarget
    icon_color: str | None = None
    type: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def is_tags_query(self) -> bool:
        return self.target.type == "tags"


@dataclass(slots=True)
class AnnotationQuery:
    org_id: int
    time_from: int = 0
    time_to: int = 0
    dashboard_id: int | None = None
    dashboard_uid: str | None = None
    limit: int = 100
    match_any: bool = False
    tags: list[str] = field(default_factory=list)
    context: AnonymousExecutionContext | None = None


@dataclass(slots=True)
class AnnotationItem:
    id: int
    dashboard_id: int | None
    panel_id: int | None
    time: int
    time_end: int
    text: str = ""
    tags: list[str] = field(default_factory=list)
    dashboard_uid: str | None = None


@dataclass(slots=True)
class AnnotationEvent:
    id: int
    dashboard_id: int | None
    panel_id: int
    tags: list[str]
    is_region: bool
    text: str
    color: str
    time: int
    time_end: int
    source: dict[str, Any]
    dashboard_uid: str | None = None
