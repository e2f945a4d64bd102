from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =========================
# Requests
# =========================


class PublicDashboardQueryDTO(CamelModel):
    interval_ms: int = 0
    max_data_points: int = 0


class AnnotationsQueryDTO(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_ms: int = Field(default=0, alias="from")
    to_ms: int = Field(default=0, alias="to")


class TimeSettingsSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: str | None = Field(default=None, alias="from")
    to: str | None = None


class SavePublicDashboardRequest(CamelModel):
    uid: str | None = None
    is_enabled: bool = False
    annotations_enabled: bool = False
    time_settings: TimeSettingsSchema | None = None


# =========================
# Responses
# =========================


class PublicDashboardResponse(CamelModel):
    uid: str
    dashboard_uid: str
    org_id: int
    access_token: str
    is_enabled: bool
    annotations_enabled: bool
    time_settings: TimeSettingsSchema
    created_by: int | None = None
    created_at: datetime | None = None
    updated_by: int | None = None
    updated_at: datetime | None = None


class PublicDashboardListItemResponse(CamelModel):
    uid: str
    access_token: str
    dashboard_uid: str
    title: str
    is_enabled: bool


class PublicDashboardViewResponse(BaseModel):
    dashboard: dict[str, Any]
    meta: dict[str, Any]


class AnnotationEventResponse(CamelModel):
    id: int
    dashboard_id: int | None = None
    dashboard_uid: str | None = None
    panel_id: int = 0
    tags: list[str] = Field(default_factory=list)
    is_region: bool = False
    text: str = ""
    color: str = ""
    time: int = 0
    time_end: int = 0
    source: dict[str, Any] = Field(default_factory=dict)


# =========================
# Query data frames
# =========================


class FrameMeta(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    executed_query_string: str | None = None
    custom: dict[str, Any] | None = None


class FrameSchema(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    name: str | None = None
    ref_id: str | None = None
    meta: FrameMeta | None = None
    fields: list[dict[str, Any]] = Field(default_factory=list)


class DataFrame(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    frame_schema: FrameSchema = Field(default_factory=FrameSchema, alias="schema")
    data: dict[str, Any] = Field(default_factory=dict)


class DataResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    frames: list[DataFrame] = Field(default_factory=list)
    error: str | None = None
    status: int | None = None


class QueryDataResponse(BaseModel):
    results: dict[str, DataResponse] = Field(default_factory=dict)
