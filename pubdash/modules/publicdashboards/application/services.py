from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable

from pubdash.errors import (
    DashboardNotFoundError,
    PanelNotFoundError,
    PublicDashboardError,
    PublicDashboardNotFoundError,
    PublicDashboardValidationError,
    UpstreamError,
)
from pubdash.modules.publicdashboards.application.access import build_anonymous_context
from pubdash.modules.publicdashboards.application.annotations import AnnotationResolver
from pubdash.modules.publicdashboards.application.intervals import get_safe_interval_and_max_data_points
from pubdash.modules.publicdashboards.application.queries import group_queries_by_datasource, group_queries_by_panel_id
from pubdash.modules.publicdashboards.application.sanitizer import (
    sanitize_dashboard_for_view,
    sanitize_metadata_from_query_data,
)
from pubdash.modules.publicdashboards.application.timerange import build_time_settings
from pubdash.modules.publicdashboards.application.tokens import TokenLifecycleManager
from pubdash.modules.publicdashboards.application.validation import (
    validate_existing_matches_dashboard,
    validate_query_request,
    validate_save_public_dashboard,
)
from pubdash.modules.publicdashboards.domain.models import (
    AnnotationEvent,
    Dashboard,
    MetricRequest,
    PublicDashboard,
    PublicDashboardListItem,
    SavePublicDashboardCommand,
    TimeSettings,
)
from pubdash.modules.publicdashboards.domain.ports import (
    AnnotationRepositoryPort,
    DashboardStorePort,
    PublicDashboardStorePort,
    QueryDataServicePort,
)
from pubdash.schemas import AnnotationsQueryDTO, PublicDashboardQueryDTO, QueryDataResponse
from pubdash.shared.observability.query_logging import log_public_query_failure, log_public_query_success

logger = logging.getLogger("uvicorn.error")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _slugify(title: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")


def is_enabled_changed(existing: PublicDashboard | None, new: PublicDashboard) -> bool:
    if existing is None:
        return new.is_enabled
    return existing.is_enabled != new.is_enabled


class PublicDashboardService:
    def __init__(
        self,
        *,
        dashboard_store: DashboardStorePort,
        public_dashboard_store: PublicDashboardStorePort,
        query_data_service: QueryDataServicePort,
        annotation_repository: AnnotationRepositoryPort,
        token_manager: TokenLifecycleManager | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._dashboards = dashboard_store
        self._store = public_dashboard_store
        self._query_data = query_data_service
        self._annotations = AnnotationResolver(annotation_repository)
        self._tokens = token_manager or TokenLifecycleManager(public_dashboard_store)
        self._clock = clock or _utcnow

    # =========================
    # Anonymous read path
    # =========================

    def find_public_dashboard_and_dashboard(self, access_token: str) -> tuple[PublicDashboard, Dashboard]:
        """Resolve an access token to its enabled record and backing dashboard.

        Missing tokens, disabled records and deleted dashboards all raise the same
        not-found error so an anonymous caller cannot tell them apart.
        """
        public_dashboard = self._store.find_by_access_token(access_token)
        if public_dashboard is None or not public_dashboard.is_enabled:
            raise PublicDashboardNotFoundError()

        dashboard = self._dashboards.find_dashboard(public_dashboard.dashboard_uid, public_dashboard.org_id)
        if dashboard is None:
            raise PublicDashboardNotFoundError()
        return public_dashboard, dashboard

    def exists_enabled_by_access_token(self, access_token: str) -> bool:
        return self._store.exists_enabled_by_access_token(access_token)

    def get_public_dashboard(self, access_token: str) -> dict[str, Any]:
        public_dashboard, dashboard = self.find_public_dashboard_and_dashboard(access_token)
        title = dashboard.title or str(dashboard.data.get("title") or "")
        meta = {
            "slug": _slugify(title),
            "type": "db",
            "canStar": False,
            "canSave": False,
            "canEdit": False,
            "canAdmin": False,
            "canDelete": False,
            "isFolder": False,
            "publicDashboardAccessToken": public_dashboard.access_token,
            "publicDashboardUid": public_dashboard.uid,
            "publicDashboardEnabled": public_dashboard.is_enabled,
            "annotationsEnabled": public_dashboard.annotations_enabled,
        }
        return {"dashboard": sanitize_dashboard_for_view(dashboard.data), "meta": meta}

    def get_metric_request(
        self,
        dashboard: Dashboard,
        public_dashboard: PublicDashboard,
        panel_id: int,
        query_dto: PublicDashboardQueryDTO,
    ) -> MetricRequest:
        validate_query_request(interval_ms=query_dto.interval_ms, max_data_points=query_dto.max_data_points)

        queries_by_panel = group_queries_by_panel_id(dashboard.data)
        if panel_id not in queries_by_panel:
            raise PanelNotFoundError(panel_id)

        now = self._clock()
        time_settings = build_time_settings(dashboard.data, now=now)
        interval_ms, max_data_points = get_safe_interval_and_max_data_points(
            query_dto.interval_ms,
            query_dto.max_data_points,
            time_settings,
            now=now,
        )

        queries = queries_by_panel[panel_id]
        for query in queries:
            query.interval_ms = interval_ms
            query.max_data_points = max_data_points

        return MetricRequest(
            time_from=time_settings.from_ or "",
            time_to=time_settings.to or "",
            queries=queries,
        )

    async def get_query_data_response(
        self,
        access_token: str,
        panel_id: int,
        query_dto: PublicDashboardQueryDTO,
        *,
        skip_cache: bool = False,
    ) -> QueryDataResponse:
        public_dashboard, dashboard = self.find_public_dashboard_and_dashboard(access_token)
        metric_request = self.get_metric_request(dashboard, public_dashboard, panel_id, query_dto)
        if not metric_request.queries:
            return QueryDataResponse()

        context = build_anonymous_context(dashboard)
        log_fields = {
            "access_token": access_token,
            "org_id": dashboard.org_id,
            "panel_id": panel_id,
            "datasource_types": metric_request.datasource_types(),
            "queries": [query.to_payload() for query in metric_request.queries],
        }

        merged = QueryDataResponse()
        try:
            for queries in group_queries_by_datasource(metric_request.queries).values():
                response = await self._query_data.query_data(
                    request=MetricRequest(
                        time_from=metric_request.time_from,
                        time_to=metric_request.time_to,
                        queries=queries,
                    ),
                    context=context,
                    skip_cache=skip_cache,
                )
                merged.results.update(response.results)
        except Exception as exc:
            log_public_query_failure(error=exc, **log_fields)
            if isinstance(exc, PublicDashboardError):
                raise
            raise UpstreamError(code="query_execution_failed", message=f"Query execution failed: {exc}") from exc

        log_public_query_success(**log_fields)
        return sanitize_metadata_from_query_data(merged)

    def find_annotations(self, access_token: str, query_dto: AnnotationsQueryDTO) -> list[AnnotationEvent]:
        public_dashboard, dashboard = self.find_public_dashboard_and_dashboard(access_token)
        if not public_dashboard.annotations_enabled:
            return []

        time_from, time_to = query_dto.from_ms, query_dto.to_ms
        if time_from <= 0 or time_to <= 0:
            # a missing bound falls back to the dashboard's own range
            time_settings = build_time_settings(dashboard.data, now=self._clock())
            if time_from <= 0:
                time_from = int(time_settings.from_ or 0)
            if time_to <= 0:
                time_to = int(time_settings.to or 0)

        return self._annotations.resolve(
            dashboard=dashboard,
            time_from=time_from,
            time_to=time_to,
            context=build_anonymous_context(dashboard),
        )

    # =========================
    # Authenticated configuration path
    # =========================

    def find_by_dashboard_uid(self, org_id: int, dashboard_uid: str) -> PublicDashboard:
        public_dashboard = self._store.find_by_dashboard_uid(org_id, dashboard_uid)
        if public_dashboard is None:
            raise PublicDashboardNotFoundError()
        return public_dashboard

    def find_all(self, org_id: int) -> list[PublicDashboardListItem]:
        return self._store.find_all(org_id)

    def save(self, command: SavePublicDashboardCommand) -> PublicDashboard:
        dashboard = self._dashboards.find_dashboard(command.dashboard_uid, command.org_id)
        if dashboard is None:
            raise DashboardNotFoundError()

        if command.uid:
            existing = self._store.find(command.uid)
        else:
            existing = self._store.find_by_dashboard_uid(command.org_id, command.dashboard_uid)

        if existing is not None:
            validate_existing_matches_dashboard(existing, dashboard)
            uid = self._update(existing, command)
        else:
            uid = self._create(dashboard, command)

        saved = self._store.find(uid)
        if saved is None:
            raise PublicDashboardNotFoundError()

        if is_enabled_changed(existing, saved):
            logger.info(
                "publicdashboards.enabled_changed | %s",
                {
                    "uid": saved.uid,
                    "dashboard_uid": saved.dashboard_uid,
                    "org_id": saved.org_id,
                    "is_enabled": saved.is_enabled,
                    "user_id": command.user_id,
                },
            )
        return saved

    def _create(self, dashboard: Dashboard, command: SavePublicDashboardCommand) -> str:
        validate_save_public_dashboard(dashboard)
        if command.uid and self._store.find_by_dashboard_uid(dashboard.org_id, dashboard.uid) is not None:
            raise PublicDashboardValidationError(
                status_code=409,
                code="public_dashboard_already_exists",
                message="Dashboard already has a public dashboard",
            )

        uid = self._tokens.new_uid(command.uid)
        access_token = self._tokens.new_access_token()
        self._store.save(
            PublicDashboard(
                uid=uid,
                dashboard_uid=dashboard.uid,
                org_id=dashboard.org_id,
                access_token=access_token,
                is_enabled=command.is_enabled,
                annotations_enabled=command.annotations_enabled,
                time_settings=command.time_settings or TimeSettings(),
                created_by=command.user_id,
                created_at=self._clock(),
            )
        )
        return uid

    def _update(self, existing: PublicDashboard, command: SavePublicDashboardCommand) -> str:
        self._store.update(
            PublicDashboard(
                uid=existing.uid,
                dashboard_uid=existing.dashboard_uid,
                org_id=existing.org_id,
                access_token=existing.access_token,
                is_enabled=command.is_enabled,
                annotations_enabled=command.annotations_enabled,
                time_settings=command.time_settings or TimeSettings(),
                created_by=existing.created_by,
                created_at=existing.created_at,
                updated_by=command.user_id,
                updated_at=self._clock(),
            )
        )
        return existing.uid
