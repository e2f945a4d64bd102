from __future__ import annotations

from typing import Any, Protocol

from pubdash.modules.publicdashboards.domain.models import (
    AnnotationItem,
    AnnotationQuery,
    AnonymousExecutionContext,
    Dashboard,
    MetricRequest,
    PublicDashboard,
    PublicDashboardListItem,
)
from pubdash.schemas import QueryDataResponse


class DashboardStorePort(Protocol):
    def find_dashboard(self, uid: str, org_id: int) -> Dashboard | None:
        raise NotImplementedError

    def save_dashboard(self, *, org_id: int, data: dict[str, Any], uid: str | None = None) -> Dashboard:
        raise NotImplementedError


class PublicDashboardStorePort(Protocol):
    def find(self, uid: str) -> PublicDashboard | None:
        raise NotImplementedError

    def find_by_access_token(self, access_token: str) -> PublicDashboard | None:
        raise NotImplementedError

    def find_by_dashboard_uid(self, org_id: int, dashboard_uid: str) -> PublicDashboard | None:
        raise NotImplementedError

    def find_all(self, org_id: int) -> list[PublicDashboardListItem]:
        raise NotImplementedError

    def save(self, public_dashboard: PublicDashboard) -> None:
        raise NotImplementedError

    def update(self, public_dashboard: PublicDashboard) -> None:
        raise NotImplementedError

    def exists_enabled_by_access_token(self, access_token: str) -> bool:
        raise NotImplementedError

    def exists_enabled_by_dashboard_uid(self, dashboard_uid: str) -> bool:
        raise NotImplementedError


class QueryDataServicePort(Protocol):
    async def query_data(
        self,
        *,
        request: MetricRequest,
        context: AnonymousExecutionContext,
        skip_cache: bool = False,
    ) -> QueryDataResponse:
        raise NotImplementedError


class AnnotationRepositoryPort(Protocol):
    def find(self, query: AnnotationQuery) -> list[AnnotationItem]:
        raise NotImplementedError


class IdentifierGeneratorPort(Protocol):
    def new_random_id(self) -> str:
        raise NotImplementedError
