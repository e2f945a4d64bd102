from fastapi import APIRouter, Depends, Header, Query

from pubdash.dependencies import SignedInUser, get_public_dashboard_service, get_signed_in_user
from pubdash.errors import PublicDashboardNotFoundError
from pubdash.modules.publicdashboards import PublicDashboardService
from pubdash.modules.publicdashboards.domain.models import (
    AnnotationEvent,
    PublicDashboard,
    SavePublicDashboardCommand,
    TimeSettings,
)
from pubdash.schemas import (
    AnnotationEventResponse,
    AnnotationsQueryDTO,
    PublicDashboardListItemResponse,
    PublicDashboardQueryDTO,
    PublicDashboardResponse,
    PublicDashboardViewResponse,
    QueryDataResponse,
    SavePublicDashboardRequest,
    TimeSettingsSchema,
)

public_router = APIRouter(prefix="/api/public/dashboards", tags=["public-dashboards"])
router = APIRouter(prefix="/api/dashboards", tags=["public-dashboards"])


def _to_response(public_dashboard: PublicDashboard) -> PublicDashboardResponse:
    return PublicDashboardResponse(
        uid=public_dashboard.uid,
        dashboard_uid=public_dashboard.dashboard_uid,
        org_id=public_dashboard.org_id,
        access_token=public_dashboard.access_token,
        is_enabled=public_dashboard.is_enabled,
        annotations_enabled=public_dashboard.annotations_enabled,
        time_settings=TimeSettingsSchema(from_=public_dashboard.time_settings.from_, to=public_dashboard.time_settings.to),
        created_by=public_dashboard.created_by,
        created_at=public_dashboard.created_at,
        updated_by=public_dashboard.updated_by,
        updated_at=public_dashboard.updated_at,
    )


def _to_event_response(event: AnnotationEvent) -> AnnotationEventResponse:
    return AnnotationEventResponse(
        id=event.id,
        dashboard_id=event.dashboard_id,
        dashboard_uid=event.dashboard_uid,
        panel_id=event.panel_id,
        tags=event.tags,
        is_region=event.is_region,
        text=event.text,
        color=event.color,
        time=event.time,
        time_end=event.time_end,
        source=event.source,
    )


async def require_enabled_access_token(
    access_token: str,
    service: PublicDashboardService = Depends(get_public_dashboard_service),
) -> str:
    if not service.exists_enabled_by_access_token(access_token):
        raise PublicDashboardNotFoundError()
    return access_token


# =========================
# Anonymous endpoints
# =========================


@public_router.get("/{access_token}", response_model=PublicDashboardViewResponse)
async def get_public_dashboard(
    access_token: str = Depends(require_enabled_access_token),
    service: PublicDashboardService = Depends(get_public_dashboard_service),
):
    return service.get_public_dashboard(access_token)


@public_router.post("/{access_token}/panels/{panel_id}/query", response_model=QueryDataResponse)
async def query_public_dashboard_panel(
    panel_id: int,
    request: PublicDashboardQueryDTO | None = None,
    x_cache_skip: bool = Header(default=False),
    access_token: str = Depends(require_enabled_access_token),
    service: PublicDashboardService = Depends(get_public_dashboard_service),
):
    return await service.get_query_data_response(
        access_token,
        panel_id,
        request or PublicDashboardQueryDTO(),
        skip_cache=x_cache_skip,
    )


@public_router.get("/{access_token}/annotations", response_model=list[AnnotationEventResponse])
async def get_public_dashboard_annotations(
    from_ms: int = Query(default=0, alias="from"),
    to_ms: int = Query(default=0, alias="to"),
    access_token: str = Depends(require_enabled_access_token),
    service: PublicDashboardService = Depends(get_public_dashboard_service),
):
    events = service.find_annotations(access_token, AnnotationsQueryDTO(from_ms=from_ms, to_ms=to_ms))
    return [_to_event_response(event) for event in events]


# =========================
# Authenticated configuration endpoints
# =========================


@router.get("/public-dashboards", response_model=list[PublicDashboardListItemResponse])
async def list_public_dashboards(
    current_user: SignedInUser = Depends(get_signed_in_user),
    service: PublicDashboardService = Depends(get_public_dashboard_service),
):
    items = service.find_all(current_user.org_id)
    return [
        PublicDashboardListItemResponse(
            uid=item.uid,
            access_token=item.access_token,
            dashboard_uid=item.dashboard_uid,
            title=item.title,
            is_enabled=item.is_enabled,
        )
        for item in items
    ]


@router.get("/uid/{dashboard_uid}/public-dashboards", response_model=PublicDashboardResponse)
async def get_public_dashboard_config(
    dashboard_uid: str,
    current_user: SignedInUser = Depends(get_signed_in_user),
    service: PublicDashboardService = Depends(get_public_dashboard_service),
):
    return _to_response(service.find_by_dashboard_uid(current_user.org_id, dashboard_uid))


@router.post("/uid/{dashboard_uid}/public-dashboards", response_model=PublicDashboardResponse)
async def save_public_dashboard_config(
    dashboard_uid: str,
    request: SavePublicDashboardRequest,
    current_user: SignedInUser = Depends(get_signed_in_user),
    service: PublicDashboardService = Depends(get_public_dashboard_service),
):
    """Create the dashboard's public configuration, or update the existing one."""
    time_settings = None
    if request.time_settings is not None:
        time_settings = TimeSettings(from_=request.time_settings.from_, to=request.time_settings.to)

    saved = service.save(
        SavePublicDashboardCommand(
            dashboard_uid=dashboard_uid,
            org_id=current_user.org_id,
            user_id=current_user.user_id,
            uid=request.uid,
            is_enabled=request.is_enabled,
            annotations_enabled=request.annotations_enabled,
            time_settings=time_settings,
        )
    )
    return _to_response(saved)
