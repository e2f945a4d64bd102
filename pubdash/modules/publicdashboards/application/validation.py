from __future__ import annotations

from typing import Any

from pubdash.errors import PublicDashboardValidationError
from pubdash.modules.publicdashboards.domain.models import Dashboard, PublicDashboard


def has_template_variables(dashboard_data: dict[str, Any]) -> bool:
    templating = dashboard_data.get("templating")
    if not isinstance(templating, dict):
        return False
    variables = templating.get("list")
    return isinstance(variables, list) and len(variables) > 0


def validate_save_public_dashboard(dashboard: Dashboard) -> None:
    if has_template_variables(dashboard.data):
        raise PublicDashboardValidationError(
            code="template_variables_not_supported",
            message="Public dashboard creation is disabled for dashboards with template variables",
        )


def validate_existing_matches_dashboard(existing: PublicDashboard, dashboard: Dashboard) -> None:
    if existing.dashboard_uid != dashboard.uid or existing.org_id != dashboard.org_id:
        raise PublicDashboardValidationError(
            code="public_dashboard_dashboard_mismatch",
            message="Public dashboard does not belong to this dashboard",
        )


def validate_query_request(*, interval_ms: int, max_data_points: int) -> None:
    if interval_ms < 0:
        raise PublicDashboardValidationError(code="invalid_interval", message="intervalMs must not be negative")
    if max_data_points < 0:
        raise PublicDashboardValidationError(
            code="invalid_max_data_points",
            message="maxDataPoints must not be negative",
        )
