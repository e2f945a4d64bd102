from __future__ import annotations

import uuid

_NOT_FOUND_MESSAGE = "Public dashboard not found"


class PublicDashboardError(Exception):
    def __init__(self, *, status_code: int, code: str, message: str, error_id: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.error_id = error_id or str(uuid.uuid4())


class PublicDashboardNotFoundError(PublicDashboardError):
    """Missing record, disabled record and missing backing dashboard all look the same to callers."""

    def __init__(self) -> None:
        super().__init__(status_code=404, code="public_dashboard_not_found", message=_NOT_FOUND_MESSAGE)


class DashboardNotFoundError(PublicDashboardError):
    def __init__(self, message: str = "Dashboard not found") -> None:
        super().__init__(status_code=404, code="dashboard_not_found", message=message)


class PublicDashboardValidationError(PublicDashboardError):
    def __init__(self, *, code: str, message: str, status_code: int = 400) -> None:
        super().__init__(status_code=status_code, code=code, message=message)


class PanelNotFoundError(PublicDashboardValidationError):
    def __init__(self, panel_id: int) -> None:
        super().__init__(
            status_code=404,
            code="public_dashboard_panel_not_found",
            message=f"Public dashboard panel not found: {panel_id}",
        )


class IdentifierGenerationError(PublicDashboardError):
    def __init__(self, *, code: str, message: str) -> None:
        super().__init__(status_code=500, code=code, message=message)


class UpstreamError(PublicDashboardError):
    def __init__(self, *, code: str, message: str, status_code: int = 502) -> None:
        super().__init__(status_code=status_code, code=code, message=message)
