from pubdash.modules.publicdashboards.adapters.annotations_repository import SqlAnnotationRepository
from pubdash.modules.publicdashboards.adapters.query_data_client import HttpQueryDataClient
from pubdash.modules.publicdashboards.adapters.sqlalchemy_store import SqlDashboardStore, SqlPublicDashboardStore
from pubdash.modules.publicdashboards.application.services import PublicDashboardService, is_enabled_changed
from pubdash.modules.publicdashboards.application.tokens import TokenLifecycleManager

__all__ = [
    "HttpQueryDataClient",
    "PublicDashboardService",
    "SqlAnnotationRepository",
    "SqlDashboardStore",
    "SqlPublicDashboardStore",
    "TokenLifecycleManager",
    "is_enabled_changed",
]
