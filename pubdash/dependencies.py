from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from pubdash.modules.publicdashboards import (
    HttpQueryDataClient,
    PublicDashboardService,
    SqlAnnotationRepository,
    SqlDashboardStore,
    SqlPublicDashboardStore,
)
from pubdash.shared.infrastructure.database import get_db

_query_data_client = HttpQueryDataClient()


@dataclass(slots=True)
class SignedInUser:
    user_id: int
    org_id: int


def get_query_data_client() -> HttpQueryDataClient:
    return _query_data_client


def get_public_dashboard_service(
    db: Session = Depends(get_db),
    query_data_client: HttpQueryDataClient = Depends(get_query_data_client),
) -> PublicDashboardService:
    return PublicDashboardService(
        dashboard_store=SqlDashboardStore(db),
        public_dashboard_store=SqlPublicDashboardStore(db),
        query_data_service=query_data_client,
        annotation_repository=SqlAnnotationRepository(db),
    )


async def get_signed_in_user(
    x_user_id: str | None = Header(default=None),
    x_org_id: str | None = Header(default=None),
) -> SignedInUser:
    """Identity of the authenticated caller, as forwarded by the fronting proxy."""
    if not x_user_id or not x_org_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    try:
        return SignedInUser(user_id=int(x_user_id), org_id=int(x_org_id))
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid identity headers",
        ) from exc
