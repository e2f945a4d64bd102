import asyncio
import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pubdash import models  # noqa: F401  registers tables on Base.metadata
from pubdash.api.v1.routes import health, public_dashboards
from pubdash.errors import PublicDashboardError
from pubdash.shared.infrastructure.database import Base, engine
from pubdash.shared.infrastructure.settings import get_settings

logger = logging.getLogger("uvicorn.error")
settings = get_settings()

# Create tables
Base.metadata.create_all(bind=engine)


def _resolve_cors_origins() -> list[str]:
    if settings.cors_origins:
        return settings.cors_origins
    if settings.environment in {"development", "test"}:
        return ["http://localhost:3000", "http://127.0.0.1:3000"]
    return []


def _error_response(*, status_code: int, code: str, message: str, error_id: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message, "error_id": error_id}},
    )


def create_app() -> FastAPI:
    docs_enabled = settings.environment != "production"
    app = FastAPI(
        title="Pubdash API",
        description="Anonymous read access to public dashboards",
        version="0.1.0",
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
    )

    cors_origins = _resolve_cors_origins()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(PublicDashboardError)
    async def handle_public_dashboard_error(_request: Request, exc: PublicDashboardError) -> JSONResponse:
        logger.warning(
            "publicdashboards.handled_error | %s",
            {
                "error_id": exc.error_id,
                "code": exc.code,
                "status_code": exc.status_code,
            },
        )
        return _error_response(
            status_code=exc.status_code,
            code=exc.code,
            message=exc.message,
            error_id=exc.error_id,
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(_request: Request, exc: Exception) -> JSONResponse:
        error_id = str(uuid.uuid4())
        logger.exception("publicdashboards.unhandled_error | %s", {"error_id": error_id})
        return _error_response(
            status_code=500,
            code="internal_error",
            message="Unexpected internal error",
            error_id=error_id,
        )

    @app.middleware("http")
    async def request_timeout_middleware(request: Request, call_next):  # type: ignore[override]
        try:
            return await asyncio.wait_for(call_next(request), timeout=settings.request_timeout_seconds)
        except TimeoutError:
            # raised outside the exception handlers, so answer directly
            error_id = str(uuid.uuid4())
            logger.warning("publicdashboards.request_timeout | %s", {"error_id": error_id, "path": request.url.path})
            return _error_response(
                status_code=504,
                code="request_timeout",
                message="Request timed out",
                error_id=error_id,
            )

    app.include_router(health.router)
    app.include_router(public_dashboards.public_router)
    app.include_router(public_dashboards.router)
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
