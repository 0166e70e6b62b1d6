from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .buckets import BUCKETS
from .configuration import DashboardSettings
from .exceptions import ConfigurationError, DashboardError, ErrorCode
from .models import DashboardFilters
from .repository import build_repository
from .service import TrelloDashboardService
from .workload_view import build_dashboard_view

logger = logging.getLogger(__name__)


class ErrorPayload(BaseModel):
    error: str
    code: ErrorCode
    details: Optional[Any] = None


class RevalidateResponse(BaseModel):
    revalidated: bool
    generation: int


def api_error_response(status_code: int, code: ErrorCode, error: str, details: Any = None) -> JSONResponse:
    payload = ErrorPayload(error=error, code=code, details=details)
    return JSONResponse(status_code=status_code, content=payload.model_dump(exclude_none=True))


def get_service(request: Request) -> TrelloDashboardService:
    service = request.app.state.service
    if service is None:
        raise ConfigurationError("Dashboard service is not configured; the application did not start up.")
    return service


def create_app(
    service: Optional[TrelloDashboardService] = None,
    settings: Optional[DashboardSettings] = None,
) -> FastAPI:
    """
    Build the dashboard API.

    Without an injected ``service`` the lifespan hook loads settings from the
    environment at start-up, so missing configuration stops the process
    before it serves a request.
    """

    @asynccontextmanager
    async def lifespan(target_app: FastAPI) -> AsyncIterator[None]:
        if target_app.state.service is None:
            if settings is None:
                load_dotenv()
            cfg = settings or DashboardSettings.from_env()
            target_app.state.service = TrelloDashboardService(build_repository(cfg), cfg)
            logger.info("Dashboard configured for board %s", cfg.trello_board_id)
        yield

    app = FastAPI(title="Trello Board Dashboard API", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.state.service = service

    @app.exception_handler(DashboardError)
    async def dashboard_error_handler(request: Request, exc: DashboardError) -> JSONResponse:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return api_error_response(exc.status_code, exc.code, str(exc) or "Failed to fetch dashboard data")

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.errors())
        return api_error_response(
            422,
            "validation_failed",
            "Invalid request parameters",
            details=jsonable_encoder(exc.errors()),
        )

    @app.get("/health")
    async def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/dashboard-data")
    async def dashboard_data(service: TrelloDashboardService = Depends(get_service)) -> Dict[str, Any]:
        data = await service.get_dashboard_data()
        return data.as_dict()

    @app.get("/dashboard-data/view")
    async def dashboard_view(
        search: str = Query("", max_length=200),
        member: Optional[str] = None,
        bucket: Optional[str] = None,
        service: TrelloDashboardService = Depends(get_service),
    ):
        if bucket and bucket not in BUCKETS:
            return api_error_response(
                400,
                "bad_request",
                f'Unknown bucket "{bucket}".',
                details={"allowed": list(BUCKETS)},
            )
        data = await service.get_dashboard_data()
        view = build_dashboard_view(data, DashboardFilters(search=search, member=member or None, bucket=bucket))
        return view.as_dict()

    @app.post("/revalidate", response_model=RevalidateResponse)
    async def revalidate(service: TrelloDashboardService = Depends(get_service)) -> RevalidateResponse:
        generation = service.revalidate()
        return RevalidateResponse(revalidated=True, generation=generation)

    return app


app = create_app()
