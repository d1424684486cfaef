"""FastAPI application wiring for Antopolis."""

from __future__ import annotations

from collections.abc import Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from antopolis.api import routes
from antopolis.api.runtime import ApiState, build_state
from antopolis.config import get_settings
from antopolis.domain.errors import (
    NotFoundError,
    SchedulingInitError,
    TransientStoreError,
    ValidationError,
)


def create_app(*, state_factory: Callable[[], ApiState] = build_state) -> FastAPI:
    """Instantiate the FastAPI application with routing and lifecycle hooks."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        state = state_factory()
        app.state.api_state = state
        await state.startup()
        try:
            yield
        finally:
            await state.shutdown()

    app = FastAPI(title="Antopolis Battle API", version="0.3.0", lifespan=lifespan)
    settings = get_settings()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ValidationError)
    async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content=exc.to_dict())

    @app.exception_handler(NotFoundError)
    async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(TransientStoreError)
    async def _store_unavailable(request: Request, exc: TransientStoreError) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": "colony store unavailable"})

    @app.exception_handler(SchedulingInitError)
    async def _scheduler_unavailable(request: Request, exc: SchedulingInitError) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    app.include_router(routes.router)
    return app


app = create_app()
