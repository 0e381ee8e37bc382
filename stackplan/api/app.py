"""FastAPI application factory for stackplan.

Usage::

    from stackplan.api.app import create_app

    app = create_app(config=config)

The factory is used by the ``serve`` CLI command and by tests.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from stackplan.api.routes import router
from stackplan.api.schemas import ErrorResponse
from stackplan.errors import CyclicDependencyError, PlanningError

_log = structlog.get_logger(component="api.app")

_API_PREFIX = "/api/v1"


def create_app(config: Any = None) -> FastAPI:
    """Create and configure the stackplan FastAPI application.

    Args:
        config: StackPlanConfig.  Stored on ``app.state`` for handlers.

    Returns:
        Configured FastAPI application, ready to be served by uvicorn.
    """
    from stackplan import __version__

    app = FastAPI(
        title="stackplan",
        summary="Infrastructure topology planning API",
        version=__version__,
        description=(
            "Compiles declarative resource topologies into ordered, "
            "dependency-resolved provisioning plans."
        ),
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
        openapi_url="/api/v1/openapi.json",
    )
    app.state.config = config

    app.include_router(router, prefix=_API_PREFIX)

    # -----------------------------------------------------------------------
    # Exception handlers
    # -----------------------------------------------------------------------

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        _request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        """Map Pydantic validation errors to our error envelope."""
        errors = exc.errors()
        detail = "Invalid request body"
        if errors:
            locs = errors[0].get("loc", ())
            where = ".".join(str(part) for part in locs)
            detail = f"{where}: {errors[0].get('msg', '')}"
        return JSONResponse(
            status_code=422,
            content=ErrorResponse(error="INVALID_REQUEST", detail=detail).model_dump(exclude_none=True),
        )

    @app.exception_handler(PlanningError)
    async def planning_exception_handler(
        request: Request,
        exc: PlanningError,
    ) -> JSONResponse:
        """Planning errors are the caller's topology at fault: 400."""
        _log.info("plan_request_rejected", path=str(request.url.path), error_code=exc.code, error=str(exc))
        cycle = exc.cycle if isinstance(exc, CyclicDependencyError) else None
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error=exc.code, detail=str(exc), cycle=cycle).model_dump(exclude_none=True),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Catch-all for unhandled exceptions; never expose stack traces."""
        _log.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
        )
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="INTERNAL_ERROR",
                detail="An unexpected error occurred.",
            ).model_dump(exclude_none=True),
        )

    return app
