"""FastAPI application factory for cub-scout.

Usage::

    from cubscout.api.app import create_app

    app = create_app(index_provider=lambda: current_index, config=config)

The factory is used by both the long-running service (``cubscout.app``)
and unit tests.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from cubscout.api.routes import metrics_router, router
from cubscout.api.schemas import ErrorResponse
from cubscout.models.config import CubScoutConfig
from cubscout.observability.logging import get_logger
from cubscout.snapshot.index import SnapshotIndex

_log = get_logger("api.app")

_API_PREFIX = "/api/v1"


def create_app(
    index_provider: Callable[[], SnapshotIndex | None],
    config: CubScoutConfig | None = None,
) -> FastAPI:
    """Create and configure the cub-scout FastAPI application.

    Args:
        index_provider: Returns the current snapshot index, or ``None`` while
                        the first collection is still running.
        config:         CubScoutConfig.  Supplies chain and scanner settings.

    Returns:
        Configured FastAPI application, ready to be served by uvicorn.
    """
    from cubscout import __version__

    app = FastAPI(
        title="cub-scout",
        summary="Kubernetes ownership, provenance and structural-integrity API",
        version=__version__,
        description=(
            "cub-scout answers who manages each cluster object, traces it back to "
            "its source of truth, and reports dangling references."
        ),
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
        openapi_url="/api/v1/openapi.json",
    )

    app.state.index_provider = index_provider
    app.state.config = config

    app.include_router(router, prefix=_API_PREFIX)
    app.include_router(metrics_router)

    # -----------------------------------------------------------------------
    # Error envelope
    # -----------------------------------------------------------------------

    @app.exception_handler(RequestValidationError)
    async def on_invalid_query(_request: Request, exc: RequestValidationError) -> JSONResponse:
        """Bad query or path parameters become a 400 envelope naming the parameter."""
        param, reason = _first_problem(exc)
        code = "INVALID_SEVERITY" if param == "severity" else "INVALID_QUERY"
        return _envelope(400, code, f"{param}: {reason}" if param else reason)

    @app.exception_handler(Exception)
    async def on_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        """Unexpected failures are logged; clients only see a generic 500."""
        _log.error("api_request_failed", method=request.method, path=request.url.path, error=str(exc))
        return _envelope(500, "INTERNAL_ERROR", "An unexpected error occurred.")

    return app


def _first_problem(exc: RequestValidationError) -> tuple[str, str]:
    """(parameter name, message) of the first validation error."""
    problems = exc.errors()
    if not problems:
        return "", "invalid request"
    location = problems[0].get("loc", ())
    return (str(location[-1]) if location else ""), str(problems[0].get("msg", ""))


def _envelope(status_code: int, error: str, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=error, detail=detail).model_dump())
