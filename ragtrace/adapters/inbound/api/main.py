"""FastAPI application for the RagTrace API."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .... import __version__
from ....config.logging import setup_logging
from ....config.settings import settings
from ....core.domain.exceptions import InputError, RagTraceError
from ...common.exception_handler import (
    format_exception_json,
    get_http_status_code,
    log_exception,
)
from .routers import ask, health, runs

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Configure logging on startup and report shutdown."""
    setup_logging(level=settings.log_level, json_format=settings.log_json)
    logger.info("RagTrace API starting up...")
    logger.info("API docs available at /docs")
    logger.info("Debug mode: %s", "ENABLED" if settings.debug else "DISABLED")
    yield
    logger.info("RagTrace API shutting down...")


app = FastAPI(
    title="RagTrace API",
    description=(
        "Retrieval-augmented question answering with a live, replayable "
        "trace of every pipeline step."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(ask.router)
app.include_router(runs.router)


# =============================================================================
# Global Exception Handlers
# =============================================================================


def _request_context(request: Request) -> dict[str, str]:
    return {"path": str(request.url.path), "method": request.method}


@app.exception_handler(RagTraceError)
async def ragtrace_error_handler(request: Request, exc: RagTraceError) -> JSONResponse:
    """Handle all RagTraceError exceptions with structured JSON response."""
    status_code = get_http_status_code(exc)
    log_exception(
        exc,
        level=logging.WARNING if status_code < 500 else logging.ERROR,
        extra_context=_request_context(request),
    )

    return JSONResponse(
        status_code=status_code,
        content=exc.to_dict(include_trace=settings.debug),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies and parameters as input errors."""
    error = InputError(
        "Invalid request",
        context={"errors": [err.get("msg", "") for err in exc.errors()]},
    )
    logger.warning("Rejected request to %s: %s", request.url.path, error.extra_context["errors"])
    return JSONResponse(status_code=400, content=error.to_dict())


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all unhandled exceptions with structured JSON response."""
    log_exception(exc, extra_context=_request_context(request))

    return JSONResponse(
        status_code=get_http_status_code(exc),
        content=format_exception_json(exc, include_trace=settings.debug),
    )


__all__ = ["app"]
