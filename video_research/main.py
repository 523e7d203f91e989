from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from structlog.contextvars import bind_contextvars, reset_contextvars

from video_research.api.routes import router
from video_research.dependencies import get_settings, get_telemetry
from video_research.logging_config import configure_application_logging
from video_research.services.discovery_service import describe_discovery_error
from video_research.services.errors import (
    InvalidInputError,
    MissingCredentialError,
    VideoResearchError,
)

LOGGER = logging.getLogger("video_research.api")
REQUEST_ID_HEADER = "X-Request-ID"

CallNext = Callable[[Request], Awaitable[Response]]


def health_check() -> dict[str, str]:
    return {"status": "ok"}


@asynccontextmanager
async def app_lifespan(_: FastAPI) -> AsyncIterator[None]:
    configure_application_logging(get_settings())
    yield


def _request_id(request: Request) -> str:
    supplied = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
    return supplied or str(uuid4())


async def track_request(request: Request, call_next: CallNext) -> Response:
    """Bind request context for logs, echo the request id and emit `http.request.*`."""
    telemetry = get_telemetry()
    request_id = _request_id(request)
    fields = {"request_id": request_id, "method": request.method, "path": request.url.path}
    tokens = bind_contextvars(**{f"http_{key}": value for key, value in fields.items()})
    started = perf_counter()
    try:
        response = await call_next(request)
    except Exception as exc:
        telemetry.emit(
            "http.request.error",
            **fields,
            duration_ms=int((perf_counter() - started) * 1000),
            error_type=type(exc).__name__,
        )
        raise
    finally:
        reset_contextvars(**tokens)

    response.headers[REQUEST_ID_HEADER] = request_id
    telemetry.emit(
        "http.request.finish",
        **fields,
        duration_ms=int((perf_counter() - started) * 1000),
        status_code=response.status_code,
    )
    return response


async def reject_bad_input(_: Request, exc: Exception) -> Response:
    # Missing tokens and malformed form input are the caller's to fix.
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def report_provider_failure(_: Request, exc: Exception) -> Response:
    LOGGER.warning("provider failure error_type=%s error=%s", type(exc).__name__, exc)
    return JSONResponse(status_code=502, content={"detail": describe_discovery_error(exc)})


def create_app() -> FastAPI:
    app = FastAPI(title="Video Research API", version="0.1.0", lifespan=app_lifespan)
    app.middleware("http")(track_request)
    # Handlers resolve along the MRO; MissingCredentialError subclasses VideoResearchError.
    app.add_exception_handler(MissingCredentialError, reject_bad_input)
    app.add_exception_handler(InvalidInputError, reject_bad_input)
    app.add_exception_handler(VideoResearchError, report_provider_failure)
    app.include_router(router)
    app.add_api_route(
        "/health",
        health_check,
        methods=["GET"],
        tags=["system"],
        operation_id="health_check",
    )
    return app


app = create_app()
