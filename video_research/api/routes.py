from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, ConfigDict, Field
from structlog.contextvars import bind_contextvars, reset_contextvars

from video_research.config import AppSettings
from video_research.dependencies import (
    get_discovery_service,
    get_session_state,
    get_settings,
    get_settings_repository,
    get_transcription_service,
)
from video_research.repositories.settings_repository import SettingsRepository
from video_research.services.discovery_service import (
    DiscoveryFilters,
    DiscoveryOutcome,
    DiscoveryService,
)
from video_research.services.session_state import SessionState
from video_research.services.transcription_service import (
    TranscriptionBatch,
    TranscriptionService,
    parse_url_list,
)

router = APIRouter()

_CSV_MEDIA_TYPE = "text/csv"


def _default_urls() -> list[str]:
    return []


class SettingsUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    values: dict[str, str | None]


class DiscoveryRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    topic: str
    platform: str = "all"
    min_views: int = Field(default=0, ge=0)
    min_likes: int = Field(default=0, ge=0)
    date_from: str | None = None
    date_to: str | None = None
    max_results: int | None = Field(default=None, ge=1)


class DiscoveryResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    outcome: DiscoveryOutcome
    message: str
    total_found: int
    after_threshold_filter: int
    after_date_filter: int
    videos: list[dict[str, Any]]


class TranscriptionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    urls: list[str] = Field(default_factory=_default_urls)
    urls_text: str | None = None


class TranscriptionFromDiscoveryRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    indices: list[int]


class TranscriptionResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    success_count: int
    message: str
    results: list[dict[str, Any]]


def requested_urls(request: TranscriptionRequest) -> list[str]:
    """Resolved before the service dependency, so blank input beats a missing token."""
    urls = [url.strip() for url in request.urls if url.strip()]
    if request.urls_text:
        urls.extend(parse_url_list(request.urls_text))
    if not urls:
        raise HTTPException(status_code=400, detail="Please enter video URLs")
    return urls


def selected_discovery_urls(
    request: TranscriptionFromDiscoveryRequest,
    session: Annotated[SessionState, Depends(get_session_state)],
) -> list[str]:
    try:
        return session.select_urls(request.indices)
    except IndexError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

@router.get("/settings", tags=["settings"], operation_id="get_settings")
def read_settings(
    repository: Annotated[SettingsRepository, Depends(get_settings_repository)],
) -> dict[str, str]:
    return repository.get().masked()


@router.put("/settings", tags=["settings"], operation_id="save_settings")
def save_settings(
    request: SettingsUpdateRequest,
    repository: Annotated[SettingsRepository, Depends(get_settings_repository)],
) -> dict[str, str]:
    return repository.set(request.values).masked()


@router.delete("/settings", tags=["settings"], operation_id="clear_all_data")
def clear_all_data(
    repository: Annotated[SettingsRepository, Depends(get_settings_repository)],
    session: Annotated[SessionState, Depends(get_session_state)],
) -> dict[str, bool]:
    repository.clear()
    session.clear()
    return {"cleared": True}


@router.post(
    "/discovery",
    response_model=DiscoveryResponse,
    tags=["discovery"],
    operation_id="discover_videos",
)
async def discover_videos(
    request: DiscoveryRequest,
    app_settings: Annotated[AppSettings, Depends(get_settings)],
    service: Annotated[DiscoveryService, Depends(get_discovery_service)],
    session: Annotated[SessionState, Depends(get_session_state)],
) -> DiscoveryResponse:
    context_tokens = bind_contextvars(discovery_platform=request.platform)
    try:
        result = await service.discover(
            request.topic,
            request.platform,
            DiscoveryFilters(
                min_views=request.min_views,
                min_likes=request.min_likes,
                date_from=request.date_from or None,
                date_to=request.date_to or None,
            ),
            max_results=request.max_results or app_settings.discovery_default_max_results,
        )
    finally:
        reset_contextvars(**context_tokens)

    if result.outcome == "found":
        session.replace_discovery(result.videos)
    return DiscoveryResponse(
        outcome=result.outcome,
        message=result.status_message,
        total_found=result.total_found,
        after_threshold_filter=result.after_threshold_filter,
        after_date_filter=result.after_date_filter,
        videos=[video.as_export_row() for video in result.videos],
    )


@router.get("/discovery/results", tags=["discovery"], operation_id="list_discovery_results")
def list_discovery_results(
    session: Annotated[SessionState, Depends(get_session_state)],
) -> list[dict[str, Any]]:
    return [video.as_export_row() for video in session.discovery_results]


@router.get("/discovery/export.csv", tags=["discovery"], operation_id="export_discovery_csv")
def export_discovery_csv(
    session: Annotated[SessionState, Depends(get_session_state)],
) -> Response:
    return _csv_response(session.discovery_csv(), filename="discovery_results.csv")


@router.post(
    "/transcriptions",
    response_model=TranscriptionResponse,
    tags=["transcription"],
    operation_id="transcribe_urls",
)
async def transcribe_urls(
    urls: Annotated[list[str], Depends(requested_urls)],
    service: Annotated[TranscriptionService, Depends(get_transcription_service)],
    session: Annotated[SessionState, Depends(get_session_state)],
) -> TranscriptionResponse:
    return await _run_transcription(urls, service, session)


@router.post(
    "/transcriptions/from-discovery",
    response_model=TranscriptionResponse,
    tags=["transcription"],
    operation_id="transcribe_selected_discovery_results",
)
async def transcribe_selected_discovery_results(
    urls: Annotated[list[str], Depends(selected_discovery_urls)],
    service: Annotated[TranscriptionService, Depends(get_transcription_service)],
    session: Annotated[SessionState, Depends(get_session_state)],
) -> TranscriptionResponse:
    return await _run_transcription(urls, service, session)


@router.get(
    "/transcriptions/results",
    tags=["transcription"],
    operation_id="list_transcription_results",
)
def list_transcription_results(
    session: Annotated[SessionState, Depends(get_session_state)],
) -> list[dict[str, Any]]:
    return [result.as_export_row() for result in session.transcription_results]


@router.get(
    "/transcriptions/export.csv",
    tags=["transcription"],
    operation_id="export_transcriptions_csv",
)
def export_transcriptions_csv(
    session: Annotated[SessionState, Depends(get_session_state)],
) -> Response:
    return _csv_response(session.transcription_csv(), filename="transcription_results.csv")


async def _run_transcription(
    urls: list[str],
    service: TranscriptionService,
    session: SessionState,
) -> TranscriptionResponse:
    batch: TranscriptionBatch = await service.transcribe_all(urls)
    session.replace_transcriptions(batch.results)
    return TranscriptionResponse(
        success_count=batch.success_count,
        message=batch.status_message,
        results=[result.as_export_row() for result in batch.results],
    )


def _csv_response(content: str, *, filename: str) -> Response:
    return Response(
        content=content,
        media_type=_CSV_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
