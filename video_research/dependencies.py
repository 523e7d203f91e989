from __future__ import annotations

from functools import lru_cache

from video_research.config import AppSettings, load_settings
from video_research.repositories.settings_repository import SettingsRepository
from video_research.services.captions import CaptionFetcher
from video_research.services.discovery_service import DiscoveryService
from video_research.services.providers import ApifyProviderFactory
from video_research.services.session_state import SessionState
from video_research.services.transcription_service import (
    GetTranscribeClient,
    TranscriptionService,
)
from video_research.telemetry import TelemetryClient, build_telemetry_client


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return load_settings()


@lru_cache(maxsize=1)
def get_settings_repository() -> SettingsRepository:
    return SettingsRepository(get_settings().settings_path)


@lru_cache(maxsize=1)
def get_session_state() -> SessionState:
    return SessionState()


@lru_cache(maxsize=1)
def get_telemetry() -> TelemetryClient:
    settings = get_settings()
    return build_telemetry_client(
        enabled=settings.telemetry_enabled,
        sink=settings.telemetry_sink,
    )


@lru_cache(maxsize=1)
def get_provider_factory() -> ApifyProviderFactory:
    settings = get_settings()
    return ApifyProviderFactory(
        base_url=settings.apify_base_url,
        timeout_seconds=settings.http_timeout_seconds,
        proxy_prefix=settings.apify_proxy_prefix,
        poll_interval_seconds=settings.apify_poll_interval_seconds,
        poll_max_attempts=settings.apify_poll_max_attempts,
    )


def get_discovery_service() -> DiscoveryService:
    # Built per call so a settings save is picked up by the next search.
    return DiscoveryService(
        settings=get_settings_repository().get(),
        provider_factory=get_provider_factory(),
        telemetry=get_telemetry(),
    )


def get_transcription_service() -> TranscriptionService:
    settings = get_settings()
    dashboard_settings = get_settings_repository().get()
    return TranscriptionService(
        transcriber=GetTranscribeClient(
            api_key=dashboard_settings.transcribe_token,
            base_url=settings.transcribe_base_url,
            timeout_seconds=settings.transcribe_http_timeout_seconds,
        ),
        caption_source=CaptionFetcher(
            base_url=settings.captions_base_url,
            language=settings.captions_language,
            timeout_seconds=settings.http_timeout_seconds,
            proxy_prefix=settings.captions_proxy_prefix,
        ),
        telemetry=get_telemetry(),
    )


def reset_cached_dependencies() -> None:
    get_provider_factory.cache_clear()
    get_telemetry.cache_clear()
    get_session_state.cache_clear()
    get_settings_repository.cache_clear()
    get_settings.cache_clear()
