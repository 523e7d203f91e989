from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time
from typing import Literal

from video_research.models.dashboard_settings import DashboardSettings
from video_research.models.records import Platform, VideoRecord
from video_research.services.errors import (
    InvalidInputError,
    MissingCredentialError,
    ProviderNetworkError,
    ProviderRequestError,
)
from video_research.services.providers import ProviderFactory
from video_research.telemetry import TelemetryClient

LOGGER = logging.getLogger("video_research.discovery")

DiscoveryOutcome = Literal["found", "no_videos", "filtered_out"]

PLATFORM_SELECTIONS: dict[str, tuple[Platform, ...]] = {
    "all": (Platform.TIKTOK, Platform.INSTAGRAM, Platform.YOUTUBE),
    "both": (Platform.TIKTOK, Platform.INSTAGRAM),
    "tiktok": (Platform.TIKTOK,),
    "instagram": (Platform.INSTAGRAM,),
    "youtube": (Platform.YOUTUBE,),
}
DEFAULT_MAX_RESULTS = 50
EARLIEST_DATE = datetime(1900, 1, 1, tzinfo=UTC)
_EPOCH_MILLISECONDS_THRESHOLD = 100_000_000_000
_NUMERIC_TIMESTAMP_PATTERN = re.compile(r"^\d+(\.\d+)?$")


@dataclass(frozen=True)
class DiscoveryFilters:
    min_views: int = 0
    min_likes: int = 0
    date_from: str | None = None
    date_to: str | None = None

    @property
    def has_date_range(self) -> bool:
        return bool(self.date_from or self.date_to)


@dataclass(frozen=True)
class DiscoveryResult:
    videos: list[VideoRecord]
    total_found: int
    after_threshold_filter: int
    after_date_filter: int
    filters: DiscoveryFilters = field(default_factory=DiscoveryFilters)

    @property
    def outcome(self) -> DiscoveryOutcome:
        if self.total_found == 0:
            return "no_videos"
        if not self.videos:
            return "filtered_out"
        return "found"

    @property
    def status_message(self) -> str:
        if self.outcome == "no_videos":
            return "No videos available for this search via Apify."
        if self.outcome == "filtered_out":
            return (
                f"Found {self.total_found} videos but none passed your filters "
                f"(Min Views: {self.filters.min_views}, Min Likes: {self.filters.min_likes}). "
                "Try lowering Min Views / Min Likes or clearing the date range."
            )
        return f"Found {len(self.videos)} videos"


def resolve_platforms(selection: str) -> tuple[Platform, ...]:
    normalized = selection.strip().lower()
    platforms = PLATFORM_SELECTIONS.get(normalized)
    if platforms is None:
        allowed = ", ".join(PLATFORM_SELECTIONS)
        raise InvalidInputError(
            f"Unknown platform selection {selection!r}. Use one of: {allowed}."
        )
    return platforms


def parse_created_at(
    raw_value: str | int | float | None,
    *,
    end_of_day: bool = False,
) -> datetime | None:
    """
    Best-effort timestamp parsing for the formats scrapers emit.

    Numbers are epoch seconds (or milliseconds when very large), text is
    ISO-8601 or a plain date. Naive values are read as UTC. Date-only input
    maps to the start of the day, or its end when `end_of_day` is set.
    """
    if raw_value is None or isinstance(raw_value, bool):
        return None
    if isinstance(raw_value, (int, float)):
        return _from_epoch(float(raw_value))

    text = raw_value.strip()
    if not text:
        return None
    if _NUMERIC_TIMESTAMP_PATTERN.match(text):
        return _from_epoch(float(text))

    try:
        parsed_date = date.fromisoformat(text)
    except ValueError:
        parsed_date = None
    if parsed_date is not None:
        boundary = time.max if end_of_day else time.min
        return datetime.combine(parsed_date, boundary, tzinfo=UTC)

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def apply_filters(
    records: Sequence[VideoRecord],
    filters: DiscoveryFilters,
    *,
    now: datetime,
) -> DiscoveryResult:
    thresholded = [
        record
        for record in records
        if record.views >= filters.min_views and record.likes >= filters.min_likes
    ]

    dated = thresholded
    if filters.has_date_range:
        lower = parse_created_at(filters.date_from) if filters.date_from else None
        upper = parse_created_at(filters.date_to, end_of_day=True) if filters.date_to else None
        lower = lower or EARLIEST_DATE
        upper = upper or now
        dated = [record for record in thresholded if _within(record, lower, upper)]

    # sorted() is stable, so equal view counts keep provider order.
    ordered = sorted(dated, key=lambda record: record.views, reverse=True)
    return DiscoveryResult(
        videos=ordered,
        total_found=len(records),
        after_threshold_filter=len(thresholded),
        after_date_filter=len(dated),
        filters=filters,
    )


def describe_discovery_error(exc: Exception) -> str:
    prefix = "Failed to fetch videos from Apify. "
    if isinstance(exc, MissingCredentialError):
        return str(exc)
    if isinstance(exc, ProviderRequestError) and exc.status_code == 401:
        return prefix + "Check your Apify API token in Settings (invalid or expired)."
    if isinstance(exc, ProviderNetworkError):
        return prefix + "Network or proxy issue. Try again or check the logs."
    message = str(exc).strip()
    if message:
        return prefix + message
    return prefix.strip()


class DiscoveryService:
    def __init__(
        self,
        *,
        settings: DashboardSettings,
        provider_factory: ProviderFactory,
        telemetry: TelemetryClient | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._settings = settings
        self._provider_factory = provider_factory
        self._telemetry = telemetry or TelemetryClient.disabled()
        self._clock = clock or _utc_now

    def selected_platforms(self, platform_selection: str) -> tuple[Platform, ...]:
        platforms = resolve_platforms(platform_selection)
        for platform in platforms:
            if not self._settings.token_for(platform):
                raise MissingCredentialError(platform.value)
        return platforms

    async def discover(
        self,
        topic: str,
        platform_selection: str = "all",
        filters: DiscoveryFilters | None = None,
        max_results: int = DEFAULT_MAX_RESULTS,
    ) -> DiscoveryResult:
        normalized_topic = topic.strip()
        if not normalized_topic:
            raise InvalidInputError("Please enter a topic or hashtag")
        active_filters = filters or DiscoveryFilters()
        platforms = self.selected_platforms(platform_selection)
        limit = max_results if max_results > 0 else DEFAULT_MAX_RESULTS

        with self._telemetry.span(
            "discovery",
            platforms=[platform.value for platform in platforms],
            max_results=limit,
        ) as closing:
            LOGGER.info(
                "discovery start topic=%s platforms=%s max_results=%s",
                normalized_topic,
                ",".join(platform.value for platform in platforms),
                limit,
            )
            records = await self._search_all(platforms, normalized_topic, limit)
            result = apply_filters(records, active_filters, now=self._clock())
            closing.update(
                total_found=result.total_found,
                after_threshold_filter=result.after_threshold_filter,
                after_date_filter=result.after_date_filter,
                outcome=result.outcome,
            )

        LOGGER.info(
            "discovery finish topic=%s total=%s after_thresholds=%s after_dates=%s outcome=%s",
            normalized_topic,
            result.total_found,
            result.after_threshold_filter,
            result.after_date_filter,
            result.outcome,
        )
        return result

    async def _search_all(
        self,
        platforms: Sequence[Platform],
        topic: str,
        max_results: int,
    ) -> list[VideoRecord]:
        providers = [self._provider_factory(platform, self._settings) for platform in platforms]
        tasks = [
            asyncio.create_task(provider.search(topic, max_results)) for provider in providers
        ]
        try:
            batches = await asyncio.gather(*tasks)
        except Exception:
            for task in tasks:
                task.cancel()
            LOGGER.warning("discovery aborted topic=%s", topic, exc_info=True)
            raise

        merged: list[VideoRecord] = []
        for batch in batches:
            merged.extend(batch)
        return merged


def _within(record: VideoRecord, lower: datetime, upper: datetime) -> bool:
    created = parse_created_at(record.created_at)
    if created is None:
        return True
    return lower <= created <= upper


def _from_epoch(value: float) -> datetime | None:
    if value >= _EPOCH_MILLISECONDS_THRESHOLD:
        value /= 1000.0
    try:
        return datetime.fromtimestamp(value, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return None


def _utc_now() -> datetime:
    return datetime.now(UTC)
