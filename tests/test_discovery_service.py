from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import Any, cast

import pytest
from conftest import FakeRunClient

from video_research.models.dashboard_settings import DashboardSettings
from video_research.models.records import Platform, VideoRecord
from video_research.services.discovery_service import (
    DiscoveryFilters,
    DiscoveryService,
    apply_filters,
    describe_discovery_error,
    parse_created_at,
    resolve_platforms,
)
from video_research.services.errors import (
    MissingCredentialError,
    ProviderNetworkError,
    ProviderRequestError,
    ProviderRunError,
)
from video_research.services.job_poller import ApifyRunPoller
from video_research.services.providers import (
    InstagramProvider,
    ScraperProvider,
    TikTokProvider,
)

_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


class _StaticProvider:
    def __init__(
        self,
        records: list[VideoRecord],
        *,
        error: Exception | None = None,
        delay_seconds: float = 0.0,
    ) -> None:
        self.records = records
        self.error = error
        self.delay_seconds = delay_seconds
        self.calls: list[tuple[str, int]] = []
        self.cancelled = False

    async def search(self, topic: str, max_results: int) -> list[VideoRecord]:
        self.calls.append((topic, max_results))
        try:
            await asyncio.sleep(self.delay_seconds)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        if self.error is not None:
            raise self.error
        return self.records


class _Factory:
    def __init__(self, providers: dict[Platform, _StaticProvider]) -> None:
        self.providers = providers
        self.requested: list[Platform] = []

    def __call__(self, platform: Platform, settings: DashboardSettings) -> ScraperProvider:
        _ = settings
        self.requested.append(platform)
        return cast(ScraperProvider, self.providers[platform])


def _video(
    platform: Platform,
    video_id: str,
    *,
    views: int = 0,
    likes: int = 0,
    created_at: str = "",
) -> VideoRecord:
    return VideoRecord(
        platform=platform,
        url=f"https://example.test/{video_id}",
        video_id=video_id,
        views=views,
        likes=likes,
        created_at=created_at,
    )


def _service(settings: DashboardSettings, factory: _Factory) -> DiscoveryService:
    return DiscoveryService(settings=settings, provider_factory=factory, clock=lambda: _NOW)


def test_threshold_filter_counts_each_stage() -> None:
    records = [
        _video(Platform.TIKTOK, "a", views=500),
        _video(Platform.TIKTOK, "b", views=1000),
        _video(Platform.TIKTOK, "c", views=5000),
    ]

    result = apply_filters(records, DiscoveryFilters(min_views=1000), now=_NOW)

    assert [video.video_id for video in result.videos] == ["c", "b"]
    assert (result.total_found, result.after_threshold_filter, result.after_date_filter) == (
        3,
        2,
        2,
    )
    assert result.outcome == "found"
    assert result.status_message == "Found 2 videos"


def test_sort_is_descending_and_stable_for_ties() -> None:
    records = [
        _video(Platform.TIKTOK, "first-ten", views=10),
        _video(Platform.INSTAGRAM, "fifty", views=50),
        _video(Platform.YOUTUBE, "second-ten", views=10),
    ]

    result = apply_filters(records, DiscoveryFilters(), now=_NOW)

    assert [video.video_id for video in result.videos] == ["fifty", "first-ten", "second-ten"]


def test_date_filter_keeps_undated_and_unparseable_records() -> None:
    records = [
        _video(Platform.TIKTOK, "undated"),
        _video(Platform.TIKTOK, "garbled", created_at="last tuesday"),
        _video(Platform.TIKTOK, "old", created_at="2023-12-31T23:00:00Z"),
        _video(Platform.TIKTOK, "inside", created_at="2024-01-15T09:30:00Z"),
        _video(Platform.TIKTOK, "last-day", created_at="2024-01-31T22:00:00Z"),
        _video(Platform.TIKTOK, "after", created_at="2024-02-01T00:00:01Z"),
    ]

    result = apply_filters(
        records,
        DiscoveryFilters(date_from="2024-01-01", date_to="2024-01-31"),
        now=_NOW,
    )

    assert {video.video_id for video in result.videos} == {
        "undated",
        "garbled",
        "inside",
        "last-day",
    }
    assert result.after_threshold_filter == 6
    assert result.after_date_filter == 4


def test_open_ended_date_range_uses_now_as_upper_bound() -> None:
    records = [
        _video(Platform.YOUTUBE, "recent", created_at="2024-05-30T00:00:00Z"),
        _video(Platform.YOUTUBE, "future", created_at="2024-07-01T00:00:00Z"),
    ]

    result = apply_filters(records, DiscoveryFilters(date_from="2024-05-01"), now=_NOW)

    assert [video.video_id for video in result.videos] == ["recent"]


def test_filtered_out_outcome_describes_thresholds() -> None:
    result = apply_filters(
        [_video(Platform.TIKTOK, "a", views=10, likes=1)],
        DiscoveryFilters(min_views=1000, min_likes=50),
        now=_NOW,
    )

    assert result.outcome == "filtered_out"
    assert result.status_message.startswith("Found 1 videos but none passed your filters")
    assert "Min Views: 1000, Min Likes: 50" in result.status_message


def test_parse_created_at_formats() -> None:
    assert parse_created_at("2024-03-01T10:00:00.000Z") == datetime(2024, 3, 1, 10, tzinfo=UTC)
    assert parse_created_at("2024-03-01") == datetime(2024, 3, 1, tzinfo=UTC)
    assert parse_created_at("2024-03-01", end_of_day=True) == datetime(
        2024, 3, 1, 23, 59, 59, 999999, tzinfo=UTC
    )
    assert parse_created_at(1709287200) == datetime(2024, 3, 1, 10, tzinfo=UTC)
    assert parse_created_at("1709287200000") == datetime(2024, 3, 1, 10, tzinfo=UTC)
    assert parse_created_at("") is None
    assert parse_created_at("soon") is None
    assert parse_created_at(None) is None


def test_resolve_platforms_selections() -> None:
    assert resolve_platforms("all") == (Platform.TIKTOK, Platform.INSTAGRAM, Platform.YOUTUBE)
    assert resolve_platforms(" Both ") == (Platform.TIKTOK, Platform.INSTAGRAM)
    assert resolve_platforms("youtube") == (Platform.YOUTUBE,)
    with pytest.raises(ValueError, match="Unknown platform selection"):
        resolve_platforms("vimeo")


def test_discover_merges_providers_in_platform_order(
    full_dashboard_settings: DashboardSettings,
) -> None:
    factory = _Factory(
        {
            Platform.TIKTOK: _StaticProvider(
                [_video(Platform.TIKTOK, "tt", views=10)], delay_seconds=0.02
            ),
            Platform.INSTAGRAM: _StaticProvider([_video(Platform.INSTAGRAM, "ig", views=10)]),
            Platform.YOUTUBE: _StaticProvider([_video(Platform.YOUTUBE, "yt", views=10)]),
        }
    )

    service = _service(full_dashboard_settings, factory)

    result = asyncio.run(service.discover("  pasta ", "all", max_results=7))

    assert [video.video_id for video in result.videos] == ["tt", "ig", "yt"]
    assert factory.providers[Platform.TIKTOK].calls == [("pasta", 7)]


def test_missing_token_fails_before_any_provider_is_built() -> None:
    factory = _Factory({})
    settings = DashboardSettings(tiktok_api_token="tt-token")

    with pytest.raises(MissingCredentialError) as exc_info:
        asyncio.run(_service(settings, factory).discover("pasta", "both"))

    assert str(exc_info.value) == "Please add Instagram API token in Settings"
    assert factory.requested == []


def test_single_platform_only_needs_its_own_token() -> None:
    factory = _Factory({Platform.YOUTUBE: _StaticProvider([_video(Platform.YOUTUBE, "yt")])})
    settings = DashboardSettings(youtube_api_token="yt-token")

    result = asyncio.run(_service(settings, factory).discover("ramen", "youtube"))

    assert [video.video_id for video in result.videos] == ["yt"]
    assert factory.requested == [Platform.YOUTUBE]


def test_empty_topic_is_rejected(full_dashboard_settings: DashboardSettings) -> None:
    with pytest.raises(ValueError, match="Please enter a topic or hashtag"):
        asyncio.run(_service(full_dashboard_settings, _Factory({})).discover("   "))


def test_any_provider_failure_aborts_the_whole_search(
    full_dashboard_settings: DashboardSettings,
) -> None:
    slow = _StaticProvider([_video(Platform.TIKTOK, "tt")], delay_seconds=5.0)
    factory = _Factory(
        {
            Platform.TIKTOK: slow,
            Platform.INSTAGRAM: _StaticProvider([], error=ProviderRunError("FAILED")),
            Platform.YOUTUBE: _StaticProvider([_video(Platform.YOUTUBE, "yt")]),
        }
    )

    with pytest.raises(ProviderRunError, match="Apify run failed"):
        asyncio.run(_service(full_dashboard_settings, factory).discover("pasta"))

    assert slow.cancelled is True


def test_no_results_reports_no_videos(full_dashboard_settings: DashboardSettings) -> None:
    factory = _Factory({Platform.TIKTOK: _StaticProvider([])})

    result = asyncio.run(
        _service(full_dashboard_settings, factory).discover(
            "pasta", "tiktok", DiscoveryFilters(min_views=0)
        )
    )

    assert result.outcome == "no_videos"
    assert result.status_message == "No videos available for this search via Apify."
    assert result.videos == []


def test_describe_discovery_error_messages() -> None:
    unauthorized = ProviderRequestError("TikTok API failed: 401", status_code=401)

    assert describe_discovery_error(unauthorized) == (
        "Failed to fetch videos from Apify. Check your Apify API token in Settings "
        "(invalid or expired)."
    )
    assert describe_discovery_error(ProviderNetworkError("boom")).endswith(
        "Network or proxy issue. Try again or check the logs."
    )
    assert describe_discovery_error(ProviderRunError("ABORTED")) == (
        "Failed to fetch videos from Apify. Apify run aborted"
    )
    assert describe_discovery_error(MissingCredentialError("TikTok")) == (
        "Please add TikTok API token in Settings"
    )


class _TimelineRunClient(FakeRunClient):
    def __init__(self, name: str, timeline: list[str], items: list[dict[str, Any]]) -> None:
        super().__init__(items, statuses=["RUNNING", "RUNNING", "SUCCEEDED"])
        self.name = name
        self.timeline = timeline

    async def get_run(self, run_id: str) -> dict[str, Any]:
        self.timeline.append(self.name)
        return await super().get_run(run_id)


def test_provider_poll_loops_interleave(full_dashboard_settings: DashboardSettings) -> None:
    timeline: list[str] = []
    tiktok_client = _TimelineRunClient(
        "tiktok",
        timeline,
        [{"id": "tt1", "webVideoUrl": "https://www.tiktok.com/@chef/video/tt1", "playCount": 9}],
    )
    instagram_client = _TimelineRunClient(
        "instagram",
        timeline,
        [{"id": "ig1", "url": "https://instagram.com/p/ig1"}],
    )
    providers: dict[Platform, ScraperProvider] = {
        Platform.TIKTOK: TikTokProvider(
            client=tiktok_client,
            poller=ApifyRunPoller(tiktok_client, poll_interval_seconds=0.01, max_attempts=10),
        ),
        Platform.INSTAGRAM: InstagramProvider(
            client=instagram_client,
            poller=ApifyRunPoller(instagram_client, poll_interval_seconds=0.01, max_attempts=10),
        ),
    }

    def factory(platform: Platform, settings: DashboardSettings) -> ScraperProvider:
        _ = settings
        return providers[platform]

    service = DiscoveryService(
        settings=full_dashboard_settings,
        provider_factory=factory,
        clock=lambda: _NOW,
    )

    result = asyncio.run(service.discover("pasta", "both"))

    assert sorted(timeline) == ["instagram"] * 3 + ["tiktok"] * 3
    # Serial polling would finish every tiktok check before the first instagram one.
    assert timeline.index("instagram") < len(timeline) - 1 - timeline[::-1].index("tiktok")
    assert [video.platform for video in result.videos] == [Platform.TIKTOK, Platform.INSTAGRAM]
