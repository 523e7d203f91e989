from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, ClassVar, Protocol, cast

from video_research.models.dashboard_settings import DashboardSettings
from video_research.models.records import JobHandle, Platform, VideoRecord
from video_research.services.apify_client import DEFAULT_APIFY_BASE_URL, ApifyClient
from video_research.services.job_poller import (
    DEFAULT_MAX_POLL_ATTEMPTS,
    DEFAULT_POLL_INTERVAL_SECONDS,
    ApifyRunPoller,
)
from video_research.services.metrics import extract_metric, to_number

LOGGER = logging.getLogger("video_research.providers")

DEFAULT_ACTOR_IDS: dict[Platform, str] = {
    Platform.TIKTOK: "thescrapelab/tiktok-scraper-2-0",
    Platform.INSTAGRAM: "apify/instagram-hashtag-scraper",
    Platform.YOUTUBE: "streamers/youtube-scraper",
}
# Retired actors that now return 404, mapped to their maintained replacements.
LEGACY_ACTOR_IDS: dict[str, str] = {
    "clockworks/free-tiktok-scraper": "thescrapelab/tiktok-scraper-2-0",
    "apify/instagram-scraper": "apify/instagram-hashtag-scraper",
}
TIKTOK_MAX_VIDEOS_PER_KEYWORD = 100

COMMENT_ALIASES: tuple[str, ...] = (
    "commentCount",
    "comments",
    "comment_count",
    "stats.commentCount",
    "stats.comment_count",
    "stats.comments",
    "statistics.commentCount",
    "statistics.comment_count",
    "engagement.commentCount",
    "engagement.comments",
    "commentsCount",
    "totalCommentCount",
    "numComments",
)


@dataclass(frozen=True)
class FieldAliases:
    """
    Ordered source paths per canonical field.

    Text fields take the first non-empty value, numeric fields the first
    value that is present at all (an explicit 0 wins over later aliases).
    """

    text: Mapping[str, tuple[str, ...]]
    numeric: Mapping[str, tuple[str, ...]]
    hashtags: tuple[str, ...]


class RunClient(Protocol):
    async def start_run(self, actor_id: str, run_input: dict[str, Any]) -> JobHandle:
        ...

    async def fetch_dataset_items(self, dataset_id: str) -> list[dict[str, Any]]:
        ...


class RunWaiter(Protocol):
    async def await_completion(self, run_id: str) -> dict[str, Any]:
        ...


def resolve_actor_id(platform: Platform, configured: str | None) -> str:
    actor_id = (configured or "").strip() or DEFAULT_ACTOR_IDS[platform]
    return LEGACY_ACTOR_IDS.get(actor_id, actor_id)


class ScraperProvider:
    platform: ClassVar[Platform]
    aliases: ClassVar[FieldAliases]

    def __init__(
        self,
        *,
        client: RunClient,
        poller: RunWaiter,
        actor_id: str | None = None,
    ) -> None:
        self._client = client
        self._poller = poller
        self._actor_id = resolve_actor_id(self.platform, actor_id)

    @property
    def actor_id(self) -> str:
        return self._actor_id

    def build_run_input(self, topic: str, max_results: int) -> dict[str, Any]:
        raise NotImplementedError

    async def search(self, topic: str, max_results: int) -> list[VideoRecord]:
        run_input = self.build_run_input(topic, max_results)
        LOGGER.info(
            "scraper search start platform=%s actor_id=%s input=%s",
            self.platform.value,
            self._actor_id,
            run_input,
        )
        handle = await self._client.start_run(self._actor_id, run_input)
        await self._poller.await_completion(handle.run_id)
        items = await self._client.fetch_dataset_items(handle.dataset_id)
        LOGGER.info(
            "scraper search finish platform=%s run_id=%s items=%s",
            self.platform.value,
            handle.run_id,
            len(items),
        )
        return [self.map_item(item) for item in items]

    def map_item(self, item: Mapping[str, Any]) -> VideoRecord:
        text_values = {
            field_name: _first_text(item, paths) for field_name, paths in self.aliases.text.items()
        }
        numeric_values = {
            field_name: to_number(_first_present(item, paths))
            for field_name, paths in self.aliases.numeric.items()
        }
        if not text_values.get("url"):
            text_values["url"] = self.fallback_url(item)

        return VideoRecord(
            platform=self.platform,
            comments=extract_metric(item, (_lookup(item, path) for path in COMMENT_ALIASES)),
            hashtags=_join_hashtags(_first_present(item, self.aliases.hashtags)),
            **text_values,
            **numeric_values,
        )

    def fallback_url(self, item: Mapping[str, Any]) -> str:
        _ = item
        return ""


class TikTokProvider(ScraperProvider):
    platform = Platform.TIKTOK
    aliases = FieldAliases(
        text={
            "url": ("webVideoUrl", "videoUrl", "url", "link"),
            "video_id": ("id", "videoId"),
            "caption": ("text", "desc", "caption"),
            "creator": ("authorMeta.name", "author.nickname", "author.uniqueId", "owner.nickname"),
            "creator_username": ("authorMeta.nickName", "author.uniqueId", "owner.uniqueId"),
            "created_at": ("createTime", "createTimeISO", "timestamp", "createdAt"),
            "thumbnail": ("covers.default", "video.cover", "thumbnail", "coverUrl"),
        },
        numeric={
            "likes": ("diggCount", "likes", "stats.diggCount"),
            "shares": ("shareCount", "shares", "stats.shareCount"),
            "saves": ("collectCount", "saves", "stats.collectCount"),
            "views": ("playCount", "views", "stats.playCount"),
        },
        hashtags=("hashtags",),
    )

    def build_run_input(self, topic: str, max_results: int) -> dict[str, Any]:
        return {
            "workflow": "keywords",
            "keywords": [topic],
            "maxVideosPerKeyword": min(max_results, TIKTOK_MAX_VIDEOS_PER_KEYWORD),
        }


class InstagramProvider(ScraperProvider):
    platform = Platform.INSTAGRAM
    aliases = FieldAliases(
        text={
            "url": ("url", "permalink"),
            "video_id": ("id", "shortCode", "code"),
            "caption": ("caption", "title"),
            "creator": ("ownerFullName", "ownerUsername", "owner.full_name"),
            "creator_username": ("ownerUsername", "owner.username"),
            "created_at": ("timestamp", "takenAtTimestamp", "createdAt"),
            "thumbnail": ("displayUrl", "thumbnailUrl", "imageUrl"),
        },
        numeric={
            "likes": ("likesCount", "likes", "like_count"),
            "views": ("videoViewCount", "videoViews", "viewCount", "playCount", "views"),
        },
        hashtags=("hashtags",),
    )

    def build_run_input(self, topic: str, max_results: int) -> dict[str, Any]:
        return {"hashtags": [hashtag_from_topic(topic)], "resultsLimit": max_results}

    def fallback_url(self, item: Mapping[str, Any]) -> str:
        short_code = _as_text(item.get("shortCode"))
        if short_code:
            return f"https://instagram.com/p/{short_code}"
        return ""


class YouTubeProvider(ScraperProvider):
    platform = Platform.YOUTUBE
    aliases = FieldAliases(
        text={
            "url": ("url",),
            "video_id": ("id", "videoId"),
            "caption": ("title", "snippet.title"),
            "creator": ("channelName", "snippet.channelTitle"),
            "creator_username": ("channelHandle", "channelId"),
            "created_at": ("publishedAt", "snippet.publishedAt", "uploadDate"),
            "thumbnail": ("thumbnail", "thumbnails.high.url"),
        },
        numeric={
            "likes": (
                "likes",
                "likeCount",
                "like_count",
                "statistics.likeCount",
                "statistics.like_count",
                "stats.likeCount",
                "stats.like_count",
            ),
            "views": (
                "views",
                "viewCount",
                "view_count",
                "statistics.viewCount",
                "statistics.view_count",
                "stats.viewCount",
                "stats.view_count",
            ),
        },
        hashtags=("tags",),
    )

    def build_run_input(self, topic: str, max_results: int) -> dict[str, Any]:
        return {"searchKeywords": topic, "maxResults": max_results, "uploadDate": "all"}

    def fallback_url(self, item: Mapping[str, Any]) -> str:
        video_id = _as_text(item.get("id"))
        if video_id:
            return f"https://youtube.com/watch?v={video_id}"
        return ""


PROVIDER_CLASSES: dict[Platform, type[ScraperProvider]] = {
    Platform.TIKTOK: TikTokProvider,
    Platform.INSTAGRAM: InstagramProvider,
    Platform.YOUTUBE: YouTubeProvider,
}


class ProviderFactory(Protocol):
    def __call__(self, platform: Platform, settings: DashboardSettings) -> ScraperProvider:
        ...


@dataclass(frozen=True)
class ApifyProviderFactory:
    base_url: str = DEFAULT_APIFY_BASE_URL
    timeout_seconds: float = 30.0
    proxy_prefix: str | None = None
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    poll_max_attempts: int = DEFAULT_MAX_POLL_ATTEMPTS

    def __call__(self, platform: Platform, settings: DashboardSettings) -> ScraperProvider:
        client = ApifyClient(
            token=settings.token_for(platform),
            label=platform.value,
            base_url=self.base_url,
            timeout_seconds=self.timeout_seconds,
            proxy_prefix=self.proxy_prefix,
        )
        poller = ApifyRunPoller(
            client,
            poll_interval_seconds=self.poll_interval_seconds,
            max_attempts=self.poll_max_attempts,
        )
        return PROVIDER_CLASSES[platform](
            client=client,
            poller=poller,
            actor_id=settings.actor_id_for(platform),
        )


def hashtag_from_topic(topic: str) -> str:
    tokens = topic.replace("#", "").split()
    if tokens:
        return tokens[0]
    return topic


def _lookup(item: Mapping[str, Any], path: str) -> Any:
    current: Any = item
    for part in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = cast(Mapping[str, Any], current).get(part)
        if current is None:
            return None
    return current


def _first_present(item: Mapping[str, Any], paths: tuple[str, ...]) -> Any:
    for path in paths:
        value = _lookup(item, path)
        if value is not None:
            return value
    return None


def _first_text(item: Mapping[str, Any], paths: tuple[str, ...]) -> str:
    for path in paths:
        text = _as_text(_lookup(item, path))
        if text:
            return text
    return ""


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return ""
    if isinstance(value, int):
        return str(value) if value else ""
    if isinstance(value, float):
        if not value:
            return ""
        return str(int(value)) if value.is_integer() else str(value)
    return ""


def _join_hashtags(raw_value: Any) -> str:
    if isinstance(raw_value, list):
        names: list[str] = []
        for entry in cast(list[Any], raw_value):
            if isinstance(entry, Mapping):
                entry_map = cast(Mapping[str, Any], entry)
                name = _as_text(entry_map.get("name")) or _as_text(entry_map.get("title"))
            else:
                name = _as_text(entry)
            if name:
                names.append(name)
        return ", ".join(names)
    return _as_text(raw_value)
