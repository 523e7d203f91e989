from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Literal

TranscriptionStatus = Literal["success", "error"]


class Platform(StrEnum):
    TIKTOK = "TikTok"
    INSTAGRAM = "Instagram"
    YOUTUBE = "YouTube"


@dataclass(frozen=True)
class VideoRecord:
    """
    Canonical, platform-independent video row.

    Numeric metrics are always non-negative integers; missing data is 0 so
    sorting and threshold filters stay total.
    """

    platform: Platform
    url: str = ""
    video_id: str = ""
    caption: str = ""
    creator: str = ""
    creator_username: str = ""
    likes: int = 0
    comments: int = 0
    shares: int = 0
    saves: int = 0
    views: int = 0
    created_at: str = ""
    hashtags: str = ""
    thumbnail: str = ""

    def as_export_row(self) -> dict[str, str | int]:
        return {
            "platform": self.platform.value,
            "url": self.url,
            "videoId": self.video_id,
            "caption": self.caption,
            "creator": self.creator,
            "creatorUsername": self.creator_username,
            "likes": self.likes,
            "comments": self.comments,
            "shares": self.shares,
            "saves": self.saves,
            "views": self.views,
            "createdAt": self.created_at,
            "hashtags": self.hashtags,
            "thumbnail": self.thumbnail,
        }


@dataclass(frozen=True)
class JobHandle:
    run_id: str
    dataset_id: str


@dataclass(frozen=True)
class TranscriptionResult:
    url: str
    status: TranscriptionStatus
    transcript: str = ""
    error: str | None = None

    def as_export_row(self) -> dict[str, str | None]:
        return {
            "url": self.url,
            "transcript": self.transcript,
            "status": self.status,
            "error": self.error,
        }
