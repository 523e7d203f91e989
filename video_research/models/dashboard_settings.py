from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from video_research.models.records import Platform

_SECRET_FIELDS: tuple[str, ...] = (
    "tiktok_api_token",
    "instagram_api_token",
    "youtube_api_token",
    "transcribe_token",
)


class DashboardSettings(BaseModel):
    """
    User-editable credentials and scraper choices.

    Serialized with camelCase aliases so the persisted blob keeps the
    dashboard's stored shape (`tiktokApiToken`, `sheetName`, ...).
    """

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    tiktok_api_token: str = ""
    instagram_api_token: str = ""
    youtube_api_token: str = ""

    tiktok_actor_id: str = ""
    instagram_actor_id: str = ""
    youtube_actor_id: str = ""

    transcribe_token: str = ""

    sheet_id: str = ""
    sheet_name: str = Field(default="Sheet1")

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any, info: ValidationInfo) -> str:
        if value is None:
            normalized = ""
        elif isinstance(value, str):
            normalized = value.strip()
        else:
            normalized = str(value)
        if not normalized and info.field_name == "sheet_name":
            return "Sheet1"
        return normalized

    def token_for(self, platform: Platform) -> str:
        return {
            Platform.TIKTOK: self.tiktok_api_token,
            Platform.INSTAGRAM: self.instagram_api_token,
            Platform.YOUTUBE: self.youtube_api_token,
        }[platform]

    def actor_id_for(self, platform: Platform) -> str:
        return {
            Platform.TIKTOK: self.tiktok_actor_id,
            Platform.INSTAGRAM: self.instagram_actor_id,
            Platform.YOUTUBE: self.youtube_actor_id,
        }[platform]

    def configured_platforms(self) -> tuple[Platform, ...]:
        return tuple(platform for platform in Platform if self.token_for(platform))

    def masked(self) -> dict[str, str]:
        payload = self.model_dump(by_alias=True)
        for field_name in _SECRET_FIELDS:
            alias = to_camel(field_name)
            payload[alias] = _mask_secret(payload[alias])
        return payload


def _mask_secret(value: str) -> str:
    if not value:
        return ""
    if len(value) <= 4:
        return "****"
    return f"****{value[-4:]}"
