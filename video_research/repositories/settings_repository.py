from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, cast

from video_research.models.dashboard_settings import DashboardSettings
from video_research.services.errors import InvalidInputError

LOGGER = logging.getLogger("video_research.settings")

SETTINGS_STORAGE_KEY = "videoResearchSettings"


class SettingsRepository:
    """
    Key-value file store holding the dashboard settings blob.

    The blob is read once and cached; `set` is the only write path and
    persists immediately.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._cached: DashboardSettings | None = None

    @property
    def path(self) -> Path:
        return self._path

    def get(self) -> DashboardSettings:
        if self._cached is None:
            self._cached = self._load()
        return self._cached

    def set(self, partial: Mapping[str, Any]) -> DashboardSettings:
        merged = self.get().model_dump()
        field_names = _settings_field_names()
        for key, value in partial.items():
            field_name = field_names.get(key)
            if field_name is None:
                raise InvalidInputError(f"Unknown setting: {key}")
            if value is not None:
                merged[field_name] = value
        updates = DashboardSettings.model_validate(merged)
        storage = self._read_storage()
        storage[SETTINGS_STORAGE_KEY] = updates.model_dump_json(by_alias=True)
        self._write_storage(storage)
        self._cached = updates
        LOGGER.info(
            "settings saved path=%s configured_platforms=%s",
            self._path,
            ",".join(platform.value for platform in updates.configured_platforms()),
        )
        return updates

    def clear(self) -> None:
        if self._path.exists():
            self._path.unlink()
        self._cached = DashboardSettings()
        LOGGER.info("settings cleared path=%s", self._path)

    def _load(self) -> DashboardSettings:
        raw_blob = self._read_storage().get(SETTINGS_STORAGE_KEY)
        if not isinstance(raw_blob, str) or not raw_blob.strip():
            return DashboardSettings()
        try:
            return DashboardSettings.model_validate_json(raw_blob)
        except ValueError:
            LOGGER.warning("ignoring unreadable settings blob path=%s", self._path)
            return DashboardSettings()

    def _read_storage(self) -> dict[str, Any]:
        if not self._path.is_file():
            return {}
        try:
            parsed = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            LOGGER.warning("ignoring unreadable settings store path=%s", self._path)
            return {}
        if isinstance(parsed, dict):
            return cast(dict[str, Any], parsed)
        return {}

    def _write_storage(self, storage: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(storage, indent=2, sort_keys=True), encoding="utf-8")


def _settings_field_names() -> dict[str, str]:
    names: dict[str, str] = {}
    for field_name, field_info in DashboardSettings.model_fields.items():
        names[field_name] = field_name
        if field_info.alias:
            names[field_info.alias] = field_name
    return names
