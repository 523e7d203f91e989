from __future__ import annotations

import json
from typing import Any, cast

NO_AUDIO_MESSAGE = (
    "No audio in this media. Use a video with speech (e.g. Reels), "
    "not image posts or silent clips."
)
DOWNLOAD_FAILED_MESSAGE = (
    "GetTranscribe couldn't download this video's audio (common with some YouTube videos). "
    "Try TikTok or Instagram Reels URLs, or a different public YouTube video."
)
GENERIC_FAILURE_MESSAGE = "Transcription failed."
MAX_MESSAGE_LENGTH = 120

_NO_AUDIO_MARKERS: tuple[str, ...] = ("no_audio", "without audio", "media without audio")
_DOWNLOAD_MARKERS: tuple[str, ...] = ("Failed to download", "all methods failed", "YouTube audio")
_PROVIDER_PREFIX = "GetTranscribe error:"


def classify_transcription_error(message: str | None) -> str:
    """Turn a raw transcription failure into a short message for the user."""
    if not message:
        return GENERIC_FAILURE_MESSAGE
    if any(marker in message for marker in _NO_AUDIO_MARKERS):
        return NO_AUDIO_MESSAGE
    if any(marker in message for marker in _DOWNLOAD_MARKERS):
        return DOWNLOAD_FAILED_MESSAGE

    body = message.strip()
    if body.startswith(_PROVIDER_PREFIX):
        body = body[len(_PROVIDER_PREFIX) :].strip()
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, ValueError):
        return _truncate(message)
    return _human_field(payload) or message


def _human_field(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return None
    data = cast(dict[str, Any], payload)
    nested = data.get("data")
    candidates = [data.get("userMessage"), data.get("message")]
    if isinstance(nested, dict):
        candidates.append(cast(dict[str, Any], nested).get("userMessage"))
    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return None


def _truncate(message: str) -> str:
    if len(message) <= MAX_MESSAGE_LENGTH:
        return message
    return f"{message[:MAX_MESSAGE_LENGTH]}…"
