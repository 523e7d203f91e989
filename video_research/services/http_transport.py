from __future__ import annotations

import json
from dataclasses import dataclass
from http.client import HTTPException
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

USER_AGENT = "video-research/0.1"


class TransportError(Exception):
    pass


@dataclass(frozen=True)
class HttpResponse:
    status_code: int
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        if not self.body.strip():
            return None
        try:
            return json.loads(self.body)
        except json.JSONDecodeError:
            return None


def request(
    method: str,
    url: str,
    *,
    headers: dict[str, str] | None = None,
    json_body: Any = None,
    timeout_seconds: float,
) -> HttpResponse:
    """
    Blocking HTTP call returning status and body for every HTTP outcome.

    Only connection-level failures raise, as `TransportError`; callers turn
    those into their own domain errors.
    """
    request_headers = {"accept": "application/json", "user-agent": USER_AGENT}
    request_headers.update(headers or {})
    data: bytes | None = None
    if json_body is not None:
        data = json.dumps(json_body).encode("utf-8")
        request_headers["content-type"] = "application/json"

    http_request = Request(url, data=data, headers=request_headers, method=method)
    try:
        with urlopen(http_request, timeout=timeout_seconds) as response:
            status_code = int(response.getcode() or 0)
            raw_body = response.read().decode("utf-8", errors="replace")
    except HTTPError as exc:
        status_code = int(exc.code)
        raw_body = _read_error_body(exc)
    except (URLError, HTTPException, OSError, ValueError) as exc:
        # HTTPException covers malformed responses: bad status line, truncated body.
        raise TransportError(f"{method} {url} failed: {exc}") from exc
    return HttpResponse(status_code=status_code, body=raw_body)


def _read_error_body(error: HTTPError) -> str:
    try:
        return error.read().decode("utf-8", errors="replace")
    except (HTTPException, OSError):
        return ""


def with_proxy(url: str, proxy_prefix: str | None) -> str:
    if not proxy_prefix:
        return url
    return f"{proxy_prefix}{quote(url, safe='')}"
