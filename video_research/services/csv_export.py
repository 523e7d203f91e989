from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from video_research.services.errors import InvalidInputError


def render_csv(rows: Sequence[Mapping[str, Any]]) -> str:
    """
    Render rows as spreadsheet-importable CSV.

    The header comes from the first row's keys; every value is quoted with
    embedded quotes doubled. Rows keep their input order.
    """
    if not rows:
        raise InvalidInputError("No data to export")

    headers = list(rows[0].keys())
    lines = [",".join(headers)]
    for row in rows:
        lines.append(",".join(_quote(row.get(header)) for header in headers))
    return "\n".join(lines)


def export_csv(rows: Sequence[Mapping[str, Any]], path: Path) -> Path:
    content = render_csv(rows)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def _quote(value: Any) -> str:
    text = "" if value is None else str(value)
    escaped = text.replace('"', '""')
    return f'"{escaped}"'
