"""
Built-in HTML part: an include's data is ``{"html": "<p>...</p>"}``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

static_dir = Path(__file__).resolve().parent / "static"

_DISPLAY_VIEW = '<div class="html-part">{{ region.content.html | safe }}</div>'

_EDIT_VIEW = (
    '<div class="html-part html-part--edit" data-page-id="{{ region.pageId }}" '
    'data-region="{{ region.region }}" data-include="0">'
    "{{ region.content.html | safe }}"
    "</div>"
    '<link rel="stylesheet" href="/_parts/static/app.pageserver.modules.parts.builtin.html/html-part.css">'
)


def init() -> None:
    pass


def read(data: Any) -> dict:
    if not isinstance(data, dict):
        return {"html": ""}
    return {"html": str(data.get("html") or "")}


def get_view(edit_mode: bool) -> str:
    return _EDIT_VIEW if edit_mode else _DISPLAY_VIEW
