"""
Read-only content types handed from the store to the core.

The resolver and the composition engine only ever see these, never ORM rows.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

STATUS_OK = 200
STATUS_NOT_FOUND = 404
STATUS_GONE = 410


@dataclass(frozen=True)
class Include:
    part_module: str | None = None
    data: Any = None


@dataclass(frozen=True)
class Region:
    name: str
    includes: tuple[Include, ...] = ()

    @property
    def has_parts(self) -> bool:
        return any(inc.part_module for inc in self.includes)


@dataclass(frozen=True)
class TemplateProperty:
    name: str
    value: str | None


@dataclass(frozen=True)
class Template:
    name: str
    src: str
    regions: tuple[str, ...] = ()
    properties: tuple[TemplateProperty, ...] = ()


@dataclass(frozen=True)
class ContentDocument:
    id: int
    url: str
    view: str
    name: str = ""
    status: int = STATUS_OK
    regions: tuple[Region, ...] = ()
    template: Template | None = None

    created_at: datetime | None = None
    updated_at: datetime | None = None
    created_by_user_id: int | None = None
    updated_by_user_id: int | None = None
    published_at: datetime | None = None

    @property
    def is_redirect(self) -> bool:
        return 300 <= self.status < 400


@dataclass(frozen=True)
class PartRecord:
    id: int
    module: str
    name: str


@dataclass(frozen=True)
class SessionMode:
    staging: bool = False
