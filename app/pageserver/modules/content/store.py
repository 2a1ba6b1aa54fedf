"""
SQLAlchemy-backed content store.

Every operation opens its own session and runs in a worker thread so callers
can await it from the request's event loop. Rows are converted to the frozen
types in ``schema`` before the session closes.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session, sessionmaker

from app.pageserver.constants import VIEW_DRAFT, VIEW_LIVE
from app.pageserver.db import session_scope
from app.pageserver.errors import BadRequest, NotFound
from app.pageserver.modules.content.models import Page, PageInclude, PageRegion, Part
from app.pageserver.modules.content.models import Template as TemplateRow
from app.pageserver.modules.content.schema import (
    ContentDocument,
    Include,
    PartRecord,
    Region,
    Template,
    TemplateProperty,
)

logger = logging.getLogger(__name__)


def load_include_data(raw: str | None) -> Any:
    if raw is None or raw == "":
        return None
    return json.loads(raw)


def dump_include_data(data: Any) -> str | None:
    if data is None:
        return None
    return json.dumps(data, sort_keys=True)


def to_template(row: TemplateRow | None) -> Template | None:
    if row is None:
        return None
    return Template(
        name=row.name,
        src=row.src,
        regions=tuple(r.name for r in row.regions),
        properties=tuple(TemplateProperty(name=p.name, value=p.value) for p in row.properties),
    )


def to_document(page: Page) -> ContentDocument:
    regions = tuple(
        Region(
            name=region.name,
            includes=tuple(
                Include(
                    part_module=inc.part.module if inc.part else None,
                    data=load_include_data(inc.data_json),
                )
                for inc in region.includes
            ),
        )
        for region in page.regions
    )
    return ContentDocument(
        id=page.id,
        url=page.url,
        view=page.view,
        name=page.name,
        status=page.status,
        regions=regions,
        template=to_template(page.template),
        created_at=page.created_at,
        updated_at=page.updated_at,
        created_by_user_id=page.created_by_user_id,
        updated_by_user_id=page.updated_by_user_id,
        published_at=page.published_at,
    )


def _get_include(page: Page, region_name: str, include_index: int) -> PageInclude:
    region = next((r for r in page.regions if r.name == region_name), None)
    if region is None:
        raise NotFound(f"Page {page.id} has no region {region_name!r}")
    if include_index < 0 or include_index >= len(region.includes):
        raise NotFound(f"Region {region_name!r} has no include {include_index}")
    return region.includes[include_index]


class ContentStore:
    def __init__(self, sm: sessionmaker[Session]) -> None:
        self._sm = sm

    async def find_page(self, url: str, view: str) -> ContentDocument | None:
        """Find one page by exact URL within a content view, template dereferenced."""
        return await asyncio.to_thread(self._find_page, url, view)

    async def get_page(self, page_id: int) -> ContentDocument | None:
        return await asyncio.to_thread(self._get_page, page_id)

    async def page_urls(self, view: str) -> list[str]:
        """Every page URL in a content view, sorted."""
        return await asyncio.to_thread(self._page_urls, view)

    async def find_parts(self) -> list[PartRecord]:
        return await asyncio.to_thread(self._find_parts)

    async def read_include_data(self, page_id: int, region_name: str, include_index: int) -> tuple[str | None, Any]:
        return await asyncio.to_thread(self._read_include_data, page_id, region_name, include_index)

    async def save_include_data(
        self, page_id: int, region_name: str, include_index: int, data: Any, *, actor_id: int | None
    ) -> None:
        await asyncio.to_thread(self._save_include_data, page_id, region_name, include_index, data, actor_id)

    async def publish(self, page_ids: list[int], *, actor_id: int | None) -> list[str]:
        return await asyncio.to_thread(self._publish, page_ids, actor_id)

    def _find_page(self, url: str, view: str) -> ContentDocument | None:
        with session_scope(self._sm) as s:
            page = s.query(Page).filter(Page.view == view, Page.url == url).one_or_none()
            return to_document(page) if page else None

    def _get_page(self, page_id: int) -> ContentDocument | None:
        with session_scope(self._sm) as s:
            page = s.get(Page, page_id)
            return to_document(page) if page else None

    def _page_urls(self, view: str) -> list[str]:
        with session_scope(self._sm) as s:
            rows = s.query(Page.url).filter(Page.view == view).order_by(Page.url.asc()).all()
            return [url for (url,) in rows]

    def _find_parts(self) -> list[PartRecord]:
        with session_scope(self._sm) as s:
            rows = s.query(Part).order_by(Part.id.asc()).all()
            return [PartRecord(id=p.id, module=p.module, name=p.name) for p in rows]

    def _read_include_data(self, page_id: int, region_name: str, include_index: int) -> tuple[str | None, Any]:
        with session_scope(self._sm) as s:
            page = s.get(Page, page_id)
            if page is None:
                raise NotFound(f"No page with id {page_id}")
            inc = _get_include(page, region_name, include_index)
            return (inc.part.module if inc.part else None, load_include_data(inc.data_json))

    def _save_include_data(
        self, page_id: int, region_name: str, include_index: int, data: Any, actor_id: int | None
    ) -> None:
        with session_scope(self._sm) as s:
            page = s.get(Page, page_id)
            if page is None:
                raise NotFound(f"No page with id {page_id}")
            if page.view != VIEW_DRAFT:
                raise BadRequest("Only draft pages can be edited; publish to update the live view.")
            inc = _get_include(page, region_name, include_index)
            inc.data_json = dump_include_data(data)
            page.updated_at = datetime.utcnow()
            page.updated_by_user_id = actor_id
            logger.info("Saved include data page=%s region=%s include=%s", page_id, region_name, include_index)

    def _publish(self, page_ids: list[int], actor_id: int | None) -> list[str]:
        published: list[str] = []
        with session_scope(self._sm) as s:
            for page_id in page_ids:
                draft = s.get(Page, page_id)
                if draft is None or draft.view != VIEW_DRAFT:
                    raise NotFound(f"No draft page with id {page_id}")

                live = s.query(Page).filter(Page.view == VIEW_LIVE, Page.url == draft.url).one_or_none()
                if live is None:
                    live = Page(view=VIEW_LIVE, url=draft.url, created_by_user_id=draft.created_by_user_id)
                    s.add(live)

                now = datetime.utcnow()
                live.name = draft.name
                live.status = draft.status
                live.template_id = draft.template_id
                live.updated_at = now
                live.updated_by_user_id = actor_id
                live.published_at = now
                # Old regions must be gone before the unique (page_id, name) rows are re-inserted.
                live.regions.clear()
                s.flush()
                live.regions.extend(
                    PageRegion(
                        position=region.position,
                        name=region.name,
                        includes=[
                            PageInclude(position=inc.position, part_id=inc.part_id, data_json=inc.data_json)
                            for inc in region.includes
                        ],
                    )
                    for region in draft.regions
                )
                draft.published_at = now
                published.append(draft.url)
                logger.info("Published draft page %s to live (%s)", page_id, draft.url)
        return published
