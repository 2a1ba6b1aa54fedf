"""
Composition: turns a resolved page into the data map handed to the renderer.

All part reads for a page are started together and gathered back in
region/include order, so slot ``i`` always holds include ``i``'s content no
matter which read finishes first. Any failed read fails the whole page.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from app.pageserver.constants import ADMIN_OVERLAY_PARTIAL, DEFAULT_TEMPLATE_SRC, RESERVED_DATA_KEYS
from app.pageserver.modules.composition.flags import SessionFlags
from app.pageserver.modules.content.schema import ContentDocument, Include
from app.pageserver.modules.parts.contract import PartHandle
from app.pageserver.modules.parts.registry import PartRegistry
from app.pageserver.utils import KeyedOnce

logger = logging.getLogger(__name__)


@dataclass
class RenderPayload:
    template_src: str
    data: dict[str, Any]
    partials: dict[str, str] = field(default_factory=dict)

    def register_partial(self, name: str, source: str) -> None:
        self.partials[name] = source


class AdminOverlay:
    """The admin bar fragment, read from disk once per process."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._source: KeyedOnce[str] = KeyedOnce()

    async def source(self) -> str:
        return await self._source.get(str(self.path), lambda: self.path.read_text(encoding="utf-8"))


async def _no_content() -> tuple[None, None]:
    return None, None


class CompositionEngine:
    def __init__(
        self,
        registry: PartRegistry,
        overlay: AdminOverlay,
        *,
        default_template_src: str = DEFAULT_TEMPLATE_SRC,
    ) -> None:
        self._registry = registry
        self._overlay = overlay
        self._default_template_src = default_template_src

    async def _fetch(self, include: Include) -> tuple[PartHandle, Any]:
        handle = await self._registry.resolve(include.part_module)
        return handle, await handle.read(include.data)

    async def compose(self, document: ContentDocument, flags: SessionFlags) -> RenderPayload:
        edit = flags.effective_edit

        fetches = []
        for region in document.regions:
            for include in region.includes:
                fetches.append(self._fetch(include) if include.part_module else _no_content())
        if flags.admin:
            fetches.append(self._overlay.source())

        results = await asyncio.gather(*fetches)
        overlay_source = results.pop() if flags.admin else None

        template = document.template
        template_src = template.src if template and template.src else self._default_template_src
        payload = RenderPayload(template_src=template_src, data={})
        data = payload.data

        if template:
            for prop in template.properties:
                data[prop.name] = prop.value

        data.update(
            {
                "edit": edit,
                "preview": not edit,
                "staging": flags.staging,
                "live": not flags.staging,
                "admin": flags.admin,
                "page": {"id": document.id, "url": document.url, "name": document.name, "view": document.view},
            }
        )

        regions: list[dict[str, Any]] = []
        slot = 0
        for region in document.regions:
            region_results = results[slot : slot + len(region.includes)]
            slot += len(region.includes)
            if not region.has_parts:
                continue

            first_handle, first_content = next((h, c) for h, c in region_results if h is not None)
            entry = {
                "content": first_content if first_content is not None else {},
                "includes": [content for _, content in region_results],
                "edit": edit,
                "region": region.name,
                "pageId": document.id,
            }
            if region.name in RESERVED_DATA_KEYS:
                logger.warning("Page %s region %r collides with a reserved template key; only listed in regions", document.id, region.name)
            else:
                data[region.name] = entry
            regions.append(entry)
            payload.register_partial(region.name, first_handle.get_view(edit))
        data["regions"] = regions

        if overlay_source is not None:
            payload.register_partial(ADMIN_OVERLAY_PARTIAL, overlay_source)

        logger.debug("Composed page %s with %d part region(s)", document.id, len(regions))
        return payload
