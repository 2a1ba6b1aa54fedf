from __future__ import annotations

import logging

from app.pageserver.constants import VIEW_DRAFT, VIEW_LIVE
from app.pageserver.errors import Gone, NotFound, RedirectUnresolved
from app.pageserver.modules.content.schema import (
    STATUS_GONE,
    STATUS_NOT_FOUND,
    ContentDocument,
    SessionMode,
)
from app.pageserver.modules.content.store import ContentStore

logger = logging.getLogger(__name__)


def view_for(mode: SessionMode) -> str:
    return VIEW_DRAFT if mode.staging else VIEW_LIVE


class PageResolver:
    """
    Finds the page for a URL in the session's content view and decides whether
    it may be composed.

    Store failures are not caught here; they surface as 500s.
    """

    def __init__(self, store: ContentStore) -> None:
        self._store = store

    async def resolve(self, url_path: str, mode: SessionMode) -> ContentDocument:
        view = view_for(mode)
        document = await self._store.find_page(url_path, view)
        if document is None:
            logger.debug("No %s page for %s", view, url_path)
            raise NotFound(f"No page found for {url_path}")

        if document.status == STATUS_NOT_FOUND:
            raise NotFound(f"No page found for {url_path}")
        if document.status == STATUS_GONE:
            raise Gone(f"{url_path} has been removed")
        if document.is_redirect:
            # TODO: resolve the redirect target once pages carry a redirect reference.
            logger.warning("Page %s has redirect status %s but no target", document.id, document.status)
            raise RedirectUnresolved()

        logger.debug("Resolved %s page %s for %s", view, document.id, url_path)
        return document
