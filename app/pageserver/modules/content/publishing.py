from __future__ import annotations

import logging

from flask import g, request

from app.pageserver import audit
from app.pageserver.db import db_session
from app.pageserver.errors import BadRequest, MethodNotAllowed
from app.pageserver.pipeline import current_server
from app.pageserver.utils import parse_id

logger = logging.getLogger(__name__)


async def handle():
    """
    POST ``{"pages": [<draft page id>, ...]}``: copy each draft page over its live counterpart.
    """
    if request.method != "POST":
        raise MethodNotAllowed("Publishing only accepts POST")

    body = request.get_json(silent=True) or {}
    raw_ids = body.get("pages") if isinstance(body, dict) else None
    if not isinstance(raw_ids, list) or not raw_ids:
        raise BadRequest("Expected a non-empty 'pages' list of draft page ids")
    page_ids = [parse_id(raw) for raw in raw_ids]
    if any(pid is None for pid in page_ids):
        raise BadRequest(f"Invalid page id in {raw_ids!r}")

    user = g.current_user
    logger.info("Publishing %d page(s) (request_id=%s)", len(page_ids), getattr(g, "request_id", None))
    server = current_server()
    urls = await server.store.publish(page_ids, actor_id=user.id)
    await server.refresh_page_urls()

    s = db_session()
    for page_id, url in zip(page_ids, urls):
        audit.page_event(s, "page.publish", page_id, url=url)
    s.commit()
    return {"published": urls}
