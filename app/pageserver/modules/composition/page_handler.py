from __future__ import annotations

import logging

from flask import g, request, session

from app.pageserver.constants import ROLE_ADMIN
from app.pageserver.modules.composition.flags import apply_mode_toggles
from app.pageserver.pipeline import current_server

logger = logging.getLogger(__name__)


async def handle():
    """Resolve, compose and render the content page at the request path."""
    server = current_server()
    rid = getattr(g, "request_id", None)
    logger.info("Processing page request for %s (request_id=%s)", request.path, rid)

    flags = apply_mode_toggles(session, request.args, is_admin=getattr(g, "acl_role", None) == ROLE_ADMIN)

    document = await server.resolver.resolve(request.path, flags.mode)
    logger.info("Page found for %s: %s (%s)", request.path, document.id, document.view)

    payload = await server.composer.compose(document, flags)
    html = await server.renderer.render(payload)
    logger.info("Sending page for %s (request_id=%s)", request.path, rid)
    return html
