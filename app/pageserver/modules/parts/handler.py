"""
Part endpoints.

- ``GET /_parts/static/<module>/<path>`` serves a part's static assets
- ``GET|PUT /_parts/data?pageId=&region=&include=`` reads/replaces an include's data (draft pages)
"""

from __future__ import annotations

import logging
import re

from flask import g, jsonify, request

from app.pageserver import audit
from app.pageserver.db import db_session
from app.pageserver.errors import BadRequest, MethodNotAllowed, NotFound, PartLoadError
from app.pageserver.pipeline import PageServer, current_server
from app.pageserver.utils import parse_id, typeify

logger = logging.getLogger(__name__)

PARTS_URL = re.compile(r"^/_parts/(static|data)(?:/([^/]+)/(.+))?/?$")


async def handle():
    server = current_server()
    m = PARTS_URL.match(request.path)
    if not m:
        raise NotFound(f"Unrecognized part url {request.path}")
    kind, module_id, static_path = m.groups()

    if kind == "data" and module_id is None and request.method in ("GET", "PUT"):
        logger.info("New part data request (request_id=%s)", getattr(g, "request_id", None))
        return await _data(server)
    if kind == "static" and module_id and request.method == "GET":
        return await _static(server, module_id, static_path)
    raise MethodNotAllowed(f"{request.method} is not supported for {request.path}")


async def _static(server: PageServer, module_id: str, static_path: str):
    try:
        static_server = await server.registry.static_server(module_id)
    except PartLoadError as e:
        logger.warning("Cannot resolve part module for static request %s: %s", module_id, e)
        raise NotFound(f"Cannot resolve part module {module_id}") from e
    return static_server.serve(static_path)


def _data_address() -> tuple[int, str, int]:
    page_id = parse_id(request.args.get("pageId"))
    region = (request.args.get("region") or "").strip()
    include_index = typeify(request.args.get("include", "0"))
    if page_id is None or not region or isinstance(include_index, bool) or not isinstance(include_index, int):
        raise BadRequest("pageId, region and include must be valid identifiers")
    if include_index < 0:
        raise BadRequest("include must not be negative")
    return page_id, region, include_index


async def _data(server: PageServer):
    page_id, region, include_index = _data_address()
    module_id, data = await server.store.read_include_data(page_id, region, include_index)

    if request.method == "GET":
        logger.info("Data request OK")
        return jsonify(data)

    body = request.get_json(silent=True)
    if body is None:
        raise BadRequest("Expected a JSON body")
    if not module_id:
        raise BadRequest(f"Include {include_index} of region {region!r} has no part")

    user = g.current_user
    await server.store.save_include_data(page_id, region, include_index, body, actor_id=user.id)

    s = db_session()
    audit.page_event(s, "part.data.update", page_id, region=region, include=include_index, part=module_id)
    s.commit()
    logger.info("Data update OK for page %s region %s", page_id, region)
    return "", 204
