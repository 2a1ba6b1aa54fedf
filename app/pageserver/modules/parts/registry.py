from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from flask import Response, send_from_directory

from app.pageserver.errors import PartLoadError
from app.pageserver.modules.parts.contract import PartHandle, validate_part
from app.pageserver.modules.parts.loaders import PartLoader
from app.pageserver.utils import KeyedOnce

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PartStaticServer:
    root: Path

    def serve(self, path: str) -> Response:
        # send_from_directory refuses paths escaping root and 404s on missing files.
        return send_from_directory(self.root, path, max_age=3600)


class PartRegistry:
    """
    Process-wide cache of loaded parts, keyed by module id.

    The first ``resolve`` for an id loads and initializes the part; concurrent
    first resolutions share that single load. A failed load stays failed for
    the id until ``invalidate`` is called.
    """

    def __init__(self, loader: PartLoader) -> None:
        self._loader = loader
        self._handles: KeyedOnce[PartHandle] = KeyedOnce()
        self._static_lock = threading.Lock()
        self._static_servers: dict[str, PartStaticServer] = {}

    async def resolve(self, module_id: str) -> PartHandle:
        return await self._handles.get(module_id, lambda: self._load(module_id))

    def _load(self, module_id: str) -> PartHandle:
        logger.info("Loading part module %s", module_id)
        plugin = self._loader.load(module_id)
        validate_part(module_id, plugin)
        try:
            plugin.init()
        except Exception as e:
            raise PartLoadError(module_id, f"Part {module_id!r} failed to initialize: {e}") from e
        return PartHandle(module_id=module_id, plugin=plugin)

    def invalidate(self, module_id: str) -> None:
        self._handles.discard(module_id)
        with self._static_lock:
            self._static_servers.pop(module_id, None)

    def is_loaded(self, module_id: str) -> bool:
        return self._handles.done_value(module_id) is not None

    async def preload(self, module_ids: Iterable[str]) -> dict[str, Exception]:
        """
        Resolve every module id up front. Failures are logged and returned,
        and leave that id unresolvable until invalidated.
        """
        failures: dict[str, Exception] = {}
        for module_id in dict.fromkeys(module_ids):
            logger.debug("Preloading part %s", module_id)
            try:
                await self.resolve(module_id)
            except Exception as e:
                logger.error("Part %s could not be loaded: %s", module_id, e)
                failures[module_id] = e
        return failures

    async def static_server(self, module_id: str) -> PartStaticServer:
        with self._static_lock:
            server = self._static_servers.get(module_id)
        if server is not None:
            return server
        handle = await self.resolve(module_id)
        with self._static_lock:
            return self._static_servers.setdefault(module_id, PartStaticServer(root=handle.static_dir))
