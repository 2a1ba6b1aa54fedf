"""
Request pipeline: readiness gate, access control, classification, dispatch.

Every non-health request goes through ``PageServer.handle_request``. A request
the ACL denies is not an error: it is handed to the login handler instead and
the requested URL is remembered for the post-login redirect.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from flask import current_app, g, request, session
from sqlalchemy.orm import Session, sessionmaker

from app.pageserver.acl import Acl
from app.pageserver.auth import ensure_first_admin
from app.pageserver.classifier import RequestClassifier
from app.pageserver.constants import ROLE_GUEST, SESSION_LOGIN_TO_URL, VIEW_LIVE, AppState, RequestType
from app.pageserver.errors import NotFound, ServiceUnavailable
from app.pageserver.modules.composition.engine import CompositionEngine
from app.pageserver.modules.composition.renderer import JinjaRenderer
from app.pageserver.modules.content.resolver import PageResolver
from app.pageserver.modules.content.store import ContentStore
from app.pageserver.modules.parts.registry import PartRegistry

logger = logging.getLogger(__name__)

Handler = Callable[[], Any]


class PageServer:
    def __init__(
        self,
        *,
        classifier: RequestClassifier,
        acl: Acl,
        store: ContentStore,
        registry: PartRegistry,
        resolver: PageResolver,
        composer: CompositionEngine,
        renderer: JinjaRenderer,
        handlers: Mapping[RequestType, Handler],
    ) -> None:
        self.classifier = classifier
        self.acl = acl
        self.store = store
        self.registry = registry
        self.resolver = resolver
        self.composer = composer
        self.renderer = renderer
        self.handlers = dict(handlers)
        self.state = AppState.NOT_READY
        self.live_urls: tuple[str, ...] = ()

    @property
    def ready(self) -> bool:
        return self.state is AppState.READY

    async def start(
        self,
        sm: sessionmaker[Session],
        *,
        extra_part_modules: Iterable[str] = (),
        admin_email: str | None = None,
        admin_password: str | None = None,
    ) -> None:
        """
        Preload every registered part and make sure an admin exists, then
        start accepting requests.
        """
        logger.info("Initializing the page server")
        await self.refresh_page_urls()
        parts = await self.store.find_parts()
        module_ids = [p.module for p in parts] + list(extra_part_modules)
        failures = await self.registry.preload(module_ids)
        if failures:
            logger.warning("%d part(s) failed to load: %s", len(failures), ", ".join(sorted(failures)))
        if admin_email and admin_password:
            await asyncio.to_thread(ensure_first_admin, sm, admin_email, admin_password)
        self.state = AppState.READY
        logger.info(
            "Initialized, waiting for requests (%d parts, %d live pages)",
            len(module_ids) - len(failures),
            len(self.live_urls),
        )

    async def refresh_page_urls(self) -> None:
        """Re-read the URLs served from the live view (at start and after publishing)."""
        self.live_urls = tuple(await self.store.page_urls(VIEW_LIVE))
        logger.debug("Urls to resolve are: %s", ", ".join(self.live_urls))

    async def handle_request(self) -> Any:
        if not self.ready:
            logger.info("Request received before the server is ready: %s", request.path)
            raise ServiceUnavailable()

        url = request.path
        role = getattr(g, "acl_role", None) or ROLE_GUEST
        if self.acl.is_allowed(role, url, request.method):
            request_type = self.classifier.classify(url)
        else:
            logger.debug(
                "Role [%s] is not allowed to %s %s; redirecting to login (request_id=%s)",
                role,
                request.method,
                url,
                getattr(g, "request_id", None),
            )
            session[SESSION_LOGIN_TO_URL] = url
            g.login_redirected = True
            request_type = RequestType.LOGIN

        handler = self.handlers.get(request_type)
        if handler is None:
            raise NotFound(f"Nothing handles {url}")

        logger.debug("Dispatching %s %s as %s", request.method, url, request_type.value)
        result = handler()
        if inspect.isawaitable(result):
            result = await result
        return result


def current_server() -> PageServer:
    return current_app.extensions["pageserver"]
