from __future__ import annotations

from jinja2 import BaseLoader, ChoiceLoader, DictLoader, Environment, FileSystemLoader, PrefixLoader

from app.pageserver.constants import PARTIAL_PREFIX
from app.pageserver.modules.composition.engine import RenderPayload


class JinjaRenderer:
    """
    Renders a composed payload with the app's Jinja environment.

    Partials registered on the payload are only visible to that render, under
    ``partial:<name>`` (e.g. ``{% include "partial:adminbar" %}``).
    """

    def __init__(self, env: Environment, site_templates_dir: str | None = None) -> None:
        self._env = env
        loaders: list[BaseLoader] = []
        if site_templates_dir:
            loaders.append(FileSystemLoader(site_templates_dir))
        if env.loader is not None:
            loaders.append(env.loader)
        self._base_loaders = loaders

    def environment_for(self, partials: dict[str, str]) -> Environment:
        loader = ChoiceLoader(
            [PrefixLoader({PARTIAL_PREFIX: DictLoader(dict(partials))}, delimiter=":"), *self._base_loaders]
        )
        # Per-request partials must never land in the shared template cache.
        return self._env.overlay(loader=loader, cache_size=0)

    async def render(self, payload: RenderPayload) -> str:
        env = self.environment_for(payload.partials)
        template = env.get_template(payload.template_src)
        return template.render(payload.data)
