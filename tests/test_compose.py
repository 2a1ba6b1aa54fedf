"""Tests for page composition and rendering."""
import asyncio
import time

import pytest
from jinja2 import DictLoader, Environment

from app.pageserver.constants import SESSION_EDIT, SESSION_STAGING, VIEW_LIVE
from app.pageserver.modules.composition.engine import AdminOverlay, CompositionEngine, RenderPayload
from app.pageserver.modules.composition.flags import SessionFlags, apply_mode_toggles
from app.pageserver.modules.composition.renderer import JinjaRenderer
from app.pageserver.modules.content.schema import (
    ContentDocument,
    Include,
    Region,
    Template,
    TemplateProperty,
)
from app.pageserver.modules.parts import FactoryPartLoader, PartRegistry


class EchoPart:
    """Returns the include data; ``delay`` in the data slows the read down."""

    def __init__(self, static_dir, name="echo"):
        self.static_dir = static_dir
        self.name = name

    def init(self):
        pass

    async def read(self, data):
        await asyncio.sleep((data or {}).get("delay", 0))
        return data

    def get_view(self, edit_mode):
        return f"{self.name}:{'edit' if edit_mode else 'view'}"


class BrokenPart(EchoPart):
    async def read(self, data):
        raise RuntimeError("backend down")


@pytest.fixture()
def registry(tmp_path):
    loader = FactoryPartLoader(
        {
            "P1": lambda: EchoPart(tmp_path, "P1"),
            "P2": lambda: EchoPart(tmp_path, "P2"),
            "broken": lambda: BrokenPart(tmp_path, "broken"),
        }
    )
    return PartRegistry(loader)


@pytest.fixture()
def overlay(tmp_path):
    path = tmp_path / "adminbar.html"
    path.write_text("<nav>admin {{ page.name }}</nav>", encoding="utf-8")
    return AdminOverlay(path)


@pytest.fixture()
def engine(registry, overlay):
    return CompositionEngine(registry, overlay)


def _doc(*regions, template=None):
    return ContentDocument(id=7, url="/home", view=VIEW_LIVE, name="Home", regions=tuple(regions), template=template)


def test_region_without_part_is_absent(engine):
    doc = _doc(
        Region("A", (Include("P1", {"count": 3}),)),
        Region("B", (Include(None, {"ignored": True}),)),
    )
    payload = asyncio.run(engine.compose(doc, SessionFlags()))

    a = payload.data["A"]
    assert a["content"] == {"count": 3}
    assert a["edit"] is False
    assert a["region"] == "A"
    assert a["pageId"] == 7
    assert "B" not in payload.data
    assert [r["region"] for r in payload.data["regions"]] == ["A"]
    assert payload.partials == {"A": "P1:view"}


def test_include_order_survives_out_of_order_reads(engine):
    doc = _doc(
        Region(
            "main",
            (
                Include("P1", {"n": 0, "delay": 0.05}),
                Include("P2", {"n": 1, "delay": 0.0}),
                Include("P1", {"n": 2, "delay": 0.02}),
            ),
        ),
        Region("side", (Include("P2", {"n": 3}),)),
    )
    payload = asyncio.run(engine.compose(doc, SessionFlags()))

    assert [c["n"] for c in payload.data["main"]["includes"]] == [0, 1, 2]
    assert payload.data["main"]["content"]["n"] == 0
    assert payload.data["side"]["content"]["n"] == 3
    assert [r["region"] for r in payload.data["regions"]] == ["main", "side"]


def test_region_view_comes_from_its_first_part(engine):
    doc = _doc(Region("main", (Include(None), Include("P2", {}), Include("P1", {}))))
    payload = asyncio.run(engine.compose(doc, SessionFlags()))
    assert payload.partials["main"] == "P2:view"
    assert payload.data["main"]["includes"][0] is None


def test_failed_read_fails_the_page(engine):
    doc = _doc(Region("A", (Include("P1", {}),)), Region("B", (Include("broken", {}),)))
    with pytest.raises(RuntimeError, match="backend down"):
        asyncio.run(engine.compose(doc, SessionFlags()))


class SlowInitPart(EchoPart):
    init_calls = 0

    def init(self):
        type(self).init_calls += 1
        time.sleep(0.2)


def test_abandoned_part_load_still_completes(tmp_path, overlay):
    SlowInitPart.init_calls = 0
    registry = PartRegistry(
        FactoryPartLoader({"broken": lambda: BrokenPart(tmp_path), "slow": lambda: SlowInitPart(tmp_path, "slow")})
    )
    asyncio.run(registry.resolve("broken"))
    engine = CompositionEngine(registry, overlay)
    doc = _doc(Region("A", (Include("broken", {}),)), Region("B", (Include("slow", {}),)))

    # The broken read fails the page while "slow" is still initializing;
    # asyncio.run then cancels the pending resolve.
    with pytest.raises(RuntimeError, match="backend down"):
        asyncio.run(engine.compose(doc, SessionFlags()))

    handle = asyncio.run(registry.resolve("slow"))
    assert handle.plugin.name == "slow"
    assert SlowInitPart.init_calls == 1


def test_flags_and_template_properties(engine):
    template = Template(
        name="landing",
        src="landing.html",
        properties=(TemplateProperty("title", "Welcome"), TemplateProperty("edit", "overridden")),
    )
    doc = _doc(Region("A", (Include("P1", {}),)), template=template)

    payload = asyncio.run(engine.compose(doc, SessionFlags(admin=True, edit=True, staging=True)))
    data = payload.data

    assert payload.template_src == "landing.html"
    assert data["title"] == "Welcome"
    assert data["edit"] is True
    assert data["preview"] is False
    assert data["staging"] is True
    assert data["live"] is False
    assert data["admin"] is True
    assert data["page"] == {"id": 7, "url": "/home", "name": "Home", "view": VIEW_LIVE}
    assert payload.partials["A"] == "P1:edit"


def test_region_named_like_a_flag_does_not_replace_it(engine):
    doc = _doc(Region("edit", (Include("P1", {"n": 1}),)), Region("page", (Include("P2", {"n": 2}),)))
    payload = asyncio.run(engine.compose(doc, SessionFlags(admin=True, edit=False)))

    assert payload.data["edit"] is False
    assert payload.data["page"]["url"] == "/home"
    assert [r["region"] for r in payload.data["regions"]] == ["edit", "page"]
    assert payload.data["regions"][0]["content"] == {"n": 1}
    assert payload.partials["edit"] == "P1:view"


def test_non_admin_never_edits(engine):
    doc = _doc(Region("A", (Include("P1", {}),)))
    payload = asyncio.run(engine.compose(doc, SessionFlags(admin=False, edit=True)))

    assert payload.data["edit"] is False
    assert payload.data["preview"] is True
    assert payload.data["A"]["edit"] is False
    assert "adminbar" not in payload.partials


def test_admin_gets_overlay_partial(engine):
    doc = _doc(Region("A", (Include("P1", {}),)))
    payload = asyncio.run(engine.compose(doc, SessionFlags(admin=True)))

    assert payload.template_src == "default.html"
    assert payload.partials["adminbar"] == "<nav>admin {{ page.name }}</nav>"


def test_mode_toggles():
    sess = {}
    flags = apply_mode_toggles(sess, {"_edit": "true", "_staging": "true"}, is_admin=False)
    assert flags == SessionFlags(admin=False, edit=False, staging=False)
    assert SESSION_EDIT not in sess

    flags = apply_mode_toggles(sess, {"_edit": "true", "_staging": "true"}, is_admin=True)
    assert flags.effective_edit is True
    assert flags.mode.staging is True

    # Sticky across requests until switched off.
    flags = apply_mode_toggles(sess, {}, is_admin=True)
    assert flags.edit is True and flags.staging is True

    flags = apply_mode_toggles(sess, {"_edit": "false"}, is_admin=False)
    assert sess[SESSION_EDIT] is False
    assert sess[SESSION_STAGING] is True
    assert flags.staging is False


def test_renderer_resolves_per_request_partials():
    env = Environment(
        loader=DictLoader(
            {
                "default.html": (
                    "{% if admin %}{% include 'partial:adminbar' %}|{% endif %}"
                    "{% for region in regions %}[{% include 'partial:' ~ region.region %}]{% endfor %}"
                )
            }
        )
    )
    renderer = JinjaRenderer(env)

    first = RenderPayload(
        template_src="default.html",
        data={"admin": True, "page": {"name": "Home"}, "regions": [{"region": "A", "content": {"n": 1}}]},
        partials={"A": "n={{ region.content.n }}", "adminbar": "bar {{ page.name }}"},
    )
    second = RenderPayload(
        template_src="default.html",
        data={"admin": False, "regions": [{"region": "A", "content": {"n": 2}}]},
        partials={"A": "other={{ region.content.n }}"},
    )

    assert asyncio.run(renderer.render(first)) == "bar Home|[n=1]"
    assert asyncio.run(renderer.render(second)) == "[other=2]"
