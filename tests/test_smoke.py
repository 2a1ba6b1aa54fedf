import json

import pytest
from werkzeug.security import generate_password_hash

from app.pageserver import auth, create_app, start_pipeline
from app.pageserver.db import session_scope
from app.pageserver.models import (
    Base,
    Page,
    PageInclude,
    PageRegion,
    Part,
    Role,
    Template,
    TemplateRegion,
    User,
)

HTML_PART = "app.pageserver.modules.parts.builtin.html"


def _page(view, url, html, *, template, part, status=200, name="Home"):
    page = Page(view=view, url=url, name=name, status=status, template=template)
    region = PageRegion(position=0, name="main")
    region.includes.append(PageInclude(position=0, part=part, data_json=json.dumps({"html": html})))
    page.regions.append(region)
    return page


def _seed(app):
    with session_scope(app) as s:
        r = Role(key="admin", name="Administrator")
        admin = User(email="admin@example.com", password_hash=generate_password_hash("pw"), is_active=True)
        admin.roles.append(r)
        member = User(email="member@example.com", password_hash=generate_password_hash("pw"), is_active=True)
        part = Part(module=HTML_PART, name="HTML")
        template = Template(name="default", src="default.html")
        template.regions.append(TemplateRegion(position=0, name="main"))
        s.add_all(
            [
                r,
                admin,
                member,
                part,
                template,
                _page("draft", "/", "<p>Draft home</p>", template=template, part=part),
                _page("live", "/", "<p>Live home</p>", template=template, part=part),
                _page("live", "/retired", "", template=template, part=part, status=410, name="Retired"),
                _page("live", "/moved", "", template=template, part=part, status=301, name="Moved"),
                _page("draft", "/healthcare", "<p>Draft care</p>", template=template, part=part, name="Care"),
                _page("live", "/healthcare", "<p>Live care</p>", template=template, part=part, name="Care"),
                _page("live", "/static/about", "<p>Static about</p>", template=template, part=part, name="About"),
            ]
        )


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    for k in ("SITE_TEMPLATES_DIR", "ADMIN_OVERLAY_PATH", "PART_MODULES"):
        monkeypatch.delenv(k, raising=False)
    auth._login_attempts.clear()

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)
    _seed(app)
    return app


@pytest.fixture()
def client(app):
    start_pipeline(app)
    return app.test_client()


def _login(client, email="admin@example.com", password="pw"):
    return client.post("/_login", data={"email": email, "password": password}, follow_redirects=False)


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["ok"] is True
    assert r.json["state"] == "ready"


def test_requests_before_start_are_unavailable(app):
    c = app.test_client()
    assert c.get("/healthz").status_code == 200
    r = c.get("/")
    assert r.status_code == 503


def test_start_preloads_registered_parts(client, app):
    registry = app.extensions["pageserver"].registry
    assert registry.is_loaded(HTML_PART)


def test_guest_sees_live_home(client):
    r = client.get("/")
    assert r.status_code == 200
    assert b"<p>Live home</p>" in r.data
    assert b"Draft home" not in r.data
    assert b"adminbar" not in r.data


def test_guest_cannot_toggle_staging_or_edit(client):
    r = client.get("/?_staging=true&_edit=true")
    assert r.status_code == 200
    assert b"Live home" in r.data
    assert b"html-part--edit" not in r.data


def test_missing_gone_and_redirect_pages(client):
    assert client.get("/nope").status_code == 404
    assert client.get("/retired").status_code == 410
    assert client.get("/moved").status_code == 501


def test_unhandled_request_types_are_not_found(client):
    _login(client)
    assert client.get("/_api/pages").status_code == 404
    assert client.get("/_admin/pages").status_code == 404


def test_guest_denied_json_gets_401(client):
    r = client.post("/_publish", json={"pages": [1]})
    assert r.status_code == 401
    assert r.json["status"] == 401


def test_guest_denied_browser_gets_login_page(client):
    r = client.get("/_parts/data?pageId=1&region=main&include=0")
    assert r.status_code == 401
    assert b"Sign in" in r.data


def test_login_returns_to_denied_url(client):
    client.get("/_parts/data?pageId=1&region=main&include=0")
    r = _login(client)
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/_parts/data")


def test_login_bad_credentials(client):
    r = _login(client, password="wrong")
    assert r.status_code == 302
    assert "badCredentials=true" in r.headers["Location"]

    r = client.get("/_login?badCredentials=true")
    assert r.status_code == 200
    assert b"Invalid email or password" in r.data


def test_login_json(client):
    r = client.post("/_login", json={"email": "admin@example.com", "password": "pw"})
    assert r.status_code == 200
    assert r.json["href"] == "/"

    r = client.post("/_login", json={"email": "admin@example.com", "password": "nope"})
    assert r.status_code == 401


def test_member_is_not_admin(client):
    assert _login(client, email="member@example.com").status_code == 302
    r = client.post("/_publish", json={"pages": [1]})
    assert r.status_code == 401
    r = client.get("/?_edit=true")
    assert b"html-part--edit" not in r.data


def test_admin_edit_and_staging_modes(client):
    _login(client)

    r = client.get("/")
    assert b"adminbar" in r.data
    assert b"Live home" in r.data

    r = client.get("/?_edit=true")
    assert b"html-part--edit" in r.data
    assert b'data-region="main"' in r.data

    r = client.get("/?_staging=true")
    assert b"Draft home" in r.data
    # Edit mode is sticky.
    assert b"html-part--edit" in r.data

    r = client.get("/?_staging=false&_edit=false")
    assert b"Live home" in r.data
    assert b"html-part--edit" not in r.data


def test_logout_clears_session(client):
    _login(client)
    client.get("/?_staging=true")
    r = client.get("/_logout")
    assert r.status_code == 302

    r = client.get("/")
    assert b"Live home" in r.data
    assert client.post("/_publish", json={"pages": [1]}).status_code == 401


def test_part_static_assets(client):
    r = client.get(f"/_parts/static/{HTML_PART}/html-part.css")
    assert r.status_code == 200
    assert b"html-part" in r.data

    assert client.get(f"/_parts/static/{HTML_PART}/missing.css").status_code == 404
    assert client.get("/_parts/static/no.such.part/x.css").status_code == 404


class CounterPart:
    static_dir = "."

    def init(self):
        pass

    def read(self, data):
        return {"count": (data or {}).get("count", 0)}

    def get_view(self, edit_mode):
        return "count={{ region.content.count }}"


class BrokenInitPart(CounterPart):
    def init(self):
        raise RuntimeError("no backend")


def test_custom_part_loader(tmp_path, monkeypatch):
    from app.pageserver.modules.parts import ChainPartLoader, FactoryPartLoader, ImportPartLoader

    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'custom.db'}")
    monkeypatch.setenv("ENV", "test")
    for k in ("SITE_TEMPLATES_DIR", "ADMIN_OVERLAY_PATH", "PART_MODULES"):
        monkeypatch.delenv(k, raising=False)

    loader = ChainPartLoader(
        [ImportPartLoader(), FactoryPartLoader({"counter": CounterPart, "broken": BrokenInitPart})]
    )
    app = create_app(part_loader=loader)
    Base.metadata.create_all(bind=app.extensions["sqlalchemy_engine"])
    with session_scope(app) as s:
        counter = Part(module="counter", name="Counter")
        broken = Part(module="broken", name="Broken")
        template = Template(name="default", src="default.html")
        ok_page = Page(view="live", url="/count", name="Count", template=template)
        region = PageRegion(position=0, name="A")
        region.includes.append(PageInclude(position=0, part=counter, data_json=json.dumps({"count": 3})))
        ok_page.regions.append(region)
        bad_page = Page(view="live", url="/broken", name="Broken", template=template)
        bad_region = PageRegion(position=0, name="A")
        bad_region.includes.append(PageInclude(position=0, part=broken, data_json=None))
        bad_page.regions.append(bad_region)
        s.add_all([counter, broken, template, ok_page, bad_page])

    start_pipeline(app)
    c = app.test_client()

    r = c.get("/count")
    assert r.status_code == 200
    assert b"count=3" in r.data

    # A part that failed to initialize fails every page that uses it.
    assert c.get("/broken").status_code == 500
    assert not app.extensions["pageserver"].registry.is_loaded("broken")


def test_pages_sharing_health_prefix_keep_the_signed_in_user(client):
    _login(client)

    r = client.get("/healthcare?_staging=true")
    assert r.status_code == 200
    assert b"Draft care" in r.data
    assert b"adminbar" in r.data

    r = client.get("/healthcare?_edit=true&_staging=false")
    assert b"Live care" in r.data
    assert b"html-part--edit" in r.data


def test_own_assets_do_not_shadow_static_content_pages(client):
    r = client.get("/_static/pageserver.css")
    assert r.status_code == 200

    r = client.get("/static/about")
    assert r.status_code == 200
    assert b"Static about" in r.data

    r = client.get("/")
    assert b"/_static/pageserver.css" in r.data


def test_remember_me_cookie_signs_user_back_in(client, app):
    r = client.post("/_login", data={"email": "admin@example.com", "password": "pw", "remember": "on"})
    assert r.status_code == 302
    first = client.get_cookie("remember_token").value

    fresh = app.test_client()
    fresh.set_cookie("remember_token", first)
    r = fresh.get("/?_staging=true")
    assert b"Draft home" in r.data
    assert b"adminbar" in r.data
    assert fresh.get_cookie("remember_token").value != first

    # Tokens are single use.
    replay = app.test_client()
    replay.set_cookie("remember_token", first)
    r = replay.get("/?_staging=true")
    assert b"Live home" in r.data
    assert replay.get_cookie("remember_token") is None


def test_login_without_remember_sets_no_cookie(client):
    _login(client)
    assert client.get_cookie("remember_token") is None


def test_logout_forgets_remember_me(client, app):
    client.post("/_login", json={"email": "admin@example.com", "password": "pw", "remember": True})
    token = client.get_cookie("remember_token").value

    client.get("/_logout")
    assert client.get_cookie("remember_token") is None
    with session_scope(app) as s:
        assert s.query(User).filter(User.email == "admin@example.com").one().remember_token is None

    other = app.test_client()
    other.set_cookie("remember_token", token)
    assert other.post("/_publish", json={"pages": [1]}).status_code == 401
