import sys
from pathlib import Path
import json
import os

from werkzeug.security import generate_password_hash
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from contextlib import contextmanager

# Ensure repo root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.pageserver.constants import DEFAULT_TEMPLATE_SRC, ROLE_ADMIN, VIEW_DRAFT, VIEW_LIVE
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

HTML_PART_MODULE = "app.pageserver.modules.parts.builtin.html"
WELCOME_HTML = "<h1>Welcome</h1><p>This page is served from the content store.</p>"


@contextmanager
def _session_scope(database_url: str):
    engine = create_engine(database_url, future=True)
    sm = sessionmaker(bind=engine, class_=Session, autoflush=False, autocommit=False, expire_on_commit=False, future=True)
    s: Session = sm()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()


def _ensure_home_page(s: Session, *, view: str, template: Template, part: Part, actor: User) -> None:
    page = s.query(Page).filter(Page.view == view, Page.url == "/").one_or_none()
    if page:
        return
    page = Page(view=view, url="/", name="Home", status=200, template=template, created_by_user_id=actor.id)
    region = PageRegion(position=0, name="main")
    region.includes.append(PageInclude(position=0, part=part, data_json=json.dumps({"html": WELCOME_HTML})))
    page.regions.append(region)
    s.add(page)


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed the admin user, the built-in HTML part, a default template and a home
    page in both views. Idempotent; never overwrites an existing admin password.
    """
    admin_email = (os.environ.get("ADMIN_EMAIL") or "admin@example.com").strip().lower()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"

    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///pageserver.db").strip()

    # Direct engine/session so this can run in release without importing app.wsgi.
    with _session_scope(db_url) as s:
        role_admin = s.query(Role).filter(Role.key == ROLE_ADMIN).one_or_none()
        if not role_admin:
            role_admin = Role(key=ROLE_ADMIN, name="Administrator")
            s.add(role_admin)

        user = s.query(User).filter(User.email == admin_email).one_or_none()
        if not user:
            user = User(email=admin_email, password_hash=generate_password_hash(admin_password), is_active=True)
            s.add(user)
        if role_admin not in user.roles:
            user.roles.append(role_admin)
        s.flush()

        part = s.query(Part).filter(Part.module == HTML_PART_MODULE).one_or_none()
        if not part:
            part = Part(module=HTML_PART_MODULE, name="HTML")
            s.add(part)

        template = s.query(Template).filter(Template.name == "default").one_or_none()
        if not template:
            template = Template(name="default", src=DEFAULT_TEMPLATE_SRC, created_by_user_id=user.id)
            template.regions.append(TemplateRegion(position=0, name="main"))
            s.add(template)

        for view in (VIEW_DRAFT, VIEW_LIVE):
            _ensure_home_page(s, view=view, template=template, part=part, actor=user)

    print("Initialized database (seed_only).")
    print(f"Admin email: {admin_email}")
    print("Admin password: (from ADMIN_PASSWORD)")


def main() -> None:
    db_url = (os.environ.get("DATABASE_URL") or "sqlite:///pageserver.db").strip()
    if db_url.startswith("sqlite"):
        # Local development: no migrations needed.
        Base.metadata.create_all(bind=create_engine(db_url, future=True))
    seed_only(database_url=db_url)


if __name__ == "__main__":
    main()
