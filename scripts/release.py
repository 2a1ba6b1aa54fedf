"""
Release phase for the page server.

Migrates the database, seeds the first admin and home page, then checks that
the stored content can actually be served: every part module in the ``parts``
table (plus ``PART_MODULES``) must import and expose the part interface, and
every template ``src`` must exist in ``SITE_TEMPLATES_DIR`` or the bundled
templates. Any problem fails the release before traffic is switched over.

Usage:
  python scripts/release.py
"""

from __future__ import annotations

import os
import sys
from collections.abc import Iterable
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import Session

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.pageserver.config import PACKAGE_DIR, load_settings  # noqa: E402
from app.pageserver.errors import PageServerError  # noqa: E402
from app.pageserver.models import Part, Template  # noqa: E402
from app.pageserver.modules.parts.contract import validate_part  # noqa: E402
from app.pageserver.modules.parts.loaders import ImportPartLoader, PartLoader  # noqa: E402


class ReleaseError(RuntimeError):
    def __init__(self, problems: list[str]) -> None:
        super().__init__("; ".join(problems))
        self.problems = problems


def _migrate(database_url: str) -> None:
    from alembic import command
    from alembic.config import Config

    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", database_url)
    command.upgrade(cfg, "head")


def template_dirs(site_templates_dir: str | None) -> list[Path]:
    dirs = [Path(site_templates_dir)] if site_templates_dir else []
    return dirs + [PACKAGE_DIR / "templates"]


def check_content(
    s: Session,
    *,
    site_templates_dir: str | None = None,
    extra_part_modules: Iterable[str] = (),
    loader: PartLoader | None = None,
) -> list[str]:
    """Return one message per part module or template that cannot be served."""
    loader = loader or ImportPartLoader()
    problems: list[str] = []

    modules = [p.module for p in s.query(Part).order_by(Part.id.asc())] + list(extra_part_modules)
    for module_id in dict.fromkeys(modules):
        try:
            validate_part(module_id, loader.load(module_id))
        except PageServerError as e:
            problems.append(f"part {module_id}: {e.message}")

    dirs = template_dirs(site_templates_dir)
    for template in s.query(Template).order_by(Template.id.asc()):
        if not template.src:
            continue
        if not any((d / template.src).is_file() for d in dirs):
            problems.append(f"template {template.name}: {template.src} not found in {', '.join(map(str, dirs))}")
    return problems


def run_release() -> None:
    settings = load_settings()
    db_url = (os.environ.get("DATABASE_URL") or "").strip()
    if not db_url:
        raise RuntimeError("Missing required environment variable DATABASE_URL.")
    if settings.env in ("prod", "production") and db_url.startswith("sqlite"):
        raise RuntimeError("Refusing to release against sqlite in production. Set DATABASE_URL to Postgres.")

    print(f"=== pageserver release (ENV={settings.env}) ===", flush=True)
    _migrate(db_url)
    print("Migrations at head.", flush=True)

    from scripts import init_db

    init_db.seed_only(database_url=db_url)

    engine = create_engine(db_url, future=True)
    try:
        with Session(engine) as s:
            problems = check_content(
                s,
                site_templates_dir=settings.site_templates_dir,
                extra_part_modules=settings.part_modules,
            )
    finally:
        engine.dispose()
    if problems:
        for problem in problems:
            print(f"  ! {problem}", flush=True)
        raise ReleaseError(problems)
    print("Parts and templates verified.", flush=True)


if __name__ == "__main__":
    run_release()
