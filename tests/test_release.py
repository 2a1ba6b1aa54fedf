"""Tests for the release-phase content checks and the start command line."""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from app.pageserver.models import Base, Part, Template
from scripts.release import check_content
from scripts.start import _positive_int, gunicorn_argv

HTML_PART = "app.pageserver.modules.parts.builtin.html"


@pytest.fixture()
def session(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path/'release.db'}", future=True)
    Base.metadata.create_all(bind=engine)
    with Session(engine) as s:
        yield s
    engine.dispose()


def test_servable_content_has_no_problems(session):
    session.add_all([Part(module=HTML_PART, name="HTML"), Template(name="default", src="default.html")])
    session.commit()

    assert check_content(session) == []


def test_unimportable_part_and_missing_template_are_reported(session, tmp_path):
    session.add_all(
        [
            Part(module=HTML_PART, name="HTML"),
            Part(module="app.pageserver.modules.parts.builtin.nope", name="Nope"),
            Template(name="landing", src="landing.html"),
        ]
    )
    session.commit()

    problems = check_content(session, site_templates_dir=str(tmp_path), extra_part_modules=["no.such.module"])

    assert len(problems) == 3
    assert problems[0].startswith("part app.pageserver.modules.parts.builtin.nope:")
    assert problems[1].startswith("part no.such.module:")
    assert problems[2].startswith("template landing: landing.html not found")


def test_site_templates_dir_is_searched(session, tmp_path):
    (tmp_path / "landing.html").write_text("{{ page.name }}", encoding="utf-8")
    session.add(Template(name="landing", src="landing.html"))
    session.commit()

    assert check_content(session, site_templates_dir=str(tmp_path)) == []


def test_gunicorn_command_line():
    argv = gunicorn_argv(9000, 3)
    assert argv[:2] == ["gunicorn", "app.wsgi:app"]
    assert "0.0.0.0:9000" in argv
    assert argv[argv.index("--workers") + 1] == "3"
    assert "--preload" in argv


def test_port_validation(monkeypatch):
    monkeypatch.delenv("PORT", raising=False)
    assert _positive_int("PORT", 8080, 65535) == 8080

    monkeypatch.setenv("PORT", "70000")
    with pytest.raises(SystemExit):
        _positive_int("PORT", 8080, 65535)
