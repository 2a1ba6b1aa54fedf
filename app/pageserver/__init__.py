import asyncio
import logging
from datetime import timedelta

from flask import Flask, g, render_template, request, session
from dotenv import load_dotenv

# Identity models first: they pull in the content models at import time.
from app.pageserver import models as _models  # noqa: F401
from app.pageserver.config import load_config
from app.pageserver.constants import RequestType
from app.pageserver.db import init_db, teardown_db_session
from app.pageserver.errors import PageServerError
from app.pageserver.routes import bp as routes_bp

_ANONYMOUS_ENDPOINTS = frozenset({"static", "routes.health", "routes.healthz"})


def _configure_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config.get("LOG_LEVEL") or "INFO").upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger("app.pageserver").setLevel(level)
    app.logger.setLevel(level)


def build_server(app: Flask, *, part_loader=None):
    from app.pageserver import auth
    from app.pageserver.acl import Acl
    from app.pageserver.classifier import RequestClassifier
    from app.pageserver.modules.composition import page_handler
    from app.pageserver.modules.composition.engine import AdminOverlay, CompositionEngine
    from app.pageserver.modules.composition.renderer import JinjaRenderer
    from app.pageserver.modules.content import publishing
    from app.pageserver.modules.content.resolver import PageResolver
    from app.pageserver.modules.content.store import ContentStore
    from app.pageserver.modules.parts import handler as parts_handler
    from app.pageserver.modules.parts.loaders import ImportPartLoader
    from app.pageserver.modules.parts.registry import PartRegistry
    from app.pageserver.pipeline import PageServer

    store = ContentStore(app.extensions["sqlalchemy_sessionmaker"])
    registry = PartRegistry(part_loader or ImportPartLoader())
    return PageServer(
        classifier=RequestClassifier.default(),
        acl=Acl.default(),
        store=store,
        registry=registry,
        resolver=PageResolver(store),
        composer=CompositionEngine(registry, AdminOverlay(app.config["ADMIN_OVERLAY_PATH"])),
        renderer=JinjaRenderer(app.jinja_env, app.config.get("SITE_TEMPLATES_DIR") or None),
        handlers={
            RequestType.PAGE: page_handler.handle,
            RequestType.LOGIN: auth.login,
            RequestType.LOGOUT: auth.logout,
            RequestType.PARTS: parts_handler.handle,
            RequestType.PUBLISH: publishing.handle,
        },
    )


def create_app(*, part_loader=None) -> Flask:
    load_dotenv()
    # Own assets live under a reserved prefix so content URLs keep "/static/...".
    app = Flask(__name__, template_folder="templates", static_folder="static", static_url_path="/_static")
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=8)
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True
    _configure_logging(app)

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    init_db(app)

    def _dispose_engine_on_fork() -> None:
        import os

        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()
                    app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    app.extensions["pageserver"] = build_server(app, part_loader=part_loader)
    app.register_blueprint(routes_bp)

    def _load_user_wrapper():
        if request.endpoint in _ANONYMOUS_ENDPOINTS:
            g.current_user = None
            return None
        session.permanent = True
        from app.pageserver.auth import load_current_user

        return load_current_user()

    app.before_request(_load_user_wrapper)
    app.teardown_appcontext(teardown_db_session)

    @app.errorhandler(PageServerError)
    def _err_pageserver(e: PageServerError):
        from app.pageserver.auth import wants_json

        rid = getattr(g, "request_id", None)
        if e.status_code >= 500:
            app.logger.error("%s %s failed with %s: %s (request_id=%s)", request.method, request.path, e.status_code, e.message, rid)
        else:
            app.logger.info("%s %s -> %s: %s (request_id=%s)", request.method, request.path, e.status_code, e.message, rid)
        if wants_json():
            return {"error": e.message, "status": e.status_code}, e.status_code
        return render_template("errors/error.html", status=e.status_code, message=e.message), e.status_code

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        rid = getattr(g, "request_id", None)
        app.logger.exception("Unhandled 500 (request_id=%s)", rid)
        return render_template("errors/error.html", status=500, message="Internal server error"), 500

    logging.getLogger(__name__).info("create_app() complete; call start_pipeline() before serving")
    return app


def start_pipeline(app: Flask) -> None:
    """Preload parts and seed the first admin; the server answers 503 until this completes."""
    server = app.extensions["pageserver"]
    asyncio.run(
        server.start(
            app.extensions["sqlalchemy_sessionmaker"],
            extra_part_modules=app.config.get("PART_MODULES") or (),
            admin_email=app.config.get("ADMIN_EMAIL"),
            admin_password=app.config.get("ADMIN_PASSWORD"),
        )
    )
