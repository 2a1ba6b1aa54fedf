from flask import Blueprint

from app.pageserver.constants import ALL_METHODS
from app.pageserver.pipeline import current_server

bp = Blueprint("routes", __name__)


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    server = current_server()
    return {"ok": True, "state": server.state.value, "pages": len(server.live_urls)}


@bp.get("/healthz")
def healthz():
    """
    Fast liveness check for the load balancer. No DB access, minimal overhead.
    """
    return "ok", 200


@bp.route("/", defaults={"path": ""}, methods=list(ALL_METHODS))
@bp.route("/<path:path>", methods=list(ALL_METHODS))
async def dispatch(path: str):
    """Everything else goes through the page server pipeline."""
    return await current_server().handle_request()
