#!/usr/bin/env python3
"""
Production entry point: run the release phase, then exec gunicorn.

``app.wsgi`` preloads every part in the master (``--preload``), so workers
fork from a server that is already ready and never answer 503.

Environment: PORT (default 8080), WEB_CONCURRENCY (default 2),
SKIP_RELEASE=1 to start without migrating.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _positive_int(name: str, default: int, upper: int) -> int:
    raw = (os.environ.get(name) or "").strip() or str(default)
    if not raw.isdigit() or not 1 <= int(raw) <= upper:
        raise SystemExit(f"{name} must be an integer between 1 and {upper}, got {raw!r}")
    return int(raw)


def gunicorn_argv(port: int, workers: int) -> list[str]:
    return [
        "gunicorn",
        "app.wsgi:app",
        "--bind", f"0.0.0.0:{port}",
        "--workers", str(workers),
        "--preload",
        "--access-logfile", "-",
    ]


def main() -> None:
    argv = gunicorn_argv(_positive_int("PORT", 8080, 65535), _positive_int("WEB_CONCURRENCY", 2, 64))

    if os.environ.get("SKIP_RELEASE") != "1":
        from scripts.release import run_release

        run_release()

    os.execvp(argv[0], argv)


if __name__ == "__main__":
    main()
