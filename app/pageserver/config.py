import os
from dataclasses import dataclass
from pathlib import Path

PACKAGE_DIR = Path(__file__).resolve().parent


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str
    log_level: str

    site_templates_dir: str
    admin_overlay_path: str
    part_modules: tuple[str, ...]

    admin_email: str
    admin_password: str
    remember_days: int


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _split_csv(raw: str) -> tuple[str, ...]:
    return tuple(p.strip() for p in raw.split(",") if p.strip())


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///pageserver.db"),
        log_level=_getenv("LOG_LEVEL", "INFO").upper(),
        site_templates_dir=_getenv("SITE_TEMPLATES_DIR", ""),
        admin_overlay_path=_getenv(
            "ADMIN_OVERLAY_PATH", str(PACKAGE_DIR / "templates" / "partials" / "adminbar.html")
        ),
        part_modules=_split_csv(_getenv("PART_MODULES", "")),
        admin_email=_getenv("ADMIN_EMAIL", "admin@example.com").lower(),
        admin_password=os.environ.get("ADMIN_PASSWORD") or "change-me",
        remember_days=int(_getenv("REMEMBER_COOKIE_DAYS", "30")),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "LOG_LEVEL": s.log_level,
        "SITE_TEMPLATES_DIR": s.site_templates_dir,
        "ADMIN_OVERLAY_PATH": s.admin_overlay_path,
        "PART_MODULES": s.part_modules,
        "ADMIN_EMAIL": s.admin_email,
        "ADMIN_PASSWORD": s.admin_password,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,
        "REMEMBER_COOKIE_DAYS": s.remember_days,
        # part data bodies are small JSON blobs
        "MAX_CONTENT_LENGTH": 2 * 1024 * 1024,
    }
