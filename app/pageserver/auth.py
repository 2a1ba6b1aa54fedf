from __future__ import annotations

import hashlib
import logging
import secrets
import uuid
from collections import defaultdict
from datetime import datetime, timedelta

from flask import after_this_request, current_app, g, redirect, render_template, request, session
from sqlalchemy.orm import Session, sessionmaker
from werkzeug.security import check_password_hash, generate_password_hash

from app.pageserver.acl import acl_role_for
from app.pageserver import audit
from app.pageserver.constants import (
    REMEMBER_COOKIE,
    ROLE_ADMIN,
    SESSION_EDIT,
    SESSION_LOGIN_TO_URL,
    SESSION_STAGING,
    SESSION_USER_ID,
)
from app.pageserver.db import db_session, session_scope
from app.pageserver.errors import Unauthorized
from app.pageserver.models import Role, User
from app.pageserver.utils import typeify

logger = logging.getLogger(__name__)

LOGIN_URL = "/_login"

_login_attempts: dict[str, list[datetime]] = defaultdict(list)
_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds


def _check_rate_limit(ip: str) -> bool:
    now = datetime.utcnow()
    cutoff = now - timedelta(seconds=_LOGIN_RATE_WINDOW)
    _login_attempts[ip] = [t for t in _login_attempts[ip] if t > cutoff]
    return len(_login_attempts[ip]) >= _LOGIN_RATE_LIMIT


def _record_attempt(ip: str) -> None:
    _login_attempts[ip].append(datetime.utcnow())


def wants_json() -> bool:
    best = request.accept_mimetypes.best_match(["text/html", "application/json"])
    return request.is_json or best == "application/json"


def _is_local_path(url: str) -> bool:
    return url.startswith("/") and not url.startswith("//")


def load_current_user() -> None:
    """
    Loads g.current_user from the signed session cookie and derives the ACL role.
    Without a session user, a valid remember-me cookie signs the user back in.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    g.current_user = None
    g.acl_role = acl_role_for(None)

    user_id = session.get(SESSION_USER_ID)
    if not user_id:
        if request.cookies.get(REMEMBER_COOKIE):
            _login_from_remember_cookie(request.cookies[REMEMBER_COOKIE])
        return

    try:
        s = db_session()
        user = s.get(User, int(user_id))
    except Exception as e:
        current_app.logger.error("load_current_user DB error (clearing session): %s", e)
        session.pop(SESSION_USER_ID, None)
        return

    if not user or not user.is_active:
        session.pop(SESSION_USER_ID, None)
        return
    g.current_user = user
    g.acl_role = acl_role_for(user)


def _token_digest(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _remember(user: User) -> None:
    """Issue a fresh remember-me token for ``user``; the caller commits."""
    token = secrets.token_urlsafe(32)
    user.remember_token = _token_digest(token)
    days = int(current_app.config.get("REMEMBER_COOKIE_DAYS") or 30)

    @after_this_request
    def _set_cookie(response):
        response.set_cookie(
            REMEMBER_COOKIE,
            token,
            max_age=days * 24 * 3600,
            httponly=True,
            samesite="Lax",
            secure=bool(current_app.config.get("SESSION_COOKIE_SECURE")),
        )
        return response


def _forget_cookie() -> None:
    @after_this_request
    def _delete_cookie(response):
        response.delete_cookie(REMEMBER_COOKIE)
        return response


def _login_from_remember_cookie(token: str) -> None:
    try:
        s = db_session()
        user = s.query(User).filter(User.remember_token == _token_digest(token)).one_or_none()
        if not user or not user.is_active:
            _forget_cookie()
            return
        # Single use: a replayed old cookie no longer matches.
        _remember(user)
        audit.user_event(s, "auth.remembered", user)
        s.commit()
    except Exception as e:
        current_app.logger.error("remember-me login DB error (ignoring cookie): %s", e)
        return

    session[SESSION_USER_ID] = user.id
    g.current_user = user
    g.acl_role = acl_role_for(user)
    logger.info("User %s signed in from remember-me cookie", user.email)


def login():
    """
    Handles the login flow: the login URL itself and any request the ACL turned away.
    """
    if getattr(g, "login_redirected", False) and request.path.rstrip("/") != LOGIN_URL:
        if wants_json() or request.method != "GET":
            raise Unauthorized()
        return render_template("auth/login.html", next=request.path, bad_credentials=False), 401

    if request.method == "POST":
        return _login_post()
    bad = typeify(request.args.get("badCredentials")) is True
    nxt = (request.args.get("next") or "").strip()
    return render_template("auth/login.html", next=nxt, bad_credentials=bad)


def _login_post():
    payload = request.get_json(silent=True) if request.is_json else request.form
    payload = payload or {}
    email = (payload.get("email") or "").strip().lower()
    password = payload.get("password") or ""
    remember = typeify(payload.get("remember")) in (True, "on")
    nxt = (payload.get("next") or "").strip()
    ip = request.remote_addr or "unknown"

    if _check_rate_limit(ip):
        logger.warning("Login rate limit hit (ip=%s)", ip)
        raise Unauthorized("Too many login attempts. Please wait 5 minutes.")

    _record_attempt(ip)

    s = db_session()
    user = s.query(User).filter(User.email == email).one_or_none()
    if not user or not user.is_active or not check_password_hash(user.password_hash, password):
        audit.login_failed(s, email)
        s.commit()
        logger.info("Login failed for %s", email)
        if wants_json():
            raise Unauthorized("Invalid credentials.")
        return redirect(f"{LOGIN_URL}?badCredentials=true")

    session[SESSION_USER_ID] = user.id
    _login_attempts[ip].clear()
    if remember:
        _remember(user)
    audit.user_event(s, "auth.login", user)
    s.commit()
    logger.info("User logged in OK: %s", email)

    target = session.pop(SESSION_LOGIN_TO_URL, None) or nxt
    if not target or not _is_local_path(target) or target.rstrip("/") == LOGIN_URL:
        target = "/"
    if wants_json():
        return {"href": target}
    return redirect(target)


def logout():
    s = db_session()
    user = getattr(g, "current_user", None)
    if user:
        audit.user_event(s, "auth.logout", user)
        user.remember_token = None
        s.commit()
    for key in (SESSION_USER_ID, SESSION_EDIT, SESSION_STAGING, SESSION_LOGIN_TO_URL):
        session.pop(key, None)
    if request.cookies.get(REMEMBER_COOKIE):
        _forget_cookie()
    return redirect("/")


def ensure_first_admin(sm: sessionmaker[Session], email: str, password: str) -> None:
    """
    On first run there is no administrator; create one with the configured
    credentials. Never touches an existing admin's password.
    """
    with session_scope(sm) as s:
        role_admin = s.query(Role).filter(Role.key == ROLE_ADMIN).one_or_none()
        if role_admin is not None and role_admin.users:
            return
        if role_admin is None:
            role_admin = Role(key=ROLE_ADMIN, name="Administrator")
            s.add(role_admin)

        user = s.query(User).filter(User.email == email).one_or_none()
        if user is None:
            user = User(email=email, password_hash=generate_password_hash(password), is_active=True)
            s.add(user)
        user.roles.append(role_admin)
        logger.info("Admin user %s created with the configured default password", email)
