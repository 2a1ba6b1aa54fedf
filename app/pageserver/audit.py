"""
Audit trail for the page server: sign-ins, part data edits and publishing.

Events are added to the caller's session and committed with it. Inside a
request the actor defaults to ``g.current_user`` and the request id and client
address are taken from the request.
"""
from __future__ import annotations

import json
from typing import Any

from flask import g, has_request_context, request
from sqlalchemy.orm import Session

from app.pageserver.models import AuditEvent, User

_REQUEST_USER = object()


def _request_fields() -> dict[str, Any]:
    if not has_request_context():
        return {"request_id": None, "client_ip": None}
    return {"request_id": getattr(g, "request_id", None), "client_ip": request.remote_addr}


def _event(
    s: Session,
    action: str,
    entity_type: str,
    entity_id: Any,
    *,
    actor: Any = _REQUEST_USER,
    reason: str | None = None,
    details: dict[str, Any] | None = None,
) -> AuditEvent:
    if actor is _REQUEST_USER:
        actor = getattr(g, "current_user", None) if has_request_context() else None
    ev = AuditEvent(
        actor_user_id=actor.id if actor else None,
        actor_user_email=actor.email if actor else None,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
        metadata_json=json.dumps(details, sort_keys=True) if details else None,
        **_request_fields(),
    )
    s.add(ev)
    return ev


def user_event(s: Session, action: str, user: User) -> AuditEvent:
    """``user`` acted on their own account (login, logout, remembered login)."""
    return _event(s, action, "User", user.id, actor=user)


def login_failed(s: Session, email: str) -> AuditEvent:
    return _event(s, "auth.login_failed", "User", email, actor=None, reason="Invalid credentials", details={"email": email})


def page_event(s: Session, action: str, page_id: int, **details: Any) -> AuditEvent:
    return _event(s, action, "Page", page_id, details=details)
