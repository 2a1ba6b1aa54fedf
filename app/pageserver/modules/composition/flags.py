from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from typing import Any

from app.pageserver.constants import SESSION_EDIT, SESSION_STAGING
from app.pageserver.modules.content.schema import SessionMode
from app.pageserver.utils import typeify


@dataclass(frozen=True)
class SessionFlags:
    admin: bool = False
    edit: bool = False
    staging: bool = False

    @property
    def effective_edit(self) -> bool:
        return self.admin and self.edit

    @property
    def mode(self) -> SessionMode:
        return SessionMode(staging=self.staging)


def _toggle(sess: MutableMapping[str, Any], key: str, raw: str | None, *, may_enable: bool) -> None:
    value = typeify(raw)
    if value is True and may_enable:
        sess[key] = True
    elif value is False:
        sess[key] = False


def apply_mode_toggles(sess: MutableMapping[str, Any], args: Mapping[str, str], *, is_admin: bool) -> SessionFlags:
    """
    Apply ``?_edit=`` / ``?_staging=`` toggles to the session and return the
    flags for this request. Only administrators can switch either mode on;
    anyone can switch them off.
    """
    if "_edit" in args:
        _toggle(sess, SESSION_EDIT, args.get("_edit"), may_enable=is_admin)
    if "_staging" in args:
        _toggle(sess, SESSION_STAGING, args.get("_staging"), may_enable=is_admin)

    edit = sess.get(SESSION_EDIT) is True
    staging = is_admin and sess.get(SESSION_STAGING) is True
    return SessionFlags(admin=is_admin, edit=edit, staging=staging)
