"""
Central constants for the page server.
"""
from __future__ import annotations

from enum import Enum


class RequestType(str, Enum):
    PAGE = "page"
    LOGIN = "login"
    LOGOUT = "logout"
    API = "api"
    ADMIN = "admin"
    PUBLISH = "publish"
    PARTS = "parts"


class AppState(str, Enum):
    NOT_READY = "not_ready"
    READY = "ready"


# Content views
VIEW_DRAFT = "draft"
VIEW_LIVE = "live"

# ACL roles
ROLE_GUEST = "guest"
ROLE_MEMBER = "member"
ROLE_ADMIN = "admin"
ALL_ROLES = (ROLE_GUEST, ROLE_MEMBER, ROLE_ADMIN)

READ_METHODS = ("GET", "POST")
ALL_METHODS = ("GET", "POST", "PUT", "DELETE")

LOGIN_PATTERN = r"^/_login/?$"
LOGOUT_PATTERN = r"^/_logout/?$"
API_PATTERN = r"^/_api/"
ADMIN_PATTERN = r"^/_admin/"
PUBLISH_PATTERN = r"^/_publish/?"
PARTS_PATTERN = r"^/_parts/(static|data)"
PARTS_DATA_PATTERN = r"^/_parts/data"

# Ordered (pattern, type); first match wins, no match is a content page.
CLASSIFIER_RULES = (
    (LOGIN_PATTERN, RequestType.LOGIN),
    (LOGOUT_PATTERN, RequestType.LOGOUT),
    (API_PATTERN, RequestType.API),
    (ADMIN_PATTERN, RequestType.ADMIN),
    (PUBLISH_PATTERN, RequestType.PUBLISH),
    (PARTS_PATTERN, RequestType.PARTS),
)

# Ordered (roles, pattern, methods); the last rule that applies decides.
DEFAULT_ACL = (
    (ALL_ROLES, r".*", READ_METHODS),
    (ALL_ROLES, LOGIN_PATTERN, READ_METHODS),
    (ALL_ROLES, LOGOUT_PATTERN, READ_METHODS),
    ((ROLE_ADMIN,), API_PATTERN, ALL_METHODS),
    ((ROLE_ADMIN,), ADMIN_PATTERN, ALL_METHODS),
    ((ROLE_ADMIN,), PARTS_DATA_PATTERN, ALL_METHODS),
    ((ROLE_ADMIN,), PUBLISH_PATTERN, ALL_METHODS),
)

DEFAULT_TEMPLATE_SRC = "default.html"
ADMIN_OVERLAY_PARTIAL = "adminbar"
PARTIAL_PREFIX = "partial"

# Template data keys set by composition; a region of the same name is not exposed by name.
RESERVED_DATA_KEYS = frozenset({"edit", "preview", "staging", "live", "admin", "page", "regions"})

# Session keys
SESSION_USER_ID = "user_id"
SESSION_EDIT = "edit"
SESSION_STAGING = "staging"
SESSION_LOGIN_TO_URL = "login_to_url"

REMEMBER_COOKIE = "remember_token"
