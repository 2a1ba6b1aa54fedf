"""
Failure kinds surfaced to the request-level error boundary.

Each kind carries the HTTP status it maps to. The classifier and the access
control evaluator never raise; everything else propagates to the handlers
registered in ``create_app``.
"""
from __future__ import annotations


class PageServerError(RuntimeError):
    status_code = 500
    default_message = "Something went wrong."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class BadRequest(PageServerError):
    status_code = 400
    default_message = "The request was malformed."


class Unauthorized(PageServerError):
    status_code = 401
    default_message = "You must login to access this resource."


class NotFound(PageServerError):
    status_code = 404
    default_message = "Page not found."


class MethodNotAllowed(PageServerError):
    status_code = 405
    default_message = "Method not allowed."


class Gone(PageServerError):
    status_code = 410
    default_message = "This page has been removed."


class Internal(PageServerError):
    status_code = 500


class RedirectUnresolved(PageServerError):
    status_code = 501
    default_message = "Redirect target is not configured for this page."


class ServiceUnavailable(PageServerError):
    status_code = 503
    default_message = "The server is starting up. Try again shortly."


class PartLoadError(Internal):
    def __init__(self, module_id: str, message: str | None = None) -> None:
        super().__init__(message or f"Cannot load part module {module_id!r}")
        self.module_id = module_id


class PartRegistrationError(PartLoadError):
    """Loaded object does not provide the part capabilities."""

    def __init__(self, module_id: str, missing: list[str]) -> None:
        super().__init__(module_id, f"Part {module_id!r} is missing: {', '.join(missing)}")
        self.missing = missing
