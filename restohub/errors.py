"""
Application Errors

Services raise these; the handlers registered in main.py render them as
problem JSON ({type, title, status, detail}).
"""

from typing import Optional


class AppError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500
    title = "Internal Server Error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.title
        super().__init__(self.detail)


class BadRequestError(AppError):
    status_code = 400
    title = "Bad Request"


class UnauthorizedError(AppError):
    status_code = 401
    title = "Unauthorized"


class ForbiddenError(AppError):
    status_code = 403
    title = "Forbidden"

    def __init__(self, detail: Optional[str] = None):
        # Authorization failures never explain themselves.
        super().__init__("Forbidden")


class NotFoundError(AppError):
    status_code = 404
    title = "Not Found"


class ConflictError(AppError):
    status_code = 409
    title = "Conflict"


class CartEmptyError(BadRequestError):
    def __init__(self):
        super().__init__("Cart is empty")


class InvalidTransitionError(ConflictError):
    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move order from '{current}' to '{requested}'")


def problem_type(status_code: int) -> str:
    if status_code >= 500:
        return "about:blank"
    return f"https://httpstatuses.com/{status_code}"


def problem_body(status_code: int, title: str, detail: str) -> dict:
    return {
        "type": problem_type(status_code),
        "title": title,
        "status": status_code,
        "detail": detail,
    }
