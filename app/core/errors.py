"""
Error taxonomy surfaced to API callers.

Each error carries a stable ``code`` the mobile client switches on and an HTTP
status used by the exception handler in ``app.main``.
"""


class ServiceError(Exception):
    status_code = 500
    code = "internal"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code}


class InvalidArgumentError(ServiceError):
    """Caller input is missing or malformed. Raised before any remote call."""

    status_code = 400
    code = "invalid-argument"


class NotFoundError(ServiceError):
    """The referenced transaction was never created."""

    status_code = 404
    code = "not-found"


class PermissionDeniedError(ServiceError):
    status_code = 403
    code = "permission-denied"


class InternalError(ServiceError):
    """Remote or unexpected failure. The message is deliberately generic."""

    status_code = 500
    code = "internal"
