"""
Domain Errors

Business-rule failures raised by the service layer. Each carries the HTTP
status it maps to; ``main.py`` renders them as
``{"success": false, "error": <name>, "detail": <message>}``.
"""


class POSError(Exception):
    """Base class for all domain errors."""

    status_code = 400
    error = "pos_error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(POSError):
    status_code = 404
    error = "not_found"

    def __init__(self, resource: str, identifier=None):
        if identifier is None:
            detail = f"{resource} not found"
        else:
            detail = f"{resource} {identifier} not found"
        super().__init__(detail)


class ConflictError(POSError):
    """State conflicts: duplicates, double booking, an already active order."""

    status_code = 409
    error = "conflict"


class BusinessRuleError(POSError):
    """The request is well formed but violates an operational rule."""

    status_code = 422
    error = "business_rule"


class PermissionDeniedError(POSError):
    status_code = 403
    error = "permission_denied"
