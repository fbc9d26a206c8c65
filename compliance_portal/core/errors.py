"""
Error taxonomy shared by services and routers.

Services raise these; the handler installed in main.py renders them as
`{"detail": ...}` with the matching status code.
"""
from fastapi import Request
from fastapi.responses import JSONResponse


class ComplianceError(Exception):
    status_code = 500
    default_detail = "Internal error"

    def __init__(self, detail: str = ""):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class AuthenticationError(ComplianceError):
    """Missing, invalid, expired or revoked session."""
    status_code = 401
    default_detail = "Invalid or expired session"


class PermissionDenied(ComplianceError):
    """The authorization engine refused the action."""
    status_code = 403
    default_detail = "Access denied"


class NotFound(ComplianceError):
    status_code = 404
    default_detail = "Not found"


class InvalidTransition(ComplianceError):
    """Document is no longer pending, or a concurrent reviewer got there first."""
    status_code = 409
    default_detail = "Invalid status transition"


class Conflict(ComplianceError):
    status_code = 409
    default_detail = "Conflict"


class ValidationFailed(ComplianceError):
    """User-correctable input problem caught before any store call."""
    status_code = 422
    default_detail = "Validation failed"


class StoreError(ComplianceError):
    """Opaque relational store or object storage failure."""
    status_code = 502
    default_detail = "Storage backend error"


async def compliance_error_handler(request: Request, exc: ComplianceError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=headers)
