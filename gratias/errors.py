"""
Error taxonomy shared by services and routes.

Every failure surfaced to a client carries a stable machine-readable code,
a human message and optional free-text details.
"""

import logging
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    # Validation (400)
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_DOMAIN = "INVALID_DOMAIN"
    INVALID_SITE_TYPE = "INVALID_SITE_TYPE"
    SITE_NAME_TOO_LONG = "SITE_NAME_TOO_LONG"
    MISSING_FIELDS = "MISSING_FIELDS"

    # Conflicts (409)
    SITE_NAME_EXISTS = "SITE_NAME_EXISTS"
    DOMAIN_ALREADY_EXISTS = "DOMAIN_ALREADY_EXISTS"

    # Admission denied (403)
    SITE_QUOTA_EXCEEDED = "SITE_QUOTA_EXCEEDED"
    FORBIDDEN = "FORBIDDEN"

    # Authentication (401)
    UNAUTHORIZED = "UNAUTHORIZED"

    # Server (500)
    SERVER_ERROR = "SERVER_ERROR"


# code -> (http status, message)
ERROR_DEFINITIONS: Dict[ErrorCode, tuple[int, str]] = {
    ErrorCode.INVALID_INPUT: (400, "Invalid input data"),
    ErrorCode.INVALID_DOMAIN: (400, "Invalid domain format"),
    ErrorCode.INVALID_SITE_TYPE: (400, "Invalid site type"),
    ErrorCode.SITE_NAME_TOO_LONG: (400, "Site name must not exceed 15 characters"),
    ErrorCode.MISSING_FIELDS: (400, "Required fields are missing"),
    ErrorCode.SITE_NAME_EXISTS: (409, "A site with this name already exists"),
    ErrorCode.DOMAIN_ALREADY_EXISTS: (409, "This domain is already in use"),
    ErrorCode.SITE_QUOTA_EXCEEDED: (403, "Site quota reached for this account"),
    ErrorCode.FORBIDDEN: (403, "Access denied"),
    ErrorCode.UNAUTHORIZED: (401, "Unauthorized"),
    ErrorCode.SERVER_ERROR: (500, "Internal server error"),
}


def _definition(code: Any) -> tuple[int, str]:
    try:
        return ERROR_DEFINITIONS[ErrorCode(code)]
    except ValueError:
        return ERROR_DEFINITIONS[ErrorCode.SERVER_ERROR]


class ServiceError(Exception):
    """Raised by services for any failure that maps to a client-visible error code."""

    def __init__(self, code: ErrorCode, details: Optional[str] = None):
        self.code = ErrorCode(code)
        self.details = details
        self.http_status, self.message = _definition(self.code)
        super().__init__(f"{self.code.value}: {details or self.message}")


class TokenVerificationError(Exception):
    """Raised by the identity provider adapter when a bearer token is rejected."""

    def __init__(self, code: str, message: str, http_status: int = 401):
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


def create_error_response(code: Any, details: Optional[str] = None) -> Dict[str, Any]:
    """Build the standard error body. Unknown codes fall back to the server error message."""
    _, message = _definition(code)
    error: Dict[str, Any] = {"code": code.value if isinstance(code, ErrorCode) else code, "message": message}
    if details:
        error["details"] = details
    return {"success": False, "error": error}


def server_error(error: Exception, operation: str) -> ServiceError:
    """
    Log an unexpected failure and convert it to SERVER_ERROR.
    Internal detail stays in the log, never in the response.
    """
    logger.exception("Unexpected error during %s: %s", operation, error)
    return ServiceError(ErrorCode.SERVER_ERROR)
