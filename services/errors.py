"""
Application error hierarchy.

Services raise these exceptions and let them propagate; the API layer
renders them through a single exception handler registered in main.py.
"""

from typing import Any, Dict, List, Optional


class SolarAppError(Exception):
    """Base class for errors with an error code and HTTP status."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(SolarAppError):
    """Input failed one or more validation checks."""

    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message, details={"validation_errors": errors or []})
        self.errors = errors or []


class NotFoundError(SolarAppError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            f"{resource} not found: {identifier}",
            details={"resource": resource, "id": identifier},
        )


class ConflictError(SolarAppError):
    code = "CONFLICT"
    status_code = 409


class SolarCalculationError(SolarAppError):
    """A calculator could not produce a result from the given inputs."""

    code = "SOLAR_CALCULATION_ERROR"
    status_code = 400


class ExternalServiceError(SolarAppError):
    code = "EXTERNAL_SERVICE_ERROR"
    status_code = 502

    def __init__(self, service: str, message: str):
        super().__init__(
            f"{service}: {message}",
            details={"service": service},
        )
