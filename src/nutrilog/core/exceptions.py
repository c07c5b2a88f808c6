"""Custom exception classes."""

from typing import Any


class NutrilogError(Exception):
    """Base exception for nutrilog errors."""

    def __init__(self, message: str, details: Any = None):
        self.message = message
        self.details = details
        super().__init__(message)


class NotFoundError(NutrilogError):
    """Resource not found."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            message=f"{resource} with id '{resource_id}' not found",
            details={"resource": resource, "id": resource_id},
        )


class JobNotFoundError(NotFoundError):
    """Job not found, or owned by another user."""

    def __init__(self, job_id: str):
        super().__init__("Job", job_id)


class ValidationError(NutrilogError):
    """Invalid caller input."""


class EstimationConfigError(NutrilogError):
    """Estimation backend is unknown or misconfigured."""

    def __init__(self, message: str, provider: str = "unknown"):
        super().__init__(message=message, details={"provider": provider})
        self.provider = provider
