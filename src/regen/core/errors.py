"""Regen exception hierarchy."""


class RegenError(Exception):
    """Base error for Regen."""


class ServiceUnavailableError(RegenError):
    """Raised when an external collaborator fails (network error or non-2xx)."""

    def __init__(self, service: str, message: str) -> None:
        super().__init__(message)
        self.service = service
        self.message = message


class ValidationError(RegenError):
    """Raised when required input is missing or malformed."""


class ProtectedError(RegenError):
    """Raised when attempting to delete or modify a predefined voice."""


class NotFoundError(RegenError):
    """Raised when an artifact or voice id is unknown."""


class InvalidTransitionError(RegenError):
    """Raised when a stage operation is requested from an illegal state."""

    def __init__(self, operation: str, status: str, message: str | None = None) -> None:
        super().__init__(message or f"{operation} is not allowed from status '{status}'")
        self.operation = operation
        self.status = status


class ArtifactBusyError(RegenError):
    """Raised when an artifact already has a stage operation in flight."""


class StorageError(RegenError):
    """Raised when the key-value backend cannot be read or written."""
