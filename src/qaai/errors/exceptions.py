"""Custom exception classes for the QAAI runner."""


class QAAIError(Exception):
    """Base exception for QAAI."""

    def __init__(self, code: str, message: str, details=None, status_code: int = 500):
        self.code = code
        self.message = message
        self.details = details
        self.status_code = status_code
        super().__init__(message)


class ValidationError(QAAIError):
    """Schema or request validation failure."""

    def __init__(self, message: str, details=None):
        super().__init__("VALIDATION_ERROR", message, details, status_code=400)


class NotFoundError(QAAIError):
    """Resource not found."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            "NOT_FOUND",
            f"{resource} '{resource_id}' not found",
            status_code=404,
        )


class StoreError(QAAIError):
    """The job store could not complete an operation (connection, timeout, lock)."""

    def __init__(self, operation: str, message: str):
        super().__init__(
            "STORE_ERROR",
            f"{operation} failed: {message}",
            details={"operation": operation},
            status_code=503,
        )


class PayloadError(QAAIError):
    """A job payload is missing required keys or carries invalid values."""

    def __init__(self, message: str, details=None):
        super().__init__("PAYLOAD_ERROR", message, details, status_code=400)


class CollaboratorError(QAAIError):
    """An external collaborator (GitHub, LLM, executor, storage) failed."""

    def __init__(self, collaborator: str, message: str, details=None):
        self.collaborator = collaborator
        super().__init__(
            "COLLABORATOR_ERROR",
            f"{collaborator}: {message}",
            details,
            status_code=502,
        )


class ForbiddenError(QAAIError):
    """The request carries credentials that do not grant access."""

    def __init__(self, message: str = "Forbidden"):
        super().__init__("FORBIDDEN", message, status_code=403)
