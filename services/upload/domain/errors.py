from __future__ import annotations


class UploadError(Exception):
    """Base class for every failure an upload can surface to its caller."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class TransportError(UploadError):
    """Connection failure or timeout. Retryable."""


class ProtocolError(UploadError):
    """Non-2xx status or a success response missing its confirmation tag. Retryable."""

    def __init__(self, reason: str, status_code: int | None = None) -> None:
        super().__init__(reason)
        self.status_code = status_code


class AuthError(UploadError):
    pass


class PayloadTooLargeError(UploadError):
    pass


class ServiceError(UploadError):
    def __init__(self, reason: str, status_code: int | None = None) -> None:
        super().__init__(reason)
        self.status_code = status_code


class PartUploadFailed(UploadError):
    def __init__(
        self, part_number: int, attempts: int, last_error: UploadError | None = None
    ) -> None:
        super().__init__(
            f"Failed to upload part {part_number} after {attempts} attempts"
        )
        self.part_number = part_number
        self.attempts = attempts
        self.last_error = last_error


class SessionPlanningError(UploadError):
    pass


class CompletionError(UploadError):
    pass


class UploadCancelled(UploadError):
    pass


RETRYABLE_ERRORS = (TransportError, ProtocolError)
