"""Application error taxonomy.

Every error a handler can surface maps to an HTTP status and a stable,
machine-readable ``code`` that ends up in the ``{"error": code}`` body.
"""

from fastapi import status


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "internal"

    def __init__(self, code: str | None = None, detail: str | None = None) -> None:
        if code is not None:
            self.code = code
        self.detail = detail or self.code
        super().__init__(self.detail)


class InvalidInput(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_input"


class InvalidGameRecord(InvalidInput):
    code = "invalid_payload"


class PayloadTooLarge(AppError):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    code = "payload_too_large"


class DuplicateUsername(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "username_taken"


class InvalidCredentials(AppError):
    # same code and body for unknown user and wrong password
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "invalid_credentials"


class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "not_authenticated"


class Unavailable(AppError):
    """Storage backend unreachable or its pool exhausted; safe to retry."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "unavailable"
    retry_after = 1


class Internal(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "internal"
