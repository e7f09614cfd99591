"""
Application errors. Each carries the HTTP status the API boundary answers with;
main.py registers one handler for AppError.
"""
from __future__ import annotations

from typing import Any


class AppError(Exception):
    status_code = 500
    error_code = "APP_ERROR"

    def __init__(self, message: str, *, slot: str | None = None):
        super().__init__(message)
        self.message = message
        self.slot = slot

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"detail": self.message, "error_code": self.error_code}
        if self.slot:
            body["slot"] = self.slot
        return body


class ValidationFailed(AppError):
    status_code = 400
    error_code = "VALIDATION_ERROR"


class DuplicateLoanNumber(AppError):
    status_code = 409
    error_code = "DUPLICATE_LOAN_NUMBER"

    def __init__(self, loan_number: str):
        super().__init__(f"Loan number {loan_number} is already in use")
        self.loan_number = loan_number


class NotFound(AppError):
    status_code = 404
    error_code = "NOT_FOUND"


class Unauthorized(AppError):
    status_code = 401
    error_code = "UNAUTHORIZED"

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class OversizedFile(AppError):
    status_code = 413
    error_code = "OVERSIZED_FILE"


class MalformedPayload(AppError):
    status_code = 400
    error_code = "MALFORMED_PAYLOAD"


class RenderingFailure(AppError):
    """Chromium launch/print or attachment merge failed. No partial PDF is returned."""
    status_code = 500
    error_code = "RENDERING_FAILURE"


class StorageFailure(AppError):
    status_code = 500
    error_code = "STORAGE_FAILURE"
    public_message = "Something went wrong. Please try again later."
