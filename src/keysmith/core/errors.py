"""
Typed rejections.

Every failure the service reports to a client is an ApiError subclass with a
stable machine-readable ``error`` code and a human-readable ``message``. The
exception handler in keysmith.main renders them as JSON; nothing else about
the failure (stack, store detail) leaves the process.
"""
from typing import Any


class ApiError(Exception):
    status_code: int = 500
    error: str = "internal_error"
    default_message: str = "Internal server error."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.error, "message": self.message}


class InvalidInput(ApiError):
    status_code = 400
    error = "invalid_input"
    default_message = "The request contains invalid data."


class NoOp(ApiError):
    status_code = 400
    error = "no_op"
    default_message = "No valid fields to update."


class NotFound(ApiError):
    status_code = 404
    error = "not_found"
    default_message = "API key not found."


class MissingCredential(ApiError):
    status_code = 401
    error = "missing_credential"
    default_message = (
        "Please provide your API key via Authorization header (Bearer token), "
        "x-api-key header, or 'key' query parameter."
    )


class InvalidCredential(ApiError):
    status_code = 401
    error = "invalid_credential"
    default_message = "The provided API key does not exist. Please check your API key and try again."


class RevokedCredential(ApiError):
    status_code = 401
    error = "revoked_credential"
    default_message = "This API key has been revoked or deactivated. Please use an active API key."


class QuotaExceeded(ApiError):
    status_code = 429
    error = "quota_exceeded"

    def __init__(self, usage: int, limit: int):
        self.usage = usage
        self.limit = limit
        super().__init__(
            f"You have reached your monthly limit of {limit} requests. "
            "Please upgrade your plan or wait for the next billing cycle."
        )

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["usage"] = self.usage
        payload["limit"] = self.limit
        return payload


class BackendUnavailable(ApiError):
    status_code = 500
    error = "backend_unavailable"
    default_message = "Unable to reach the key store. Please try again later."


class ReadmeNotFound(ApiError):
    status_code = 404
    error = "readme_not_found"
    default_message = "README not found."


class SummarizationFailed(ApiError):
    status_code = 502
    error = "summarization_failed"
    default_message = "Failed to summarize README. Please try again later."


class Unauthorized(ApiError):
    status_code = 401
    error = "unauthorized"
    default_message = "Sign in to manage API keys."
