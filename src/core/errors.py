"""Error taxonomy for the gateway.

Every failure a pipeline can produce maps to exactly one of four kinds:

- ``admission``: a rate limit rejected the request (wait out the window)
- ``validation``: the caller sent something unusable (fix and resend)
- ``not_found``: the session expired or never existed (upload again)
- ``upstream``: a collaborator or the counter store failed (may retry)

The HTTP layer renders each error through ``to_dict`` so clients can tell
"explicitly rejected" apart from "could not be processed".
"""

from typing import Any

ADMISSION = "admission"
VALIDATION = "validation"
NOT_FOUND = "not_found"
UPSTREAM = "upstream"


class GatewayError(Exception):
    """Base class for all structured gateway errors."""

    code: str = "GATEWAY_ERROR"
    kind: str = UPSTREAM
    status_code: int = 500

    def __init__(self, message: str, *, data: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.data = data or {}

    @property
    def retryable(self) -> bool:
        return self.kind == UPSTREAM

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.message,
            "code": self.code,
            "retryable": self.retryable,
        }

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


# --- Admission ---

class RateLimitExceeded(GatewayError):
    kind = ADMISSION
    status_code = 429

    def __init__(self, message: str, decision, *, data: dict[str, Any] | None = None) -> None:
        super().__init__(message, data=data)
        self.decision = decision


class GlobalUploadLimitExceeded(RateLimitExceeded):
    code = "GLOBAL_UPLOAD_LIMIT_EXCEEDED"


class ClientUploadLimitExceeded(RateLimitExceeded):
    code = "CLIENT_UPLOAD_LIMIT_EXCEEDED"


class ClientQueryLimitExceeded(RateLimitExceeded):
    code = "CLIENT_QUERY_LIMIT_EXCEEDED"


# --- Validation ---

class InvalidRequest(GatewayError):
    code = "INVALID_REQUEST"
    kind = VALIDATION
    status_code = 400


class PayloadTooLarge(InvalidRequest):
    code = "PAYLOAD_TOO_LARGE"
    status_code = 413


class UnsupportedMediaType(InvalidRequest):
    code = "UNSUPPORTED_MEDIA_TYPE"
    status_code = 415


# --- Not found ---

class SessionExpiredOrInvalid(GatewayError):
    code = "SESSION_EXPIRED_OR_INVALID"
    kind = NOT_FOUND
    status_code = 404


# --- Upstream ---

class ExtractionFailed(GatewayError):
    code = "EXTRACTION_FAILED"
    status_code = 422


class CompletionFailed(GatewayError):
    code = "COMPLETION_FAILED"
    status_code = 502


class StoreUnavailable(GatewayError):
    code = "STORE_UNAVAILABLE"
    status_code = 503
