"""
Error Codes and Exceptions.

Every failure that can reach a caller is a GatewayError carrying a
machine-readable code. The HTTP layer maps codes to status codes with
status_for(); anything unmapped is a 500.

Taxonomy:
    - ValidationError: Empty/oversized input or a missing field (400)
    - AuthRequiredError: Operation needs an authenticated user (401)
    - CredentialError: Missing or rejected provider credential
    - ProviderError: Non-success provider response or unusable output
    - ParseError: Structured output could not be decoded (a ProviderError)
    - ProviderTimeoutError: Primary provider exceeded its time budget

Fallback rules live in the orchestrator: the fast provider's errors and
timeouts are never surfaced, deep-provider and speech errors are surfaced
once retries and fallbacks are exhausted.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class ErrorCode:
    """Standardized error codes for API responses."""
    INVALID_INPUT = "INVALID_INPUT"             # Bad request data
    TEXT_REQUIRED = "TEXT_REQUIRED"             # Missing/blank input text
    TEXT_TOO_LONG = "TEXT_TOO_LONG"             # Input over the size limit
    FIELD_REQUIRED = "FIELD_REQUIRED"           # Other required field missing
    UNKNOWN_ACTION = "UNKNOWN_ACTION"           # Unsupported gateway action
    UNKNOWN_MODEL = "UNKNOWN_MODEL"             # Model name not recognised
    AUTH_REQUIRED = "AUTH_REQUIRED"             # Login required
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"   # Wrong HTTP method
    CREDENTIAL_MISSING = "CREDENTIAL_MISSING"   # No provider key configured
    CREDENTIAL_INVALID = "CREDENTIAL_INVALID"   # Provider rejected the key
    RATE_LIMITED = "RATE_LIMITED"               # Provider returned 429
    PROVIDER_FAILED = "PROVIDER_FAILED"         # Other provider failure
    PARSE_FAILED = "PARSE_FAILED"               # Undecodable provider output
    TIMEOUT = "TIMEOUT"                         # Provider time budget exceeded
    EMPTY_AUDIO = "EMPTY_AUDIO"                 # Speech call returned nothing
    INTERNAL_ERROR = "INTERNAL_ERROR"           # Unexpected error


class GatewayError(Exception):
    """
    Base exception for gateway errors.

    Attributes:
        message: Human-readable error message.
        code: Error code from ErrorCode class.
        details: Optional dictionary with additional context.
    """
    def __init__(self, message: str, code: str = ErrorCode.INTERNAL_ERROR, details: Optional[Dict] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON error body returned by the API."""
        result: Dict[str, Any] = {
            "error": self.message,
            "code": self.code,
        }
        if self.details:
            result["details"] = self.details
        return result


class ValidationError(GatewayError):
    """Raised when a request is rejected before any provider call."""
    def __init__(self, message: str, code: str = ErrorCode.INVALID_INPUT, details: Optional[Dict] = None):
        super().__init__(message, code, details)


class AuthRequiredError(GatewayError):
    def __init__(self, message: str = "Login required", details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.AUTH_REQUIRED, details)


class ProviderError(GatewayError):
    """
    Raised when a provider call fails.

    Attributes:
        provider: Provider name ("openai", "google").
        kind: Failure kind ("rate_limited", "provider_failure", ...).
        status_code: HTTP status returned by the provider, when known.
    """
    def __init__(
        self,
        message: str,
        provider: str,
        kind: str = "provider_failure",
        status_code: Optional[int] = None,
        code: Optional[str] = None,
    ):
        self.provider = provider
        self.kind = kind
        self.status_code = status_code
        if code is None:
            code = ErrorCode.RATE_LIMITED if kind == "rate_limited" else ErrorCode.PROVIDER_FAILED
        details: Dict[str, Any] = {"provider": provider, "kind": kind}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, code, details)


class CredentialError(ProviderError):
    """Raised when a provider credential is missing or rejected (not retried)."""
    def __init__(self, message: str, provider: str, kind: str = "missing_credential", status_code: Optional[int] = None):
        code = ErrorCode.CREDENTIAL_INVALID if kind == "invalid_credential" else ErrorCode.CREDENTIAL_MISSING
        super().__init__(message, provider, kind, status_code, code=code)


class ParseError(ProviderError):
    """Raised when structured output survives neither decode stage."""
    def __init__(self, message: str, provider: str):
        super().__init__(message, provider, kind="parse_failure", code=ErrorCode.PARSE_FAILED)


class ProviderTimeoutError(ProviderError):
    def __init__(self, message: str, provider: str, timeout_s: float):
        self.timeout_s = timeout_s
        super().__init__(message, provider, kind="timeout", code=ErrorCode.TIMEOUT)


_STATUS_MAP = {
    ErrorCode.INVALID_INPUT: 400,
    ErrorCode.TEXT_REQUIRED: 400,
    ErrorCode.TEXT_TOO_LONG: 400,
    ErrorCode.FIELD_REQUIRED: 400,
    ErrorCode.UNKNOWN_ACTION: 400,
    ErrorCode.UNKNOWN_MODEL: 400,
    ErrorCode.AUTH_REQUIRED: 401,
    ErrorCode.METHOD_NOT_ALLOWED: 405,
}


def status_for(error: GatewayError) -> int:
    """HTTP status code for an error; provider and server failures are 500."""
    return _STATUS_MAP.get(error.code, 500)


def is_retryable(exc: BaseException) -> bool:
    """Retry predicate: credential and validation failures never succeed on retry."""
    return not isinstance(exc, (CredentialError, ValidationError))
