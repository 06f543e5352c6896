from __future__ import annotations

from typing import Any, Dict, Optional

from .enums import ErrorCode


class HCXError(Exception):
    """
    Base class for every failure the outgoing pipeline knows how to report.

    ``retryable`` marks transient I/O failures; the orchestrator retries
    those up to the configured retry limit and fails fast on everything else.
    """

    default_code: ErrorCode = ErrorCode.INTERNAL_ERROR
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode | str] = None,
        *,
        retryable: Optional[bool] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.retryable = self.default_retryable if retryable is None else retryable
        self.details: Dict[str, Any] = dict(details or {})

    @property
    def code_value(self) -> str:
        return self.code.value if isinstance(self.code, ErrorCode) else str(self.code)


class ValidationError(HCXError):
    """Raised when the domain payload fails the operation's rules."""

    default_code = ErrorCode.INVALID_DOMAIN_PAYLOAD


class HeaderError(HCXError):
    """Raised when a protocol header is missing or conflicting."""

    default_code = ErrorCode.MANDATORY_HEADER_MISSING


class KeyResolutionError(HCXError):
    """Raised when a recipient encryption key cannot be resolved."""

    default_code = ErrorCode.INVALID_RECIPIENT


class EncryptionError(HCXError):
    """Raised when the envelope cannot be produced."""

    default_code = ErrorCode.INVALID_ENCRYPTION


class AuthError(HCXError):
    """Raised when a gateway token cannot be obtained."""

    default_code = ErrorCode.ACCESS_DENIED


class GatewayClientError(HCXError):
    """4xx from the gateway. Never retried."""

    default_code = ErrorCode.GATEWAY_REJECTED

    def __init__(self, message: str, code=None, *, status_code: Optional[int] = None, **kwargs):
        super().__init__(message, code, **kwargs)
        self.status_code = status_code
        self.retryable = False


class GatewayTransientError(HCXError):
    """5xx, timeout or connection failure talking to the gateway."""

    default_code = ErrorCode.SERVICE_UNAVAILABLE
    default_retryable = True

    def __init__(self, message: str, code=None, *, status_code: Optional[int] = None, **kwargs):
        super().__init__(message, code, **kwargs)
        self.status_code = status_code


class InternalError(HCXError):
    """Unexpected fault. Always propagates to the caller."""

    default_code = ErrorCode.INTERNAL_ERROR
