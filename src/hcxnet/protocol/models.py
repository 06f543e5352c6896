"""
Protocol data model for the outgoing pipeline.

Models:
- ProtocolHeaders: header set embedded in the JWE protected header
- RecipientKey: recipient public encryption key (cached by KeyResolver)
- AuthToken: gateway bearer credential (cached by TokenManager)
- ErrorDetail / OutcomeRecord: the pipeline's terminal artifact

All models are frozen; a request's headers and outcome never change after
they are built.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from . import enums
from ..utils.timestamps import epoch_ms


@dataclass(frozen=True)
class ProtocolHeaders:
    sender_code: str
    recipient_code: str
    api_call_id: str
    correlation_id: str
    timestamp: str
    status: Optional[str] = None
    workflow_id: Optional[str] = None
    domain: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # freeze caller-supplied headers
        object.__setattr__(self, "domain", MappingProxyType(dict(self.domain)))

    def to_dict(self) -> Dict[str, Any]:
        """Ordered wire form: protocol headers first, then domain headers."""
        out: Dict[str, Any] = {
            enums.SENDER_CODE: self.sender_code,
            enums.RECIPIENT_CODE: self.recipient_code,
            enums.API_CALL_ID: self.api_call_id,
            enums.CORRELATION_ID: self.correlation_id,
        }
        if self.workflow_id:
            out[enums.WORKFLOW_ID] = self.workflow_id
        out[enums.TIMESTAMP] = self.timestamp
        if self.status is not None:
            out[enums.STATUS] = self.status
        out.update(self.domain)
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ProtocolHeaders":
        domain = {
            k: v for k, v in data.items() if k not in enums.RESERVED_HEADER_KEYS
        }
        return cls(
            sender_code=data.get(enums.SENDER_CODE, ""),
            recipient_code=data.get(enums.RECIPIENT_CODE, ""),
            api_call_id=data.get(enums.API_CALL_ID, ""),
            correlation_id=data.get(enums.CORRELATION_ID, ""),
            timestamp=data.get(enums.TIMESTAMP, ""),
            status=data.get(enums.STATUS),
            workflow_id=data.get(enums.WORKFLOW_ID),
            domain=domain,
        )


@dataclass(frozen=True)
class RecipientKey:
    """
    Public encryption key of a participant, as published by the registry.

    Attributes:
        participant_code: Registry code the key belongs to
        pem: PEM bytes (X.509 certificate or SubjectPublicKeyInfo)
        fetched_at: time.monotonic() at fetch
        expires_at: time.monotonic() after which the key must be refetched
    """

    participant_code: str
    pem: bytes = field(repr=False)
    fetched_at: float = field(default_factory=time.monotonic)
    expires_at: float = float("inf")

    def is_fresh(self, now: Optional[float] = None) -> bool:
        now = time.monotonic() if now is None else now
        return now < self.expires_at


@dataclass(frozen=True)
class AuthToken:
    """Gateway bearer token. ``expires_at`` is epoch seconds."""

    access_token: str = field(repr=False)
    expires_at: float

    def is_valid(self, now: Optional[float] = None, margin: float = 0.0) -> bool:
        now = time.time() if now is None else now
        return self.expires_at - margin > now

    @property
    def authorization(self) -> str:
        return f"Bearer {self.access_token}"


@dataclass(frozen=True)
class ErrorDetail:
    code: str
    message: str
    trace: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"code": self.code, "message": self.message, "trace": self.trace}


@dataclass(frozen=True)
class OutcomeRecord:
    """
    Terminal artifact of one outgoing request.

    Exactly one of (envelope, error) is set. Success records carry the
    request's correlation and api-call identifiers; failure records carry
    the error only.
    """

    timestamp: int
    correlation_id: Optional[str] = None
    api_call_id: Optional[str] = None
    envelope: Optional[str] = field(default=None, repr=False)
    acknowledgement: Mapping[str, Any] = field(default_factory=dict)
    error: Optional[ErrorDetail] = None

    def __post_init__(self):
        if (self.envelope is None) == (self.error is None):
            raise ValueError("OutcomeRecord needs exactly one of envelope or error")
        object.__setattr__(self, "acknowledgement", MappingProxyType(dict(self.acknowledgement)))

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(
        cls,
        *,
        envelope: str,
        correlation_id: str,
        api_call_id: str,
        acknowledgement: Optional[Mapping[str, Any]] = None,
    ) -> "OutcomeRecord":
        return cls(
            timestamp=epoch_ms(),
            correlation_id=correlation_id,
            api_call_id=api_call_id,
            envelope=envelope,
            acknowledgement=acknowledgement or {},
        )

    @classmethod
    def failure(cls, code: str, message: str, trace: str = "") -> "OutcomeRecord":
        return cls(timestamp=epoch_ms(), error=ErrorDetail(code, message, trace))

    def to_dict(self) -> Dict[str, Any]:
        if self.error is not None:
            return {"timestamp": self.timestamp, "error": self.error.to_dict()}
        return {
            "timestamp": self.timestamp,
            "correlation_id": self.correlation_id,
            "api_call_id": self.api_call_id,
        }
