from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet


class ErrorCode(str, Enum):
    INVALID_PAYLOAD = "ERR_INVALID_PAYLOAD"
    WRONG_DOMAIN_PAYLOAD = "ERR_WRONG_DOMAIN_PAYLOAD"
    INVALID_DOMAIN_PAYLOAD = "ERR_INVALID_DOMAIN_PAYLOAD"
    MANDATORY_HEADER_MISSING = "ERR_MANDATORY_HEADER_MISSING"
    INVALID_HEADERS = "ERR_INVALID_HEADERS"
    INVALID_RECIPIENT = "ERR_INVALID_RECIPIENT"
    REGISTRY_UNAVAILABLE = "ERR_REGISTRY_UNAVAILABLE"
    INVALID_ENCRYPTION = "ERR_INVALID_ENCRYPTION"
    ACCESS_DENIED = "ERR_ACCESS_DENIED"
    AUTH_UNAVAILABLE = "ERR_AUTH_UNAVAILABLE"
    GATEWAY_REJECTED = "ERR_GATEWAY_REJECTED"
    SERVICE_UNAVAILABLE = "ERR_SERVICE_UNAVAILABLE"
    INTERNAL_ERROR = "ERR_INTERNAL"


class PipelineState(str, Enum):
    """Outgoing pipeline states, in execution order."""

    VALIDATING = "validating"
    HEADERS_BUILT = "headers_built"
    KEY_RESOLVED = "key_resolved"
    ENCRYPTED = "encrypted"
    AUTHENTICATED = "authenticated"
    DISPATCHED = "dispatched"
    DONE = "done"


class OperationFamily(str, Enum):
    ACTION = "action"
    ON_ACTION = "on_action"


# ---------------------------------------------------------------------------
# Protocol header names
# ---------------------------------------------------------------------------

SENDER_CODE = "x-hcx-sender_code"
RECIPIENT_CODE = "x-hcx-recipient_code"
API_CALL_ID = "x-hcx-api_call_id"
CORRELATION_ID = "x-hcx-correlation_id"
WORKFLOW_ID = "x-hcx-workflow_id"
TIMESTAMP = "x-hcx-timestamp"
STATUS = "x-hcx-status"

PROTOCOL_HEADER_KEYS: FrozenSet[str] = frozenset(
    {SENDER_CODE, RECIPIENT_CODE, API_CALL_ID, CORRELATION_ID, WORKFLOW_ID, TIMESTAMP, STATUS}
)
JOSE_HEADER_KEYS: FrozenSet[str] = frozenset({"alg", "enc", "kid", "typ", "cty", "zip"})
RESERVED_HEADER_KEYS: FrozenSet[str] = PROTOCOL_HEADER_KEYS | JOSE_HEADER_KEYS

STATUS_VALUES: FrozenSet[str] = frozenset(
    {
        "request.queued",
        "request.dispatched",
        "response.complete",
        "response.partial",
        "response.error",
    }
)


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OperationPolicy:
    """
    Per-operation protocol rules.

    Attributes:
        path: Gateway resource, appended to the protocol base path
        family: ACTION for initiating calls, ON_ACTION for responses
        schema: JSON Schema file (under protocol/schemas) for the payload
    """

    path: str
    family: OperationFamily
    schema: str

    @property
    def is_response(self) -> bool:
        return self.family == OperationFamily.ON_ACTION

    @property
    def requires_status(self) -> bool:
        return self.is_response


class Operation(str, Enum):
    COVERAGE_ELIGIBILITY_CHECK = "coverageeligibility.check"
    COVERAGE_ELIGIBILITY_ON_CHECK = "coverageeligibility.on_check"
    PRE_AUTH_SUBMIT = "preauth.submit"
    PRE_AUTH_ON_SUBMIT = "preauth.on_submit"
    CLAIM_SUBMIT = "claim.submit"
    CLAIM_ON_SUBMIT = "claim.on_submit"
    PREDETERMINATION_SUBMIT = "predetermination.submit"
    PREDETERMINATION_ON_SUBMIT = "predetermination.on_submit"
    PAYMENT_NOTICE_REQUEST = "paymentnotice.request"
    PAYMENT_NOTICE_ON_REQUEST = "paymentnotice.on_request"
    COMMUNICATION_REQUEST = "communication.request"
    COMMUNICATION_ON_REQUEST = "communication.on_request"

    @property
    def policy(self) -> OperationPolicy:
        return OPERATION_POLICIES[self]

    @property
    def path(self) -> str:
        return self.policy.path

    @property
    def is_response(self) -> bool:
        return self.policy.is_response


_A = OperationFamily.ACTION
_ON = OperationFamily.ON_ACTION

OPERATION_POLICIES: Dict[Operation, OperationPolicy] = {
    Operation.COVERAGE_ELIGIBILITY_CHECK: OperationPolicy(
        "/coverageeligibility/check", _A, "coverage_eligibility_request_bundle.json"
    ),
    Operation.COVERAGE_ELIGIBILITY_ON_CHECK: OperationPolicy(
        "/coverageeligibility/on_check", _ON, "coverage_eligibility_response_bundle.json"
    ),
    Operation.PRE_AUTH_SUBMIT: OperationPolicy(
        "/preauth/submit", _A, "preauth_bundle.json"
    ),
    Operation.PRE_AUTH_ON_SUBMIT: OperationPolicy(
        "/preauth/on_submit", _ON, "claim_response_bundle.json"
    ),
    Operation.CLAIM_SUBMIT: OperationPolicy(
        "/claim/submit", _A, "claim_bundle.json"
    ),
    Operation.CLAIM_ON_SUBMIT: OperationPolicy(
        "/claim/on_submit", _ON, "claim_response_bundle.json"
    ),
    Operation.PREDETERMINATION_SUBMIT: OperationPolicy(
        "/predetermination/submit", _A, "predetermination_bundle.json"
    ),
    Operation.PREDETERMINATION_ON_SUBMIT: OperationPolicy(
        "/predetermination/on_submit", _ON, "claim_response_bundle.json"
    ),
    Operation.PAYMENT_NOTICE_REQUEST: OperationPolicy(
        "/paymentnotice/request", _A, "payment_notice_bundle.json"
    ),
    Operation.PAYMENT_NOTICE_ON_REQUEST: OperationPolicy(
        "/paymentnotice/on_request", _ON, "payment_reconciliation_bundle.json"
    ),
    Operation.COMMUNICATION_REQUEST: OperationPolicy(
        "/communication/request", _A, "communication_request_bundle.json"
    ),
    Operation.COMMUNICATION_ON_REQUEST: OperationPolicy(
        "/communication/on_request", _ON, "communication_bundle.json"
    ),
}
