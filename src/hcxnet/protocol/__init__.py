from .enums import ErrorCode, Operation, OperationFamily, OperationPolicy, PipelineState
from .errors import (
    HCXError,
    ValidationError,
    HeaderError,
    KeyResolutionError,
    EncryptionError,
    AuthError,
    GatewayClientError,
    GatewayTransientError,
    InternalError,
)
from .models import ProtocolHeaders, RecipientKey, AuthToken, ErrorDetail, OutcomeRecord
from .validators import PayloadValidator, FhirBundleValidator

__all__ = [
    "ErrorCode",
    "Operation",
    "OperationFamily",
    "OperationPolicy",
    "PipelineState",
    "HCXError",
    "ValidationError",
    "HeaderError",
    "KeyResolutionError",
    "EncryptionError",
    "AuthError",
    "GatewayClientError",
    "GatewayTransientError",
    "InternalError",
    "ProtocolHeaders",
    "RecipientKey",
    "AuthToken",
    "ErrorDetail",
    "OutcomeRecord",
    "PayloadValidator",
    "FhirBundleValidator",
]
