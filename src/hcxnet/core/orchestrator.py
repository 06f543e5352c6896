"""
Outgoing request pipeline.

    VALIDATING -> HEADERS_BUILT -> KEY_RESOLVED -> ENCRYPTED
               -> AUTHENTICATED -> DISPATCHED -> DONE

Steps run strictly in that order. The first failing step ends the request:
its error becomes the failure OutcomeRecord and no later step runs. Only
InternalError and errors outside the HCXError taxonomy escape ``process``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Tuple

from hcxnet.protocol.enums import Operation, PipelineState
from hcxnet.protocol.errors import HCXError, InternalError, ValidationError
from hcxnet.protocol.models import OutcomeRecord, ProtocolHeaders, RecipientKey
from hcxnet.protocol.validators import FhirBundleValidator, PayloadValidator
from hcxnet.security.jwe import JWEEncryptor
from hcxnet.transport.gateway import GatewayDispatcher
from hcxnet.utils.json import json_dumps

from .headers import HeaderBuilder
from .keys import KeyResolver
from .retry import RetryPolicy
from .tokens import TokenManager

logger = logging.getLogger(__name__)


class OutgoingRequest:
    """
    Builds, encrypts and sends one HCX request or response per ``process``
    call. Instances hold no per-request state and can be shared between
    threads; the key and token caches are the only shared mutable state.
    """

    def __init__(
        self,
        *,
        participant_code: str,
        key_resolver: KeyResolver,
        token_manager: TokenManager,
        dispatcher: GatewayDispatcher,
        encryptor: Optional[JWEEncryptor] = None,
        validator: Optional[PayloadValidator] = None,
        header_builder: Optional[HeaderBuilder] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ) -> None:
        self.participant_code = participant_code
        self._keys = key_resolver
        self._tokens = token_manager
        self._dispatcher = dispatcher
        self._encryptor = encryptor or JWEEncryptor()
        self._validator = validator or FhirBundleValidator()
        self._headers = header_builder or HeaderBuilder()
        self._retry = retry_policy or RetryPolicy()

    # ===========================================================
    # Public API
    # ===========================================================
    def process(
        self,
        payload: str | bytes,
        operation: Operation,
        recipient_code: str = "",
        api_call_id: str = "",
        correlation_id: str = "",
        prior_envelope: str = "",
        on_action_status: str = "",
        domain_headers: Optional[Mapping[str, Any]] = None,
    ) -> Tuple[bool, OutcomeRecord]:
        """
        Run the full outgoing pipeline.

        Returns ``(True, outcome)`` with the envelope and the request's
        correlation/api-call ids, or ``(False, outcome)`` carrying
        ``{code, message, trace}`` of the first failing step.
        """
        state = PipelineState.VALIDATING
        headers: Optional[ProtocolHeaders] = None

        try:
            ok, errors = self.validate_payload(payload, operation)
            if not ok:
                first_code = next(iter(errors))
                raise ValidationError(
                    "; ".join(errors.values()),
                    first_code,
                    details=errors,
                )

            headers = self.create_headers(
                operation,
                recipient_code=recipient_code,
                api_call_id=api_call_id,
                correlation_id=correlation_id,
                prior_envelope=prior_envelope,
                on_action_status=on_action_status,
                domain_headers=domain_headers,
            )
            state = self._advance(PipelineState.HEADERS_BUILT, headers)

            key = self._resolve_key(headers.recipient_code)
            state = self._advance(PipelineState.KEY_RESOLVED, headers)

            envelope = self._encryptor.encrypt(headers.to_dict(), payload, key)
            state = self._advance(PipelineState.ENCRYPTED, headers)

            token = self._retry.call(self._tokens.get_token)
            state = self._advance(PipelineState.AUTHENTICATED, headers)

            ack = self._retry.call(lambda: self._dispatcher.dispatch(envelope, operation, token))
            state = self._advance(PipelineState.DISPATCHED, headers)

        except InternalError:
            raise
        except HCXError as e:
            logger.warning(
                "Outgoing %s failed after %s: %s (%s) correlation_id=%s",
                operation.value,
                state.value,
                e.code_value,
                e.message,
                headers.correlation_id if headers else "-",
            )
            return False, OutcomeRecord.failure(e.code_value, e.message, self._trace(state, e))

        outcome = OutcomeRecord.success(
            envelope=envelope,
            correlation_id=headers.correlation_id,
            api_call_id=headers.api_call_id,
            acknowledgement=ack,
        )
        self._advance(PipelineState.DONE, headers)
        return True, outcome

    def validate_payload(
        self, payload: str | bytes, operation: Operation
    ) -> Tuple[bool, Dict[str, str]]:
        ok, errors = self._validator.validate(payload, operation)
        if not ok and not errors:
            # a failing validator must explain itself
            errors = {"ERR_INVALID_DOMAIN_PAYLOAD": "Payload failed validation"}
        return ok, dict(errors)

    def create_headers(
        self,
        operation: Operation,
        recipient_code: str = "",
        api_call_id: str = "",
        correlation_id: str = "",
        prior_envelope: str = "",
        on_action_status: str = "",
        domain_headers: Optional[Mapping[str, Any]] = None,
    ) -> ProtocolHeaders:
        return self._headers.build(
            operation,
            sender_code=self.participant_code,
            recipient_code=recipient_code,
            api_call_id=api_call_id,
            correlation_id=correlation_id,
            status=on_action_status,
            domain_headers=domain_headers,
            prior_envelope=prior_envelope,
        )

    def encrypt_payload(self, headers: ProtocolHeaders, payload: str | bytes) -> str:
        """Resolve the recipient key and produce the compact JWE."""
        key = self._resolve_key(headers.recipient_code)
        return self._encryptor.encrypt(headers.to_dict(), payload, key)

    def dispatch(self, envelope: str, operation: Operation) -> Dict[str, Any]:
        """Authenticate and send an already-built envelope."""
        token = self._retry.call(self._tokens.get_token)
        return self._retry.call(lambda: self._dispatcher.dispatch(envelope, operation, token))

    # ===========================================================
    # Helpers
    # ===========================================================
    def _resolve_key(self, recipient_code: str) -> RecipientKey:
        return self._retry.call(lambda: self._keys.resolve(recipient_code))

    @staticmethod
    def _advance(state: PipelineState, headers: Optional[ProtocolHeaders]) -> PipelineState:
        logger.debug(
            "pipeline -> %s correlation_id=%s",
            state.value,
            headers.correlation_id if headers else "-",
        )
        return state

    @staticmethod
    def _trace(state: PipelineState, error: HCXError) -> str:
        trace: Dict[str, Any] = {"state": state.value, "error": type(error).__name__}
        trace.update(error.details)
        return json_dumps(trace)
