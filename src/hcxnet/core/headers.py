"""
HCX protocol header construction.

Pure validation + construction, no I/O. Every problem found is collected
into a field-level error map before a single HeaderError is raised, so the
caller sees all missing/conflicting fields at once.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from hcxnet.protocol import enums
from hcxnet.protocol.enums import ErrorCode, Operation
from hcxnet.protocol.errors import HeaderError
from hcxnet.protocol.models import ProtocolHeaders
from hcxnet.security.jwe import read_protected_header
from hcxnet.utils.id_gen import generate_uuid, is_blank
from hcxnet.utils.json import json_dumps
from hcxnet.utils.timestamps import now_iso

logger = logging.getLogger(__name__)


class HeaderBuilder:
    def __init__(self, id_factory=generate_uuid, clock=now_iso) -> None:
        self._new_id = id_factory
        self._now = clock

    def build(
        self,
        operation: Operation,
        sender_code: str,
        recipient_code: str = "",
        api_call_id: str = "",
        correlation_id: str = "",
        status: str = "",
        domain_headers: Optional[Mapping[str, Any]] = None,
        prior_envelope: str = "",
    ) -> ProtocolHeaders:
        """
        Build the protocol headers for one outgoing message.

        - api_call_id / correlation_id are generated when blank
        - for response operations, a prior envelope supplies the default
          recipient (its sender), correlation id and workflow id
        - status is required for response operations and dropped otherwise
        - domain headers may not use reserved keys and must be JSON-serializable
        """
        errors: Dict[str, str] = {}
        invalid = False
        workflow_id: Optional[str] = None

        if operation.is_response and not is_blank(prior_envelope):
            prior = self._read_prior(prior_envelope)
            if is_blank(recipient_code):
                recipient_code = prior.get(enums.SENDER_CODE, "")
            if is_blank(correlation_id):
                correlation_id = prior.get(enums.CORRELATION_ID, "")
            workflow_id = prior.get(enums.WORKFLOW_ID) or None

        if is_blank(sender_code):
            errors[enums.SENDER_CODE] = "Sender code is missing"
        if is_blank(recipient_code):
            errors[enums.RECIPIENT_CODE] = "Recipient code is missing"

        if operation.policy.requires_status:
            if is_blank(status):
                errors[enums.STATUS] = f"Status is mandatory for '{operation.value}'"
            elif status not in enums.STATUS_VALUES:
                errors[enums.STATUS] = f"Unknown status '{status}'"
                invalid = True
        elif not is_blank(status):
            logger.debug("Ignoring status '%s' for initiating operation %s", status, operation.value)
            status = ""

        domain = dict(domain_headers or {})
        collisions = sorted(k for k in domain if k in enums.RESERVED_HEADER_KEYS)
        for key in collisions:
            errors[key] = f"Domain header '{key}' collides with a reserved header"
        for key, value in domain.items():
            if key in errors:
                continue
            try:
                json_dumps(value)
            except (TypeError, ValueError):
                errors[key] = f"Domain header '{key}' is not JSON-serializable ({type(value).__name__})"
                invalid = True

        if errors:
            # anything present but wrong outranks a merely missing field
            code = ErrorCode.INVALID_HEADERS if collisions or invalid else ErrorCode.MANDATORY_HEADER_MISSING
            raise HeaderError(
                "Invalid protocol headers: " + ", ".join(errors),
                code,
                details=errors,
            )

        return ProtocolHeaders(
            sender_code=sender_code,
            recipient_code=recipient_code,
            api_call_id=api_call_id if not is_blank(api_call_id) else self._new_id(),
            correlation_id=correlation_id if not is_blank(correlation_id) else self._new_id(),
            timestamp=self._now(),
            status=status or None,
            workflow_id=workflow_id,
            domain=domain,
        )

    @staticmethod
    def _read_prior(prior_envelope: str) -> Dict[str, Any]:
        try:
            return read_protected_header(prior_envelope)
        except ValueError as e:
            raise HeaderError(
                f"Cannot read headers of the prior envelope: {e}",
                ErrorCode.INVALID_HEADERS,
            ) from e
