"""
hcxnet Payload Validators
-------------------------

Structural validation of the FHIR domain payload, selected purely by
Operation. Each operation names a JSON Schema stored in
hcxnet/protocol/schemas/*.json; schemas are loaded once and cached.

Full FHIR IG profile validation is an external concern: anything that
implements ``PayloadValidator`` can be plugged into the orchestrator.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from typing import Any, Dict, Protocol, Tuple

from jsonschema import Draft202012Validator

from .enums import ErrorCode, Operation


class PayloadValidator(Protocol):
    """Pluggable validator: ``validate(payload, operation) -> (ok, errors)``."""

    def validate(self, payload: str | bytes, operation: Operation) -> Tuple[bool, Dict[str, str]]:
        ...


# Schema loading utilities

SCHEMA_DIR = os.path.join(os.path.dirname(__file__), "schemas")


def _load_json(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


@lru_cache(maxsize=32)
def _load_schema(name: str) -> Dict[str, Any]:
    """Load and cache a JSON schema by filename."""
    full_path = os.path.join(SCHEMA_DIR, name)
    if not os.path.exists(full_path):
        raise FileNotFoundError(f"Schema file not found: {full_path}")
    return _load_json(full_path)


@lru_cache(maxsize=32)
def _get_validator(name: str) -> Draft202012Validator:
    """Return a compiled JSON Schema validator."""
    return Draft202012Validator(_load_schema(name))


def _add_error(errors: Dict[str, str], code: ErrorCode, message: str) -> None:
    key = code.value
    if key in errors:
        errors[key] = f"{errors[key]}; {message}"
    else:
        errors[key] = message


def _classify(error) -> ErrorCode:
    # const/contains failures mean the bundle carries the wrong resource
    if error.validator in ("const", "contains"):
        return ErrorCode.WRONG_DOMAIN_PAYLOAD
    return ErrorCode.INVALID_DOMAIN_PAYLOAD


class FhirBundleValidator:
    """
    Validates that the payload is a FHIR Bundle carrying the resource the
    operation expects (e.g. a CoverageEligibilityRequest for a
    coverage-eligibility check).

    Errors are returned as an ordered ``{error_code: message}`` mapping;
    several messages for the same code are joined with "; ".
    """

    def validate(self, payload: str | bytes, operation: Operation) -> Tuple[bool, Dict[str, str]]:
        errors: Dict[str, str] = {}

        if payload is None or (isinstance(payload, (str, bytes)) and not payload.strip()):
            _add_error(errors, ErrorCode.INVALID_PAYLOAD, "Payload is empty")
            return False, errors

        try:
            document = json.loads(payload)
        except (TypeError, ValueError) as e:
            _add_error(errors, ErrorCode.INVALID_PAYLOAD, f"Payload is not valid JSON: {e}")
            return False, errors

        if not isinstance(document, dict):
            _add_error(errors, ErrorCode.INVALID_PAYLOAD, "Payload must be a JSON object")
            return False, errors

        validator = _get_validator(operation.policy.schema)
        for e in sorted(validator.iter_errors(document), key=lambda e: [str(p) for p in e.path]):
            location = "/".join(str(p) for p in e.path) or "<root>"
            _add_error(errors, _classify(e), f"{location}: {e.message}")

        return not errors, errors
