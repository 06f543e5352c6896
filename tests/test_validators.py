"""
Tests for the FHIR bundle payload validator.
"""

import json

import pytest

from hcxnet.protocol.enums import ErrorCode, Operation
from hcxnet.protocol.validators import FhirBundleValidator

from conftest import make_bundle


@pytest.fixture
def validator():
    return FhirBundleValidator()


class TestFhirBundleValidator:
    def test_valid_eligibility_bundle(self, validator, eligibility_payload):
        ok, errors = validator.validate(eligibility_payload, Operation.COVERAGE_ELIGIBILITY_CHECK)
        assert ok
        assert errors == {}

    def test_bytes_payload(self, validator, eligibility_payload):
        ok, _ = validator.validate(eligibility_payload.encode("utf-8"), Operation.COVERAGE_ELIGIBILITY_CHECK)
        assert ok

    @pytest.mark.parametrize("payload", ["", "   ", None])
    def test_empty_payload_never_passes(self, validator, payload):
        ok, errors = validator.validate(payload, Operation.CLAIM_SUBMIT)
        assert not ok
        assert ErrorCode.INVALID_PAYLOAD.value in errors

    def test_malformed_json(self, validator):
        ok, errors = validator.validate("{not json", Operation.CLAIM_SUBMIT)
        assert not ok
        assert "not valid JSON" in errors[ErrorCode.INVALID_PAYLOAD.value]

    def test_json_array_rejected(self, validator):
        ok, errors = validator.validate("[1, 2]", Operation.CLAIM_SUBMIT)
        assert not ok
        assert list(errors) == [ErrorCode.INVALID_PAYLOAD.value]

    def test_wrong_resource_for_operation(self, validator):
        payload = make_bundle("ClaimResponse")
        ok, errors = validator.validate(payload, Operation.COVERAGE_ELIGIBILITY_CHECK)
        assert not ok
        assert ErrorCode.WRONG_DOMAIN_PAYLOAD.value in errors

    def test_not_a_bundle(self, validator):
        payload = json.dumps({"resourceType": "Patient", "type": "collection", "entry": [{"resource": {"resourceType": "Patient"}}]})
        ok, errors = validator.validate(payload, Operation.COVERAGE_ELIGIBILITY_CHECK)
        assert not ok
        assert ErrorCode.WRONG_DOMAIN_PAYLOAD.value in errors

    def test_missing_entries(self, validator):
        payload = json.dumps({"resourceType": "Bundle", "type": "collection", "entry": []})
        ok, errors = validator.validate(payload, Operation.COVERAGE_ELIGIBILITY_CHECK)
        assert not ok
        assert ErrorCode.INVALID_DOMAIN_PAYLOAD.value in errors

    def test_rules_selected_by_operation(self, validator):
        """The same Claim bundle is a claim, not a pre-authorization."""
        claim = make_bundle("Claim", use="claim")
        assert validator.validate(claim, Operation.CLAIM_SUBMIT)[0]
        assert not validator.validate(claim, Operation.PRE_AUTH_SUBMIT)[0]
        assert not validator.validate(claim, Operation.PREDETERMINATION_SUBMIT)[0]

        preauth = make_bundle("Claim", use="preauthorization")
        assert validator.validate(preauth, Operation.PRE_AUTH_SUBMIT)[0]

    def test_errors_keep_order_and_merge_messages(self, validator):
        payload = json.dumps({"resourceType": "Bundle", "type": "weird"})
        ok, errors = validator.validate(payload, Operation.CLAIM_SUBMIT)
        assert not ok
        assert ErrorCode.INVALID_DOMAIN_PAYLOAD.value in errors
        # missing entry + bad type are both reported under one code
        assert ";" in errors[ErrorCode.INVALID_DOMAIN_PAYLOAD.value]

    @pytest.mark.parametrize("operation", list(Operation))
    def test_every_operation_has_a_schema(self, validator, operation):
        ok, errors = validator.validate("{}", operation)
        assert not ok
        assert errors
