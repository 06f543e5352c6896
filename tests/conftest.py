"""
Shared fixtures for hcxnet tests.

HTTP collaborators are replaced with in-memory fakes injected through
constructors; RSA keys are generated once per test session.
"""

import base64
import datetime as dt
import json
import threading
import time

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.x509.oid import NameOID

from hcxnet.core.keys import KeyResolver
from hcxnet.core.orchestrator import OutgoingRequest
from hcxnet.core.retry import RetryPolicy
from hcxnet.core.tokens import TokenManager
from hcxnet.protocol.enums import ErrorCode
from hcxnet.protocol.errors import AuthError, KeyResolutionError
from hcxnet.protocol.models import AuthToken
from hcxnet.transport.gateway import GatewayDispatcher

SENDER = "provider-01"
RECIPIENT = "R1"
BASE_URL = "http://hcx.test/api/v0.7"


# ===========================================================================
# Keys and envelopes
# ===========================================================================


@pytest.fixture(scope="session")
def private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def public_pem(private_key):
    return private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


@pytest.fixture(scope="session")
def certificate_pem(private_key):
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "hcx-test-recipient")])
    now = dt.datetime.now(dt.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - dt.timedelta(days=1))
        .not_valid_after(now + dt.timedelta(days=30))
        .sign(private_key, hashes.SHA256())
    )
    return cert.public_bytes(serialization.Encoding.PEM)


def b64url_decode(data):
    return base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))


def decrypt_envelope(compact, private_key):
    """Test-side JWE decryption: returns (protected header, plaintext bytes)."""
    protected, encrypted_key, iv, ciphertext, tag = compact.split(".")
    header = json.loads(b64url_decode(protected))
    hash_cls = hashes.SHA1 if header["alg"] == "RSA-OAEP" else hashes.SHA256
    cek = private_key.decrypt(
        b64url_decode(encrypted_key),
        padding.OAEP(mgf=padding.MGF1(algorithm=hash_cls()), algorithm=hash_cls(), label=None),
    )
    plaintext = AESGCM(cek).decrypt(
        b64url_decode(iv),
        b64url_decode(ciphertext) + b64url_decode(tag),
        protected.encode("ascii"),
    )
    return header, plaintext


# ===========================================================================
# Payloads
# ===========================================================================


def make_bundle(resource_type="CoverageEligibilityRequest", **resource_fields):
    resource = {"resourceType": resource_type, "id": "res-1", "status": "active"}
    resource.update(resource_fields)
    return json.dumps(
        {
            "resourceType": "Bundle",
            "id": "bundle-1",
            "type": "collection",
            "timestamp": "2024-01-01T00:00:00Z",
            "entry": [
                {"fullUrl": f"{resource_type}/res-1", "resource": resource},
                {"fullUrl": "Patient/p-1", "resource": {"resourceType": "Patient", "id": "p-1"}},
            ],
        }
    )


@pytest.fixture
def eligibility_payload():
    return make_bundle("CoverageEligibilityRequest")


@pytest.fixture
def eligibility_response_payload():
    return make_bundle("CoverageEligibilityResponse")


# ===========================================================================
# Fake collaborators
# ===========================================================================


class FakeRegistry:
    """
    In-memory participant registry.

    ``failures`` leading calls raise a retryable "unreachable" error;
    ``gate`` (a threading.Event) holds every call until it is set.
    """

    def __init__(self, pem, known=None, failures=0):
        self.pem = pem
        self.known = known
        self.failures = failures
        self.gate = None
        self.calls = 0
        self._lock = threading.Lock()

    def lookup_encryption_key(self, participant_code):
        with self._lock:
            self.calls += 1
            n = self.calls
        if self.gate is not None:
            self.gate.wait(5)
        if n <= self.failures:
            raise KeyResolutionError(
                "Registry unreachable",
                ErrorCode.REGISTRY_UNAVAILABLE,
                retryable=True,
            )
        if self.known is not None and participant_code not in self.known:
            raise KeyResolutionError(f"Participant '{participant_code}' is not registered")
        return self.pem


class FakeTokenSource:
    def __init__(self, lifetime=3600.0, fail=None):
        self.lifetime = lifetime
        self.fail = fail
        self.gate = None
        self.calls = 0
        self._lock = threading.Lock()

    def fetch_token(self):
        with self._lock:
            self.calls += 1
            n = self.calls
        if self.gate is not None:
            self.gate.wait(5)
        if self.fail is not None:
            raise self.fail
        return AuthToken(access_token=f"token-{n}", expires_at=time.time() + self.lifetime)


class FakeResponse:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        if body is None:
            self.content = b""
        elif isinstance(body, bytes):
            self.content = body
        else:
            self.content = json.dumps(body).encode("utf-8")

    @property
    def text(self):
        return self.content.decode("utf-8")

    def json(self):
        return json.loads(self.content)


class FakeSession:
    """
    Stand-in for requests.Session.

    ``handler(method, url, kwargs)`` returns a FakeResponse or raises; a
    list of responses/exceptions is consumed in order instead.
    """

    def __init__(self, handler=None):
        self.handler = handler or (lambda method, url, kwargs: FakeResponse(202, {}))
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if isinstance(self.handler, list):
            result = self.handler.pop(0)
        else:
            result = self.handler(method, url, kwargs)
        if isinstance(result, Exception):
            raise result
        return result

    def post(self, url, **kwargs):
        return self.request("POST", url, **kwargs)

    def get(self, url, **kwargs):
        return self.request("GET", url, **kwargs)


def gateway_ack(method, url, kwargs):
    body = json.loads(kwargs["data"])
    return FakeResponse(202, {"timestamp": 1700000000000, "payload_size": len(body["payload"])})


@pytest.fixture
def registry(public_pem):
    return FakeRegistry(public_pem)


@pytest.fixture
def token_source():
    return FakeTokenSource()


@pytest.fixture
def gateway_session():
    return FakeSession(gateway_ack)


@pytest.fixture
def make_outgoing(registry, token_source, gateway_session):
    """Factory for an OutgoingRequest wired to the fakes above."""

    def _make(retry=None, **overrides):
        token_manager = overrides.pop("token_manager", None) or TokenManager(token_source)
        kwargs = dict(
            participant_code=SENDER,
            key_resolver=KeyResolver(registry, ttl_seconds=600),
            token_manager=token_manager,
            dispatcher=GatewayDispatcher(
                BASE_URL,
                session=gateway_session,
                on_unauthorized=token_manager.invalidate,
            ),
            retry_policy=retry or RetryPolicy.none(),
        )
        kwargs.update(overrides)
        return OutgoingRequest(**kwargs)

    return _make
