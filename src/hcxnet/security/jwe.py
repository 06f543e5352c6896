"""
RFC7516 JWE Compact Serialization
---------------------------------

Produces the five-part envelope sent to the HCX gateway:

    BASE64URL(protected) . BASE64URL(encrypted CEK) . BASE64URL(IV)
        . BASE64URL(ciphertext) . BASE64URL(tag)

- Protected header = protocol headers + "alg"/"enc"
- Fresh 256-bit (or 128/192-bit) content key and 96-bit IV per call
- Content key wrapped with the recipient RSA public key (RSA-OAEP)
- Payload encrypted with AES-GCM, protected header bound as AAD

The recipient key is the PEM published by the participant registry,
either an X.509 certificate or a bare public key.
"""

from __future__ import annotations

import base64
import binascii
import os
from typing import Any, Dict, Mapping

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from hcxnet.protocol.errors import EncryptionError
from hcxnet.protocol.models import RecipientKey
from hcxnet.utils.json import json_dumps, json_loads

# key-wrapping algorithms -> OAEP hash
KEY_WRAP_ALGORITHMS = {
    "RSA-OAEP": hashes.SHA1,
    "RSA-OAEP-256": hashes.SHA256,
}

# content-encryption algorithms -> key length in bytes
CONTENT_ALGORITHMS = {
    "A128GCM": 16,
    "A192GCM": 24,
    "A256GCM": 32,
}

IV_LENGTH = 12
TAG_LENGTH = 16


def b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def b64url_decode(data: str) -> bytes:
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def load_public_key(pem: bytes | str) -> rsa.RSAPublicKey:
    """Load an RSA public key from a PEM certificate or public key."""
    if isinstance(pem, str):
        pem = pem.encode("utf-8")

    try:
        if b"BEGIN CERTIFICATE" in pem:
            key = x509.load_pem_x509_certificate(pem).public_key()
        else:
            key = serialization.load_pem_public_key(pem)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise EncryptionError(f"Recipient key is malformed: {e}") from e

    if not isinstance(key, rsa.RSAPublicKey):
        raise EncryptionError(
            f"Recipient key must be RSA, got {type(key).__name__}"
        )
    return key


def read_protected_header(compact: str) -> Dict[str, Any]:
    """
    Decode the protected header of a compact JWE without decrypting it.

    Raises ValueError when the value is not a five-part compact JWE with a
    JSON object header.
    """
    parts = (compact or "").strip().split(".")
    if len(parts) != 5:
        raise ValueError(f"Expected 5 compact JWE parts, got {len(parts)}")
    try:
        header = json_loads(b64url_decode(parts[0]).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise ValueError(f"Protected header is not base64url JSON: {e}") from e
    if not isinstance(header, dict):
        raise ValueError("Protected header must be a JSON object")
    return header


class JWEEncryptor:
    """
    Envelope encryptor.

    Stateless apart from the algorithm pair, so a single instance is safe to
    share between threads.
    """

    def __init__(self, alg: str = "RSA-OAEP", enc: str = "A256GCM"):
        self.alg = alg
        self.enc = enc

    def encrypt(
        self,
        headers: Mapping[str, Any],
        plaintext: str | bytes,
        recipient_key: RecipientKey,
    ) -> str:
        hash_cls = KEY_WRAP_ALGORITHMS.get(self.alg)
        if hash_cls is None:
            raise EncryptionError(f"Unsupported key-wrapping algorithm '{self.alg}'")
        key_length = CONTENT_ALGORITHMS.get(self.enc)
        if key_length is None:
            raise EncryptionError(f"Unsupported content-encryption algorithm '{self.enc}'")

        public_key = load_public_key(recipient_key.pem)

        if isinstance(plaintext, str):
            plaintext = plaintext.encode("utf-8")

        protected = {"alg": self.alg, "enc": self.enc}
        protected.update(headers)
        try:
            encoded_header = b64url_encode(json_dumps(protected).encode("utf-8"))
        except (TypeError, ValueError) as e:
            raise EncryptionError(f"Protected header is not JSON-serializable: {e}") from e

        cek = os.urandom(key_length)
        iv = os.urandom(IV_LENGTH)

        try:
            wrapped_cek = public_key.encrypt(
                cek,
                padding.OAEP(
                    mgf=padding.MGF1(algorithm=hash_cls()),
                    algorithm=hash_cls(),
                    label=None,
                ),
            )
        except ValueError as e:
            raise EncryptionError(f"Content key wrapping failed: {e}") from e

        # AESGCM appends the 16-byte tag to the ciphertext
        sealed = AESGCM(cek).encrypt(iv, plaintext, encoded_header.encode("ascii"))
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]

        return ".".join(
            [
                encoded_header,
                b64url_encode(wrapped_cek),
                b64url_encode(iv),
                b64url_encode(ciphertext),
                b64url_encode(tag),
            ]
        )
