from .jwe import JWEEncryptor, load_public_key, read_protected_header

__all__ = ["JWEEncryptor", "load_public_key", "read_protected_header"]
