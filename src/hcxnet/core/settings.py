"""
Central configuration for hcxnet.

This module provides a single, typed configuration object that reads from
environment variables (12-factor style) using pydantic-settings.

Usage:

    from hcxnet.core.settings import get_settings

    settings = get_settings()
    base = settings.gateway.protocol_base_path
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from hcxnet.security.jwe import CONTENT_ALGORITHMS, KEY_WRAP_ALGORITHMS

# every group also reads a local .env file
_ENV = dict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


class GatewaySettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="HCX_GATEWAY_", **_ENV)

    protocol_base_path: str = Field(
        default="http://localhost:8095/api/v0.7",
        description="HCX gateway protocol API base URL.",
    )
    participant_code: str = Field(
        default="",
        description="This participant's registry code (sender code).",
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Deadline for every HTTP call (registry, auth, dispatch).",
    )

    @field_validator("protocol_base_path")
    @classmethod
    def _strip_slash(cls, v: str) -> str:
        return v.rstrip("/")


class AuthSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="HCX_AUTH_", **_ENV)

    auth_base_path: str = Field(
        default="http://localhost:8080/auth/realms/swasth-health-claim-exchange/protocol/openid-connect/token",
        description="Gateway token endpoint.",
    )
    username: str = Field(default="", description="Participant user name.")
    password: SecretStr = Field(default=SecretStr(""), description="Participant password.")
    client_id: str = Field(default="registry-frontend")
    refresh_margin_seconds: float = Field(
        default=60.0,
        ge=0,
        description="Refresh the token this long before it expires.",
    )
    default_lifetime_seconds: float = Field(
        default=300.0,
        gt=0,
        description="Token lifetime when the endpoint reports none.",
    )


class EncryptionSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="HCX_ENCRYPTION_", **_ENV)

    alg: str = Field(default="RSA-OAEP", description="JWE key-wrapping algorithm.")
    enc: str = Field(default="A256GCM", description="JWE content-encryption algorithm.")

    @field_validator("alg")
    @classmethod
    def _check_alg(cls, v: str) -> str:
        if v not in KEY_WRAP_ALGORITHMS:
            raise ValueError(f"alg must be one of {sorted(KEY_WRAP_ALGORITHMS)}")
        return v

    @field_validator("enc")
    @classmethod
    def _check_enc(cls, v: str) -> str:
        if v not in CONTENT_ALGORITHMS:
            raise ValueError(f"enc must be one of {sorted(CONTENT_ALGORITHMS)}")
        return v


class CacheSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="HCX_CACHE_", **_ENV)

    key_ttl_seconds: float = Field(
        default=3600.0,
        gt=0,
        description="How long a recipient encryption key stays cached.",
    )


class RetrySettings(BaseSettings):
    """
    Bounded retry for transient I/O (registry, auth, dispatch).
    """

    model_config = SettingsConfigDict(env_prefix="HCX_RETRY_", **_ENV)

    max_retries: int = Field(default=3, ge=0, le=10)
    base_delay_seconds: float = Field(default=0.5, ge=0)
    max_delay_seconds: float = Field(default=8.0, ge=0)


class RuntimeSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="HCX_RUNTIME_", **_ENV)

    log_level: str = Field(
        default="INFO",
        description="Package log level (DEBUG/INFO/WARNING/ERROR).",
    )


class HCXSettings(BaseSettings):
    """
    Root configuration object for hcxnet.

    Aggregates:
      - Gateway
      - Auth
      - Encryption
      - Cache
      - Retry
      - Runtime
    """

    model_config = SettingsConfigDict(**_ENV)

    gateway: GatewaySettings = Field(default_factory=GatewaySettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    encryption: EncryptionSettings = Field(default_factory=EncryptionSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    runtime: RuntimeSettings = Field(default_factory=RuntimeSettings)


@lru_cache(maxsize=1)
def get_settings() -> HCXSettings:
    """
    Cached accessor for HCXSettings.

    Usage:
        from hcxnet.core.settings import get_settings
        settings = get_settings()
    """
    return HCXSettings()
