from __future__ import annotations

from typing import Any, Mapping, Optional, Tuple

import requests

from hcxnet.protocol.enums import Operation
from hcxnet.protocol.models import OutcomeRecord
from hcxnet.protocol.validators import FhirBundleValidator, PayloadValidator
from hcxnet.security.jwe import JWEEncryptor
from hcxnet.transport.auth import GatewayAuthClient
from hcxnet.transport.gateway import GatewayDispatcher
from hcxnet.transport.registry import RegistryClient
from hcxnet.utils.logging import configure_logging

from .keys import KeyResolver
from .orchestrator import OutgoingRequest
from .retry import RetryPolicy
from .settings import HCXSettings, get_settings
from .tokens import TokenManager


class HCXIntegrator:
    """
    Process-wide entry point that wires together:

    - GatewayAuthClient + TokenManager: cached gateway bearer token
    - RegistryClient + KeyResolver:     cached recipient encryption keys
    - JWEEncryptor:                     envelope encryption
    - GatewayDispatcher:                HTTP calls to action/on_action APIs
    - OutgoingRequest:                  the pipeline itself

    Create one per process and share it; both caches start empty.
    """

    def __init__(
        self,
        settings: Optional[HCXSettings] = None,
        *,
        validator: Optional[PayloadValidator] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.settings = settings or get_settings()
        gw = self.settings.gateway
        auth = self.settings.auth
        retry = self.settings.retry

        self.session = session or requests.Session()

        self.token_manager = TokenManager(
            GatewayAuthClient(
                auth.auth_base_path,
                username=auth.username,
                password=auth.password.get_secret_value(),
                client_id=auth.client_id,
                default_lifetime_seconds=auth.default_lifetime_seconds,
                session=self.session,
                timeout=gw.timeout_seconds,
            ),
            refresh_margin_seconds=auth.refresh_margin_seconds,
        )

        self.key_resolver = KeyResolver(
            RegistryClient(
                gw.protocol_base_path,
                token_provider=self.token_manager.get_token,
                session=self.session,
                timeout=gw.timeout_seconds,
            ),
            ttl_seconds=self.settings.cache.key_ttl_seconds,
        )

        self.dispatcher = GatewayDispatcher(
            gw.protocol_base_path,
            session=self.session,
            timeout=gw.timeout_seconds,
            on_unauthorized=self.token_manager.invalidate,
        )

        self.outgoing = OutgoingRequest(
            participant_code=gw.participant_code,
            key_resolver=self.key_resolver,
            token_manager=self.token_manager,
            dispatcher=self.dispatcher,
            encryptor=JWEEncryptor(self.settings.encryption.alg, self.settings.encryption.enc),
            validator=validator or FhirBundleValidator(),
            retry_policy=RetryPolicy(
                max_retries=retry.max_retries,
                base_delay=retry.base_delay_seconds,
                max_delay=retry.max_delay_seconds,
            ),
        )

    @classmethod
    def from_env(cls, **kwargs) -> "HCXIntegrator":
        """Build from environment settings and configure package logging."""
        settings = get_settings()
        configure_logging(settings.runtime.log_level)
        return cls(settings, **kwargs)

    def process_outgoing(
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
        return self.outgoing.process(
            payload,
            operation,
            recipient_code=recipient_code,
            api_call_id=api_call_id,
            correlation_id=correlation_id,
            prior_envelope=prior_envelope,
            on_action_status=on_action_status,
            domain_headers=domain_headers,
        )
