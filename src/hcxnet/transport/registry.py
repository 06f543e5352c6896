"""
HCX participant registry client.

Looks up a participant by code and returns its encryption key PEM. The
registry publishes ``encryption_cert`` either inline or as a URL to the
certificate, which is then downloaded.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

import requests

from hcxnet.protocol.enums import ErrorCode
from hcxnet.protocol.errors import HCXError, KeyResolutionError
from hcxnet.protocol.models import AuthToken

logger = logging.getLogger(__name__)


class RegistryClient:
    """
    POST {base}/participant/search
        {"filters": {"participant_code": {"eq": "<code>"}}}

    returns

        {"participants": [{"participant_code": ..., "encryption_cert": ...}]}
    """

    def __init__(
        self,
        base_url: str,
        *,
        token_provider: Optional[Callable[[], AuthToken]] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
    ):
        self._url = base_url.rstrip("/") + "/participant/search"
        self._token_provider = token_provider
        self._session = session or requests.Session()
        self._timeout = timeout

    def lookup_encryption_key(self, participant_code: str) -> bytes:
        participant = self._search(participant_code)

        cert = participant.get("encryption_cert")
        if not cert:
            raise KeyResolutionError(
                f"Participant '{participant_code}' has no encryption certificate",
                ErrorCode.INVALID_RECIPIENT,
            )
        if cert.startswith(("http://", "https://")):
            return self._download(cert, participant_code)
        return cert.encode("utf-8")

    # ------------------------------------------------------------------

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._token_provider is not None:
            try:
                headers["Authorization"] = self._token_provider().authorization
            except HCXError as e:
                raise KeyResolutionError(
                    f"Registry authentication failed: {e.message}",
                    ErrorCode.REGISTRY_UNAVAILABLE,
                    retryable=e.retryable,
                ) from e
        return headers

    def _search(self, participant_code: str) -> Dict[str, Any]:
        body = {"filters": {"participant_code": {"eq": participant_code}}}
        response = self._request("POST", self._url, json=body, headers=self._headers())

        try:
            participants = response.json().get("participants") or []
        except (ValueError, AttributeError) as e:
            raise KeyResolutionError(
                f"Registry returned an unreadable body: {e}",
                ErrorCode.REGISTRY_UNAVAILABLE,
                retryable=True,
            ) from e

        if not participants:
            raise KeyResolutionError(
                f"Participant '{participant_code}' is not registered",
                ErrorCode.INVALID_RECIPIENT,
                details={"participant_code": participant_code},
            )
        return participants[0]

    def _download(self, url: str, participant_code: str) -> bytes:
        logger.debug("Downloading encryption certificate of %s", participant_code)
        return self._request("GET", url).content

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            response = self._session.request(method, url, timeout=self._timeout, **kwargs)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise KeyResolutionError(
                f"Registry unreachable: {e}",
                ErrorCode.REGISTRY_UNAVAILABLE,
                retryable=True,
            ) from e
        except requests.RequestException as e:
            raise KeyResolutionError(
                f"Registry request failed: {e}",
                ErrorCode.REGISTRY_UNAVAILABLE,
                retryable=True,
            ) from e

        if response.status_code >= 500:
            raise KeyResolutionError(
                f"Registry unavailable (HTTP {response.status_code})",
                ErrorCode.REGISTRY_UNAVAILABLE,
                retryable=True,
            )
        if response.status_code >= 400:
            raise KeyResolutionError(
                f"Registry rejected the lookup (HTTP {response.status_code})",
                ErrorCode.INVALID_RECIPIENT,
                details={"status_code": response.status_code},
            )
        return response
