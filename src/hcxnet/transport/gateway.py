"""
HCX gateway dispatcher.

Sends the compact JWE to the operation's resource and classifies the HTTP
result:

    2xx            -> acknowledgement dict
    4xx            -> GatewayClientError (never retried)
    5xx / timeout  -> GatewayTransientError (retryable)
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

import requests

from hcxnet.protocol.enums import ErrorCode, Operation
from hcxnet.protocol.errors import GatewayClientError, GatewayTransientError
from hcxnet.protocol.models import AuthToken
from hcxnet.utils.json import json_dumps

logger = logging.getLogger(__name__)


class GatewayDispatcher:
    def __init__(
        self,
        base_url: str,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
        on_unauthorized: Optional[Callable[[], None]] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._timeout = timeout
        self._on_unauthorized = on_unauthorized

    def url_for(self, operation: Operation) -> str:
        return self._base_url + operation.path

    def dispatch(self, envelope: str, operation: Operation, token: AuthToken) -> Dict[str, Any]:
        url = self.url_for(operation)
        try:
            response = self._session.post(
                url,
                data=json_dumps({"payload": envelope}),
                headers={
                    "Content-Type": "application/json",
                    "Authorization": token.authorization,
                },
                timeout=self._timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise GatewayTransientError(f"Gateway unreachable: {e}") from e
        except requests.RequestException as e:
            raise GatewayTransientError(f"Gateway request failed: {e}") from e

        status = response.status_code
        body = self._body(response)

        if 200 <= status < 300:
            logger.debug("Gateway accepted %s (HTTP %d)", operation.value, status)
            return body

        error = body.get("error") if isinstance(body.get("error"), dict) else {}
        message = error.get("message") or f"Gateway returned HTTP {status}"
        details = {"status_code": status, "url": url}
        if error.get("trace"):
            details["trace"] = error["trace"]

        if status >= 500:
            raise GatewayTransientError(
                message,
                error.get("code") or ErrorCode.SERVICE_UNAVAILABLE,
                status_code=status,
                details=details,
            )

        if status == 401 and self._on_unauthorized is not None:
            self._on_unauthorized()

        raise GatewayClientError(
            message,
            error.get("code") or ErrorCode.GATEWAY_REJECTED,
            status_code=status,
            details=details,
        )

    @staticmethod
    def _body(response: requests.Response) -> Dict[str, Any]:
        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError:
            return {"raw": response.text}
        return body if isinstance(body, dict) else {"data": body}
