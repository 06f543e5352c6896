"""
Gateway token endpoint client (OpenID Connect password grant).
"""

from __future__ import annotations

import time
from typing import Any, Dict, Optional

import jwt
import requests

from hcxnet.protocol.enums import ErrorCode
from hcxnet.protocol.errors import AuthError
from hcxnet.protocol.models import AuthToken


def jwt_expiry(access_token: str) -> Optional[float]:
    """Read the ``exp`` claim of a JWT without verifying it."""
    try:
        claims = jwt.decode(access_token, options={"verify_signature": False})
    except jwt.PyJWTError:
        return None
    exp = claims.get("exp")
    return float(exp) if isinstance(exp, (int, float)) else None


class GatewayAuthClient:
    def __init__(
        self,
        auth_url: str,
        *,
        username: str,
        password: str,
        client_id: str = "registry-frontend",
        default_lifetime_seconds: float = 300.0,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
    ):
        self._url = auth_url
        self._form = {
            "client_id": client_id,
            "username": username,
            "password": password,
            "grant_type": "password",
        }
        self._default_lifetime = default_lifetime_seconds
        self._session = session or requests.Session()
        self._timeout = timeout

    def fetch_token(self) -> AuthToken:
        try:
            response = self._session.post(
                self._url,
                data=self._form,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self._timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise AuthError(
                f"Token endpoint unreachable: {e}",
                ErrorCode.AUTH_UNAVAILABLE,
                retryable=True,
            ) from e
        except requests.RequestException as e:
            raise AuthError(
                f"Token request failed: {e}",
                ErrorCode.AUTH_UNAVAILABLE,
                retryable=True,
            ) from e

        if response.status_code >= 500:
            raise AuthError(
                f"Token endpoint unavailable (HTTP {response.status_code})",
                ErrorCode.AUTH_UNAVAILABLE,
                retryable=True,
            )
        if response.status_code >= 400:
            raise AuthError(
                f"Gateway credentials rejected (HTTP {response.status_code})",
                ErrorCode.ACCESS_DENIED,
                details={"status_code": response.status_code},
            )

        try:
            body: Dict[str, Any] = response.json()
            access_token = body["access_token"]
        except (ValueError, KeyError, TypeError) as e:
            raise AuthError("Token response has no access_token", ErrorCode.ACCESS_DENIED) from e

        return AuthToken(access_token=access_token, expires_at=self._expiry(body, access_token))

    def _expiry(self, body: Dict[str, Any], access_token: str) -> float:
        expires_in = body.get("expires_in")
        if isinstance(expires_in, (int, float)) and expires_in > 0:
            return time.time() + float(expires_in)
        exp = jwt_expiry(access_token)
        if exp is not None:
            return exp
        return time.time() + self._default_lifetime
