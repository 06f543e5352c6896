"""
Gateway bearer token cache.

One token per process. It is reused until it gets within
``refresh_margin`` seconds of expiry; concurrent refreshes collapse into a
single call to the token endpoint. A failed refresh raises AuthError and
leaves the cached token in place. A token that lives no longer than the
margin is refreshed at half its lifetime.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional, Protocol

from hcxnet.protocol.models import AuthToken
from hcxnet.utils.singleflight import SingleFlight

logger = logging.getLogger(__name__)

_FLIGHT_KEY = "token"


class TokenSource(Protocol):
    def fetch_token(self) -> AuthToken:
        """Obtain a new token or raise AuthError."""
        ...


class TokenManager:
    def __init__(
        self,
        source: TokenSource,
        *,
        refresh_margin_seconds: float = 60.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._source = source
        self._margin = refresh_margin_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._token: Optional[AuthToken] = None
        self._token_margin = refresh_margin_seconds
        self._flights = SingleFlight()

    def get_token(self) -> AuthToken:
        token = self._current()
        if token is not None:
            return token
        return self._flights.do(_FLIGHT_KEY, self._refresh)

    def invalidate(self) -> None:
        with self._lock:
            self._token = None

    # ------------------------------------------------------------------

    def _current(self) -> Optional[AuthToken]:
        with self._lock:
            token = self._token
            margin = self._token_margin
        if token is not None and token.is_valid(self._clock(), margin):
            return token
        return None

    def _refresh(self) -> AuthToken:
        token = self._current()
        if token is not None:
            return token

        logger.debug("Requesting a new gateway token")
        token = self._source.fetch_token()
        margin = self._margin_for(token)
        with self._lock:
            self._token = token
            self._token_margin = margin
        return token

    def _margin_for(self, token: AuthToken) -> float:
        lifetime = token.expires_at - self._clock()
        if lifetime > self._margin:
            return self._margin
        # short-lived token: refresh at half its lifetime instead of on every call
        logger.warning(
            "Gateway token lifetime %.0fs is within the %.0fs refresh margin",
            lifetime,
            self._margin,
        )
        return max(lifetime, 0.0) / 2
