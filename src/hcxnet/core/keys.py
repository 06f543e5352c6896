"""
Recipient encryption key resolution.

Process-wide cache of participant public keys in front of the registry:
- fresh entries are served from memory
- a miss or a stale entry triggers one registry fetch per participant code,
  shared by every concurrent caller (single-flight)
- entries are written only after a successful fetch; a failed fetch evicts
  the stale entry instead of serving it
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, Protocol

from hcxnet.protocol.enums import ErrorCode
from hcxnet.protocol.errors import KeyResolutionError
from hcxnet.protocol.models import RecipientKey
from hcxnet.utils.id_gen import is_blank
from hcxnet.utils.singleflight import SingleFlight

logger = logging.getLogger(__name__)


class RegistryLookup(Protocol):
    def lookup_encryption_key(self, participant_code: str) -> bytes:
        """Return the participant's PEM key or raise KeyResolutionError."""
        ...


class KeyResolver:
    def __init__(
        self,
        registry: RegistryLookup,
        *,
        ttl_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._registry = registry
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._cache: Dict[str, RecipientKey] = {}
        self._flights = SingleFlight()

    def resolve(self, participant_code: str) -> RecipientKey:
        if is_blank(participant_code):
            raise KeyResolutionError("Recipient code is missing", ErrorCode.INVALID_RECIPIENT)

        cached = self._get_fresh(participant_code)
        if cached is not None:
            return cached

        return self._flights.do(participant_code, lambda: self._fetch(participant_code))

    def invalidate(self, participant_code: str) -> None:
        with self._lock:
            self._cache.pop(participant_code, None)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def cached(self, participant_code: str) -> bool:
        return self._get_fresh(participant_code) is not None

    # ------------------------------------------------------------------

    def _get_fresh(self, participant_code: str) -> RecipientKey | None:
        now = self._clock()
        with self._lock:
            entry = self._cache.get(participant_code)
            if entry is None:
                return None
            if entry.is_fresh(now):
                return entry
        return None

    def _fetch(self, participant_code: str) -> RecipientKey:
        # a caller that queued behind a just-finished flight finds the entry here
        cached = self._get_fresh(participant_code)
        if cached is not None:
            return cached

        logger.debug("Fetching encryption key for %s from registry", participant_code)
        try:
            pem = self._registry.lookup_encryption_key(participant_code)
        except KeyResolutionError:
            self.invalidate(participant_code)
            raise

        if isinstance(pem, str):
            pem = pem.encode("utf-8")
        if not pem:
            self.invalidate(participant_code)
            raise KeyResolutionError(
                f"Registry has no encryption key for '{participant_code}'",
                ErrorCode.INVALID_RECIPIENT,
            )

        now = self._clock()
        key = RecipientKey(
            participant_code=participant_code,
            pem=pem,
            fetched_at=now,
            expires_at=now + self._ttl,
        )
        with self._lock:
            self._cache[participant_code] = key
        return key
