"""In-memory, expiry-aware token cache shared by one test session."""

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from aiconnect.endpoint_test.models.credential import Credential

logger = logging.getLogger(__name__)

CacheKey = tuple[str, str, str]

# Tokens this close to expiry are treated as expired.
EXPIRY_LEEWAY = timedelta(seconds=60)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TokenCache:
    """Credential memoization keyed by (method, scope, principal).

    One entry per key; writes overwrite. Expired entries are evicted when
    they are looked up.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = _utcnow,
        leeway: timedelta = EXPIRY_LEEWAY,
    ) -> None:
        """Create an empty cache."""
        self._entries: dict[CacheKey, Credential] = {}
        self._locks: dict[CacheKey, asyncio.Lock] = {}
        self._clock = clock
        self._leeway = leeway

    def get(self, key: CacheKey) -> Credential | None:
        """Return a non-expired credential for key, evicting a stale one."""
        credential = self._entries.get(key)
        if credential is None:
            return None

        if credential.is_expired(now=self._clock(), leeway=self._leeway):
            logger.info(f"Cached credential for {key[0]} expired, evicting")
            del self._entries[key]
            return None

        return credential

    def put(self, key: CacheKey, credential: Credential) -> None:
        """Store credential under key, replacing any previous entry."""
        self._entries[key] = credential

    def lock(self, key: CacheKey) -> asyncio.Lock:
        """Lock serializing resolutions for one key."""
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
