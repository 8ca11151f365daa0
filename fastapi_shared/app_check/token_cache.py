"""In-memory cache of verified App Check tokens."""

import threading
import time
from typing import Callable


class AppCheckTokenCache:
    """Time-boxed set of tokens that already passed verification.

    When a new token arrives at capacity, the half of the entries closest to
    expiry is dropped in one go. Ordering is by expiry, not by last access;
    with a constant token duration this is insertion (FIFO) order.

    All operations hold a lock, so one instance can be shared by every
    request handler in the process.
    """

    def __init__(
        self,
        max_size: int,
        token_duration: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            max_size: Maximum number of cached tokens
            token_duration: Seconds a token stays valid after being added
            clock: Monotonic time source in seconds
        """
        self.max_size = max_size
        self.token_duration = token_duration
        self._clock = clock
        self._cache: dict[str, float] = {}
        self._lock = threading.Lock()

    def contains(self, token: str) -> bool:
        """Check whether the token is cached and unexpired; drops it if expired."""
        with self._lock:
            expires_at = self._cache.get(token)
            if expires_at is None:
                return False
            if self._clock() >= expires_at:
                del self._cache[token]
                return False
            return True

    def add(self, token: str) -> None:
        """Cache a token for token_duration seconds, refreshing an existing entry."""
        with self._lock:
            if token in self._cache:
                # Re-insert so dict order follows the new expiry
                del self._cache[token]
            elif len(self._cache) >= self.max_size:
                self._remove_oldest_entries()
            self._cache[token] = self._clock() + self.token_duration

    def _remove_oldest_entries(self) -> None:
        count = max(1, min(self.max_size // 2, len(self._cache)))
        oldest = sorted(self._cache.items(), key=lambda item: item[1])[:count]
        for token, _ in oldest:
            del self._cache[token]

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    @property
    def size(self) -> int:
        """Number of entries, including expired ones not yet looked up."""
        return len(self._cache)

    def __len__(self) -> int:
        return self.size

    def __contains__(self, token: str) -> bool:
        return self.contains(token)
