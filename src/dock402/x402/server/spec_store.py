"""
Specification store - keeps issued payment specifications for the negotiation window
"""

import threading
import time
from typing import Callable, Protocol

from dock402.x402.types import PaymentSpecification


class SpecificationStore(Protocol):
    """Storage for issued specifications"""

    def get(self, key: str) -> PaymentSpecification | None:
        ...

    def get_or_create(
        self, key: str, factory: Callable[[], PaymentSpecification]
    ) -> PaymentSpecification:
        """Return the live specification for *key*, creating it if needed.

        Concurrent callers with the same key receive the same instance.
        """
        ...


class InMemorySpecificationStore:
    """Process-local SpecificationStore with per-entry expiry"""

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[PaymentSpecification, float]] = {}
        self._lock = threading.Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def _live(self, key: str, now: float) -> PaymentSpecification | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        spec, expires_at = entry
        if now >= expires_at:
            del self._entries[key]
            return None
        return spec

    def get(self, key: str) -> PaymentSpecification | None:
        with self._lock:
            return self._live(key, self._clock())

    def get_or_create(
        self, key: str, factory: Callable[[], PaymentSpecification]
    ) -> PaymentSpecification:
        with self._lock:
            now = self._clock()
            spec = self._live(key, now)
            if spec is None:
                spec = factory()
                self._entries[key] = (spec, now + self._ttl)
            return spec

    def purge_expired(self) -> int:
        """Drop expired entries, returning how many were removed"""
        with self._lock:
            now = self._clock()
            expired = [k for k, (_, exp) in self._entries.items() if now >= exp]
            for key in expired:
                del self._entries[key]
            return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
