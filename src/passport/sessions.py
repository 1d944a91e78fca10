"""In-memory store of pending authorization attempts.

Each attempt is keyed by its ``state`` secret and maps to the PKCE verifier
issued with it. Attempts are single use: :meth:`SessionStore.consume` reads
and deletes in one critical section, so of two callbacks racing with the
same ``state`` only one ever gets the verifier.

Attempts older than ``ttl_seconds`` read as absent and are dropped lazily
on the next store operation. ``max_pending`` bounds the number of attempts
held at once by evicting the oldest.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from typing import Callable, Optional

from passport.models import PendingAttempt, SessionConfig
from passport.pkce import fingerprint
from passport.providers import Provider

logger = logging.getLogger(__name__)


class SessionStore:
    """Thread-safe map from ``state`` secret to :class:`PendingAttempt`.

    The lock only ever guards dictionary mutations and is never held
    across network I/O.

    Args:
        config: Expiry and size bounds. Defaults to a 600 second TTL with no
            size bound.
        clock: Monotonic time source, overridable in tests.

    Example::

        store = SessionStore(SessionConfig(ttl_seconds=300))
        store.put(attempt)
        pending = store.consume(attempt.csrf_secret)   # attempt
        store.consume(attempt.csrf_secret)             # None
    """

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or SessionConfig()
        self._clock = clock
        self._lock = threading.Lock()
        # Insertion order is creation order, which makes expiry and
        # eviction a scan from the front.
        self._attempts: OrderedDict[str, PendingAttempt] = OrderedDict()

    @property
    def config(self) -> SessionConfig:
        return self._config

    def issue(self, csrf_secret: str, pkce_verifier: str, provider: Provider) -> PendingAttempt:
        """Create an attempt stamped with the store's clock and register it."""
        attempt = PendingAttempt(
            csrf_secret=csrf_secret,
            pkce_verifier=pkce_verifier,
            provider=provider,
            created_at=self._clock(),
        )
        self.put(attempt)
        return attempt

    def put(self, attempt: PendingAttempt) -> None:
        """Register *attempt* under its ``csrf_secret``."""
        with self._lock:
            self._purge_expired_locked()
            self._attempts[attempt.csrf_secret] = attempt
            self._attempts.move_to_end(attempt.csrf_secret)
            max_pending = self._config.max_pending
            if max_pending is not None:
                while len(self._attempts) > max_pending:
                    evicted, _ = self._attempts.popitem(last=False)
                    logger.warning(
                        "Pending attempt limit (%d) reached, evicted state %s",
                        max_pending,
                        fingerprint(evicted),
                    )

    def consume(self, state: str) -> Optional[PendingAttempt]:
        """Remove and return the attempt for *state*.

        Returns:
            The attempt, or ``None`` if *state* is unknown, expired, or was
            already consumed.
        """
        with self._lock:
            attempt = self._attempts.pop(state, None)
        if attempt is None:
            return None
        if self._is_expired(attempt):
            logger.debug("State %s expired before its callback", fingerprint(state))
            return None
        return attempt

    def peek(self, state: str) -> Optional[PendingAttempt]:
        """Return the live attempt for *state* without consuming it."""
        with self._lock:
            attempt = self._attempts.get(state)
        if attempt is None or self._is_expired(attempt):
            return None
        return attempt

    def purge_expired(self) -> int:
        """Drop every expired attempt.

        Returns:
            Number of attempts removed.
        """
        with self._lock:
            return self._purge_expired_locked()

    def clear(self) -> None:
        with self._lock:
            self._attempts.clear()

    def __contains__(self, state: object) -> bool:
        return isinstance(state, str) and self.peek(state) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._attempts)

    def _is_expired(self, attempt: PendingAttempt) -> bool:
        ttl = self._config.ttl_seconds
        return ttl is not None and self._clock() - attempt.created_at >= ttl

    def _purge_expired_locked(self) -> int:
        removed = 0
        while self._attempts:
            state, attempt = next(iter(self._attempts.items()))
            if not self._is_expired(attempt):
                break
            del self._attempts[state]
            removed += 1
        if removed:
            logger.debug("Purged %d expired pending attempts", removed)
        return removed
