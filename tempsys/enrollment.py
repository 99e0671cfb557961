"""In-progress TOTP enrollments.

A pending setup lives here between ``setup/start`` and ``setup/verify``: it
holds the freshly generated secret until the user proves their authenticator
app produces matching codes. Entries expire after ``ttl`` seconds and are
lost on restart, which simply means the user starts the setup again.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingEnrollment:
    secret: str
    otpauth_url: str
    created_at: float


class EnrollmentStore:
    """Time-bounded, thread-safe map of user id -> pending enrollment."""

    def __init__(self, ttl: int = 600, clock: Callable[[], float] = time.time):
        self.ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._pending: Dict[int, PendingEnrollment] = {}

    def _expired(self, entry: PendingEnrollment) -> bool:
        return (self._clock() - entry.created_at) >= self.ttl

    def _purge_locked(self) -> int:
        stale = [uid for uid, entry in self._pending.items() if self._expired(entry)]
        for uid in stale:
            del self._pending[uid]
        return len(stale)

    def start(self, user_id: int, secret: str, otpauth_url: str) -> PendingEnrollment:
        """Register a new pending setup, replacing any earlier one for the user.

        Expired setups of other users are dropped on the way.
        """
        entry = PendingEnrollment(secret=secret, otpauth_url=otpauth_url, created_at=self._clock())
        with self._lock:
            purged = self._purge_locked()
            self._pending[user_id] = entry
        if purged:
            logger.debug("Purged %d expired 2FA enrollments", purged)
        return entry

    def get(self, user_id: int) -> Optional[PendingEnrollment]:
        """Return the pending setup, or None on miss or expiry."""
        with self._lock:
            entry = self._pending.get(user_id)
            if entry is None:
                return None
            if self._expired(entry):
                del self._pending[user_id]
                logger.info("2FA enrollment for user %s expired", user_id)
                return None
            return entry

    def discard(self, user_id: int) -> None:
        with self._lock:
            self._pending.pop(user_id, None)

    def purge_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""
        with self._lock:
            purged = self._purge_locked()
        if purged:
            logger.debug("Purged %d expired 2FA enrollments", purged)
        return purged

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)
