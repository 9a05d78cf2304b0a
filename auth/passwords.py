"""
auth/passwords.py -- bcrypt password hashing.

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error. Direct bcrypt usage is simpler and has no
compatibility shim.

Both operations are CPU-bound by design. Async callers must run them in a
worker thread (auth/service.py uses run_in_threadpool) so one login does not
stall every other request on the event loop.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import bcrypt


class PasswordHasher:
    """Salted, adaptive one-way hashing with a configurable cost factor.

    rounds is bcrypt's log2 work factor (default 10). The salt and cost are
    embedded in every digest, so verify() needs only the digest -- raising
    the cost later does not invalidate existing hashes.
    """

    def __init__(self, rounds: int = 10) -> None:
        self.rounds = rounds
        self._dummy_hash: str | None = None

    def hash(self, plain: str) -> str:
        """Return a bcrypt digest of plain."""
        return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, hashed: str | None) -> bool:
        """Return True if plain matches hashed. bcrypt.checkpw compares in constant time.

        hashed=None means "no such account". A full bcrypt check still runs
        against a dummy digest of the same cost, so response time does not
        reveal whether the email exists. The result is always False.
        """
        if hashed is None:
            self._check(plain, self._timing_dummy())
            return False
        return self._check(plain, hashed)

    def _timing_dummy(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = self.hash("authgate_timing_dummy")
        return self._dummy_hash

    @staticmethod
    def _check(plain: str, hashed: str) -> bool:
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            # Malformed digest or over-long input
            return False
