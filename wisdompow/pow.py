"""Argon2id proof-of-work challenges: issuing, verifying and solving."""

from __future__ import annotations

import secrets
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from cryptography.hazmat.primitives.kdf.argon2 import Argon2id

DEFAULT_DIFFICULTY = 6
DEFAULT_TTL = 30.0
DEFAULT_MAX_ATTEMPTS = 1_000_000


class ChallengeNotFoundError(LookupError):
    """Raised when a challenge is unknown or has expired."""


@dataclass(frozen=True)
class Challenge:
    """A puzzle handed to a client."""

    id: str
    difficulty: int
    expires_at: datetime

    def to_dict(self) -> dict[str, Any]:
        expires = self.expires_at.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
        return {"id": self.id, "difficulty": self.difficulty, "expires_at": expires}


def generate_random_id() -> str:
    """Return 32 random bytes as lower-case hex."""
    return secrets.token_hex(32)


def compute_hash(challenge_id: str, nonce: int) -> bytes:
    """Argon2id digest of the challenge id followed by the nonce, salted with the id."""
    kdf = Argon2id(
        salt=challenge_id.encode("utf-8"),
        length=32,
        iterations=1,
        lanes=1,
        memory_cost=64 * 1024,
    )
    return kdf.derive(f"{challenge_id}{nonce}".encode("utf-8"))


def has_leading_zeros(digest: bytes, difficulty: int) -> bool:
    """Check that the first difficulty // 8 bytes are zero and, for the remainder,
    that the low difficulty % 8 bits of the next byte are zero."""
    whole, rest = divmod(difficulty, 8)
    if any(digest[:whole]):
        return False
    if rest:
        mask = 0xFF >> (8 - rest)
        return digest[whole] & mask == 0
    return True


def solve_challenge(
    challenge_id: str, difficulty: int, max_attempts: int = DEFAULT_MAX_ATTEMPTS
) -> int:
    """Find the smallest nonce, starting from 1 and below max_attempts, that solves the challenge."""
    for nonce in range(1, max_attempts):
        if has_leading_zeros(compute_hash(challenge_id, nonce), difficulty):
            return nonce
    raise RuntimeError(f"solution not found within {max_attempts} attempts")


class PowService:
    """Issues challenges and checks their solutions; each challenge is usable once."""

    def __init__(
        self,
        difficulty: int = DEFAULT_DIFFICULTY,
        ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._difficulty = difficulty
        self._ttl = ttl
        self._clock = clock
        self._challenges: dict[str, Challenge] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._cleaner: threading.Thread | None = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._challenges)

    def _expired(self, challenge: Challenge) -> bool:
        return self._clock() > challenge.expires_at.timestamp()

    def generate_challenge(self) -> Challenge:
        """Create, store and return a new challenge."""
        challenge = Challenge(
            id=generate_random_id(),
            difficulty=self._difficulty,
            expires_at=datetime.fromtimestamp(self._clock() + self._ttl, timezone.utc),
        )
        with self._lock:
            self._challenges[challenge.id] = challenge
        return challenge

    def verify_solution(self, challenge_id: str, nonce: int) -> bool:
        """Check a nonce against a stored challenge and discard the challenge."""
        with self._lock:
            challenge = self._challenges.get(challenge_id)
        if challenge is None or self._expired(challenge):
            raise ChallengeNotFoundError("challenge not found or expired")
        solved = has_leading_zeros(compute_hash(challenge.id, nonce), challenge.difficulty)
        with self._lock:
            self._challenges.pop(challenge_id, None)
        return solved

    def cleanup_expired(self) -> int:
        """Drop expired challenges and return how many were removed."""
        with self._lock:
            expired = [cid for cid, ch in self._challenges.items() if self._expired(ch)]
            for cid in expired:
                del self._challenges[cid]
        return len(expired)

    def start_cleanup(self, interval: float = DEFAULT_TTL) -> None:
        """Run cleanup_expired every interval seconds in a background thread."""
        if self._cleaner is not None and self._cleaner.is_alive():
            return
        self._stop.clear()

        def loop() -> None:
            while not self._stop.wait(interval):
                self.cleanup_expired()

        self._cleaner = threading.Thread(target=loop, name="pow-cleanup", daemon=True)
        self._cleaner.start()

    def stop_cleanup(self) -> None:
        """Stop the background cleanup thread, if running."""
        self._stop.set()
        if self._cleaner is not None:
            self._cleaner.join()
            self._cleaner = None