"""In-memory store of live invite tokens."""
import logging
import secrets
import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


def redact(token: str) -> str:
    """Log-safe prefix of a token."""
    return f"{token[:8]}..."


class RandomnessUnavailable(RuntimeError):
    """The secure random source cannot be used; tokens must not be issued."""


class TokenStore:
    """
    Issues unpredictable tokens and tracks their validity window.

    Tokens map to a monotonic expiry instant. Expiry is checked on every
    access, so a token past its expiry is never live even before sweep()
    has removed it.
    """

    def __init__(
        self,
        expiry: timedelta,
        token_bytes: int = 32,
        random_bytes: Callable[[int], bytes] = secrets.token_bytes,
        clock: Callable[[], float] = time.monotonic,
    ):
        if token_bytes < 16:
            raise ValueError("Tokens need at least 16 random bytes")
        if expiry.total_seconds() <= 0:
            raise ValueError("Token expiry must be positive")

        self.expiry = expiry
        self.token_bytes = token_bytes
        self._random_bytes = random_bytes
        self._clock = clock
        self._tokens: Dict[str, float] = {}
        self._lock = threading.Lock()

        # Refuse to start rather than issue weak tokens later
        self._draw()

    def _draw(self) -> str:
        try:
            data = self._random_bytes(self.token_bytes)
        except (NotImplementedError, OSError) as e:
            raise RandomnessUnavailable(f"Secure random source unavailable: {e}") from e
        if len(data) < self.token_bytes:
            raise RandomnessUnavailable(
                f"Secure random source returned {len(data)} of {self.token_bytes} bytes"
            )
        return data.hex()

    def _expired(self, deadline: float, now: float) -> bool:
        return now >= deadline

    def issue(self) -> Tuple[str, datetime]:
        """
        Generate a fresh token and start its validity window.

        Returns:
            The token and its wall-clock (UTC) expiry time
        """
        self.sweep()
        while True:
            token = self._draw()
            with self._lock:
                if token in self._tokens:
                    continue
                self._tokens[token] = self._clock() + self.expiry.total_seconds()
            expires_at = datetime.now(timezone.utc) + self.expiry
            logger.info(f"Generated new token {redact(token)}")
            return token, expires_at

    def is_live(self, token: str) -> bool:
        """Check that a token exists and has not expired."""
        with self._lock:
            deadline = self._tokens.get(token)
            return deadline is not None and not self._expired(deadline, self._clock())

    def expires_at(self, token: str) -> Optional[datetime]:
        """Wall-clock (UTC) expiry of a live token, or None if it is not live."""
        with self._lock:
            deadline = self._tokens.get(token)
            now = self._clock()
            if deadline is None or self._expired(deadline, now):
                return None
        return datetime.now(timezone.utc) + timedelta(seconds=deadline - now)

    def consume(self, token: str) -> bool:
        """
        Remove a live token.

        Returns:
            True for exactly one caller per token; False if the token was
            unknown, expired or already consumed
        """
        with self._lock:
            deadline = self._tokens.pop(token, None)
            if deadline is None:
                return False
            if self._expired(deadline, self._clock()):
                logger.info(f"Token {redact(token)} expired")
                return False
            return True

    def sweep(self) -> int:
        """Drop expired tokens and return how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [t for t, deadline in self._tokens.items() if self._expired(deadline, now)]
            for token in expired:
                del self._tokens[token]
        for token in expired:
            logger.info(f"Token {redact(token)} expired")
        return len(expired)

    def count(self) -> int:
        """Number of live tokens."""
        self.sweep()
        with self._lock:
            return len(self._tokens)
