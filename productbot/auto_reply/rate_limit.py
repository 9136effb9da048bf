"""
Per-user rate limiting for AI replies.

Provides:
- Sliding window limit per user
- Minimum cooldown between two requests
- Duplicate message suppression
"""

import math
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable

from loguru import logger

from productbot.errors import RateLimited


@dataclass
class RateLimitResult:
    """Decision for one incoming message."""
    should_rate_limit: bool
    remaining_cooldown_ms: int = 0
    reason: str = ""

    @property
    def remaining_seconds(self) -> int:
        """Remaining wait rounded up to whole seconds."""
        return math.ceil(self.remaining_cooldown_ms / 1000)

    def to_error(self) -> RateLimited:
        return RateLimited(self.remaining_cooldown_ms, self.reason)


class RateLimiter:
    """
    In-memory sliding window rate limiter keyed by user ID.

    All state changes happen synchronously inside process_message, so calls
    from concurrent tasks on one event loop are serialized.
    """

    def __init__(
        self,
        max_messages: int = 5,
        window_seconds: float = 60.0,
        cooldown_seconds: float = 10.0,
        block_duplicates: bool = True,
        clock: Callable[[], float] | None = None,
    ):
        """
        Initialize the rate limiter.

        Args:
            max_messages: Max accepted messages per user inside the window.
            window_seconds: Sliding window length.
            cooldown_seconds: Minimum gap between two accepted messages.
            block_duplicates: Reject a repeat of the user's last message inside the window.
            clock: Monotonic time source (injectable for tests).
        """
        self.max_messages = max_messages
        self.window_seconds = window_seconds
        self.cooldown_seconds = cooldown_seconds
        self.block_duplicates = block_duplicates
        self._clock = clock or time.monotonic

        # user_id -> [timestamps]
        self._history: dict[str, list[float]] = defaultdict(list)
        # user_id -> last accepted text
        self._last_text: dict[str, str] = {}

        self._total_checked = 0
        self._total_limited = 0

    def process_message(self, user_id: str, text: str = "") -> RateLimitResult:
        """
        Decide whether a message should be throttled, recording it if not.

        Args:
            user_id: Platform user ID.
            text: Message text.

        Returns:
            RateLimitResult with the decision and remaining wait.
        """
        self._total_checked += 1
        now = self._clock()
        cutoff = now - self.window_seconds

        history = [ts for ts in self._history[user_id] if ts > cutoff]
        self._history[user_id] = history

        result = self._check(user_id, text, history, now)
        if result.should_rate_limit:
            self._total_limited += 1
            logger.warning(f"Rate limit for {user_id}: {result.reason}")
            return result

        history.append(now)
        self._last_text[user_id] = text.strip().lower()
        return result

    def _check(
        self,
        user_id: str,
        text: str,
        history: list[float],
        now: float,
    ) -> RateLimitResult:
        if not history:
            return RateLimitResult(should_rate_limit=False)

        elapsed = now - history[-1]
        if elapsed < self.cooldown_seconds:
            return RateLimitResult(
                should_rate_limit=True,
                remaining_cooldown_ms=_to_ms(self.cooldown_seconds - elapsed),
                reason="Cooldown active",
            )

        if len(history) >= self.max_messages:
            return RateLimitResult(
                should_rate_limit=True,
                remaining_cooldown_ms=_to_ms(history[0] + self.window_seconds - now),
                reason=f"Too many messages ({self.max_messages} per {self.window_seconds:.0f}s)",
            )

        if self.block_duplicates and text.strip().lower() == self._last_text.get(user_id):
            return RateLimitResult(
                should_rate_limit=True,
                remaining_cooldown_ms=_to_ms(history[-1] + self.window_seconds - now),
                reason="Duplicate message",
            )

        return RateLimitResult(should_rate_limit=False)

    def clear_user(self, user_id: str) -> None:
        """Forget all history for a user."""
        self._history.pop(user_id, None)
        self._last_text.pop(user_id, None)

    def get_stats(self) -> dict[str, Any]:
        """Get rate limiter statistics."""
        return {
            "total_checked": self._total_checked,
            "total_limited": self._total_limited,
            "tracked_users": len(self._history),
        }


def _to_ms(seconds: float) -> int:
    return max(0, math.ceil(seconds * 1000))
