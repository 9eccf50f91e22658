from __future__ import annotations

import random
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from popup_translator.config.constants import (
    RETRY_MAX_ATTEMPTS,
    RETRY_BACKOFF_FACTOR,
    RETRY_MAX_DELAY_SEC,
)

if TYPE_CHECKING:
    from popup_translator.services.errors.classifier import ClassifiedError


class RetryPolicy(BaseModel):
    """Caller-side retry policy for classified translation failures.

    The translation core never retries by itself; callers ask the policy
    whether and when to try again.

    Args:
        max_attempts: Maximum number of attempts (including the first one)
        backoff_factor: Growth of the classified delay per further attempt
        max_delay_sec: Cap on any computed delay
        jitter: Jitter as fraction of delay (0.15 = +/-15% randomization)
    """

    model_config = {"frozen": True}

    max_attempts: int = Field(default=RETRY_MAX_ATTEMPTS, ge=1)
    backoff_factor: float = Field(default=RETRY_BACKOFF_FACTOR, ge=1.0)
    max_delay_sec: float = Field(default=RETRY_MAX_DELAY_SEC, ge=0.0)
    jitter: float = Field(default=0.0, ge=0.0, le=1.0)

    def next_delay(self, error: ClassifiedError, attempt: int) -> float | None:
        """Compute the delay before the next attempt.

        Args:
            error: Failure of the attempt that just finished
            attempt: Number of attempts made so far (1 = first attempt failed)

        Returns:
            Delay in seconds, or None when the caller should give up
        """
        if not error.retryable or attempt >= self.max_attempts:
            return None
        base = error.retry_after or 0.0
        delay: float = min(self.max_delay_sec, base * (self.backoff_factor ** (attempt - 1)))
        if self.jitter > 0 and delay > 0:
            spread: float = delay * self.jitter
            delay = max(0.0, delay + random.uniform(-spread, spread))
        return delay


def parse_retry_after_seconds(value: str | None) -> float | None:
    """Parse a Retry-After header value to seconds.

    Handles numeric seconds format only (not HTTP-date format).

    Args:
        value: Retry-After header value

    Returns:
        Seconds to wait, or None if invalid or not provided
    """
    if not value:
        return None
    v = value.strip()
    try:
        seconds = float(v)
    except ValueError:
        return None
    if seconds < 0:
        return None
    return seconds
