"""Exponential backoff policy for provider calls."""
import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable, Optional


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """How many attempts a job gets and how long to wait between them."""

    max_attempts: int = 3
    base_delay: float = 2.0
    max_delay: float = 60.0
    backoff_factor: float = 2.0
    jitter: bool = True
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False, repr=False)

    def delay_for(self, attempt: int, rng: Optional[random.Random] = None) -> float:
        """Delay after the given failed attempt (1-based)."""
        delay = min(self.base_delay * (self.backoff_factor ** (attempt - 1)), self.max_delay)
        if self.jitter:
            delay *= 0.5 + (rng or random).random()
        return delay

    def wait(self, attempt: int) -> None:
        delay = self.delay_for(attempt)
        if delay > 0:
            self.sleep(delay)

    def with_attempts(self, max_attempts: int) -> "RetryPolicy":
        return RetryPolicy(
            max_attempts=max_attempts,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            backoff_factor=self.backoff_factor,
            jitter=self.jitter,
            sleep=self.sleep,
        )
