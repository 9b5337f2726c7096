from __future__ import annotations

import random
from typing import Callable

from ..core.constants import JITTER_RATIO
from ..core.enums import ErrorCategory
from ..core.settings import RetryConfig


class RetryPolicy:
    """Exponential backoff with jitter, bounded by attempts and a delay ceiling."""

    def __init__(self, config: RetryConfig, *, rand: Callable[[], float] = random.random):
        self._config = config
        self._rand = rand

    @property
    def max_attempts(self) -> int:
        return self._config.max_attempts

    def is_retryable(self, category: ErrorCategory) -> bool:
        return category in self._config.retryable_categories

    def compute_delay_ms(self, attempt: int) -> int:
        """Delay before the retry that follows the 0-based ``attempt``."""

        base = self._config.base_delay_ms * (self._config.backoff_multiplier ** attempt)
        delay = min(base, self._config.max_delay_ms)
        jitter = self._rand() * JITTER_RATIO * delay
        return int(delay + jitter)
