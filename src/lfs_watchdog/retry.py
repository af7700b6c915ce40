"""Exponential backoff for read-only calls against the hosting platform.

Only TransportError instances flagged ``retryable`` (server errors, rate
limiting, dropped connections) are retried. A 404 or any classification
error fails immediately. Publishing comments and statuses is never retried.
"""

import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Optional, TypeVar

from .exceptions import TransportError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Backoff:
    """Delay schedule between attempts of a failing read.

    Attributes:
        retries: Extra attempts after the first call (default: 2)
        first_delay: Seconds to wait before the first retry (default: 0.5)
        ceiling: No single wait exceeds this many seconds (default: 10.0)
        multiplier: Growth of the wait from one retry to the next (default: 2.0)
        jitter: Draw each wait uniformly from [delay/2, delay] (default: True)
    """

    retries: int = 2
    first_delay: float = 0.5
    ceiling: float = 10.0
    multiplier: float = 2.0
    jitter: bool = True

    def __post_init__(self) -> None:
        checks = (
            ("retries", self.retries >= 0),
            ("first_delay", self.first_delay > 0),
            ("ceiling", self.ceiling >= self.first_delay),
            ("multiplier", self.multiplier >= 1.0),
        )
        invalid = [name for name, ok in checks if not ok]
        if invalid:
            raise ValueError(f"Invalid backoff setting(s): {', '.join(invalid)}")

    def delays(self) -> Iterator[float]:
        """Yield the wait before each retry, ``retries`` values in total."""
        delay = self.first_delay
        for _ in range(self.retries):
            yield random.uniform(delay / 2, delay) if self.jitter else delay
            delay = min(delay * self.multiplier, self.ceiling)


NO_RETRY = Backoff(retries=0)


def is_retryable(exception: BaseException) -> bool:
    """Return True for TransportErrors flagged as retryable."""
    return isinstance(exception, TransportError) and bool(getattr(exception, "retryable", False))


def retry_with_backoff(
    func: Callable[..., T],
    *args: Any,
    backoff: Optional[Backoff] = None,
    **kwargs: Any,
) -> T:
    """Call ``func`` and retry retryable transport failures with backoff.

    Raises:
        TransportError: The last error once the schedule is used up
        Exception: Any error that is not retryable, unchanged
    """
    schedule = (backoff or Backoff()).delays()
    func_name = getattr(func, "__name__", repr(func))
    attempt = 1
    while True:
        try:
            return func(*args, **kwargs)
        except TransportError as e:
            if not is_retryable(e):
                raise
            delay = next(schedule, None)
            if delay is None:
                logger.warning(f"Giving up on {func_name} after {attempt} attempt(s): {e}")
                raise
            logger.info(f"{func_name} failed on attempt {attempt} ({e}); retrying in {delay:.2f}s")
            time.sleep(delay)
            attempt += 1
