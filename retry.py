import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Type

from errors import FetchError, RetryExhausted

logger = logging.getLogger(__name__)

GIVE_UP_MESSAGE = "Failed to load venue data. Please refresh the page."


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    base_delay: float = 1.0

    def delay(self, attempt: int) -> float:
        """Seconds to wait before retry number ``attempt`` (1-based): 1, 2, 4, ..."""
        return self.base_delay * 2 ** (attempt - 1)


class LoadTracker:
    """Counts retries of the current load.

    Resets on a successful load or when the user asks for a manual retry.
    Once exhausted it stays exhausted until reset.
    """

    def __init__(self, policy: RetryPolicy):
        self.policy = policy
        self.retry_count = 0
        self.error: Optional[str] = None

    @property
    def exhausted(self) -> bool:
        return self.retry_count >= self.policy.max_retries

    def record_retry(self):
        self.retry_count += 1
        self.error = f"Loading failed. Retrying... ({self.retry_count}/{self.policy.max_retries})"
        return self.retry_count

    def give_up(self):
        self.error = GIVE_UP_MESSAGE

    def succeeded(self):
        self.retry_count = 0
        self.error = None

    def reset(self):
        self.retry_count = 0
        self.error = None


def retry_call(
    func: Callable,
    policy: RetryPolicy,
    tracker: Optional[LoadTracker] = None,
    sleep: Callable[[float], None] = time.sleep,
    on_retry: Optional[Callable[[int, Exception], None]] = None,
    retry_on: Tuple[Type[BaseException], ...] = (FetchError,),
):
    """Call ``func`` and retry it with exponential backoff.

    Raises RetryExhausted after ``policy.max_retries`` retries have failed.
    An exhausted tracker is not retried again until it is reset.
    """
    tracker = tracker or LoadTracker(policy)
    attempts = 0
    while True:
        attempts += 1
        try:
            result = func()
        except retry_on as e:
            logger.error("Error fetching data: %s", e)
            if tracker.exhausted:
                tracker.give_up()
                logger.error("Max retries reached")
                raise RetryExhausted(e, attempts, GIVE_UP_MESSAGE) from e
            attempt = tracker.record_retry()
            if on_retry:
                on_retry(attempt, e)
            wait = policy.delay(attempt)
            logger.info("Retry attempt %d of %d in %.0fs", attempt, policy.max_retries, wait)
            sleep(wait)
            continue
        tracker.succeeded()
        return result
