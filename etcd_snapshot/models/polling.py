import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)


class PollTimeoutError(TimeoutError):
    def __init__(self, description: str, timeout: float):
        super().__init__(f"Timed out waiting for {description}", timeout)


def poll_until_timeout(condition: Callable[[], bool], interval: float, timeout: float, immediate: bool = True,
                       description: str = "condition") -> None:
    """
    Call `condition` every `interval` seconds until it returns True or `timeout` seconds have elapsed.

    When `immediate` is set the first check happens right away, otherwise after one interval. An exception raised
    by `condition` stops the poll and propagates to the caller; conditions that should retry on transient errors
    must catch them and return False.

    :raises PollTimeoutError: if the condition is not met before the timeout.
    """
    logger.info(f"Waiting up to {timeout} seconds for {description}, checking every {interval} seconds")
    end_time = time.monotonic() + timeout
    if not immediate:
        time.sleep(interval)
    while True:
        if condition():
            return
        if time.monotonic() >= end_time:
            raise PollTimeoutError(description, timeout)
        time.sleep(interval)
