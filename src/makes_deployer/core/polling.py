"""
Bounded polling.

Every wait in the deployer (role readiness, asynchronous platform
operations) goes through wait_until(), which polls at a fixed interval,
gives up with DeploymentTimeoutError once the maximum wait is spent, and
stops early with DeploymentCancelledError when its cancellation event is set.
"""

import logging
import threading
import time
from typing import Callable, Optional, TypeVar

from .exceptions import DeploymentCancelledError, DeploymentTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def wait_until(
    condition: Callable[[], T],
    description: str,
    timeout: float,
    interval: float,
    cancel_event: Optional[threading.Event] = None,
    **context
) -> T:
    """
    Poll condition until it returns a truthy value.

    Args:
        condition: Zero-argument callable; its first truthy result is returned
        description: What is being waited for (used in logs and errors)
        timeout: Maximum total wait in seconds
        interval: Seconds between attempts
        cancel_event: Optional event; when set, the wait stops
        **context: service_name / slot passed to raised errors

    Returns:
        The first truthy value returned by condition

    Raises:
        DeploymentTimeoutError: If timeout expires first
        DeploymentCancelledError: If cancel_event is set
    """
    deadline = time.monotonic() + timeout
    attempt = 0

    while True:
        if cancel_event is not None and cancel_event.is_set():
            raise DeploymentCancelledError(f"Cancelled while waiting for {description}", **context)

        attempt += 1
        result = condition()
        if result:
            return result

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            logger.error(f"✗ Gave up waiting for {description} after {attempt} attempts")
            raise DeploymentTimeoutError(description, timeout, **context)

        delay = min(interval, remaining)
        logger.info(f"  {description} not ready (attempt {attempt}), waiting {delay:.0f}s...")
        if cancel_event is not None:
            # Returns early when the event is set; checked at the top of the loop
            cancel_event.wait(delay)
        else:
            time.sleep(delay)
