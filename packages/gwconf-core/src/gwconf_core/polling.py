"""Bounded polling for cluster state.

Every wait in a conformance run goes through wait_for_condition, which
enforces a timeout and stops early when the run is cancelled.

Example:
    >>> import threading
    >>> from gwconf_core.polling import wait_for_condition
    >>> wait_for_condition(lambda: True, timeout=1.0, description="noop")
    True
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from gwconf_core.errors import ClusterUnavailableError, RunCancelledError


class PollingTimeoutError(TimeoutError):
    """Raised when a polling operation times out.

    Attributes:
        description: What was being waited for.
        timeout: How long we waited.
        last_error: Last exception raised by the condition, if any.
    """

    def __init__(
        self,
        description: str,
        timeout: float,
        last_error: Exception | None = None,
    ) -> None:
        self.description = description
        self.timeout = timeout
        self.last_error = last_error
        message = f"Timeout waiting for {description} after {timeout:.1f}s"
        if last_error:
            message += f" (last error: {last_error})"
        super().__init__(message)


def wait_for_condition(
    condition: Callable[[], bool],
    timeout: float = 30.0,
    interval: float = 0.5,
    description: str = "condition",
    *,
    cancel_event: threading.Event | None = None,
    raise_on_timeout: bool = True,
) -> bool:
    """Poll until condition is True, the timeout elapses, or the run is cancelled.

    Exceptions raised by ``condition`` are remembered and retried, except
    ClusterUnavailableError which propagates immediately because no later
    poll can succeed.

    Args:
        condition: Callable returning True when the condition is met.
        timeout: Maximum wait time in seconds.
        interval: Poll interval in seconds.
        description: Description for error messages.
        cancel_event: Event that, once set, stops the wait.
        raise_on_timeout: If False, return False on timeout instead of raising.

    Returns:
        True if the condition was met, False on timeout with
        ``raise_on_timeout=False``.

    Raises:
        PollingTimeoutError: Condition not met within timeout.
        RunCancelledError: ``cancel_event`` was set during the wait.
        ClusterUnavailableError: Raised by the condition.
    """
    start_time = time.monotonic()
    last_error: Exception | None = None

    while True:
        if cancel_event is not None and cancel_event.is_set():
            raise RunCancelledError(description)

        try:
            if condition():
                return True
        except ClusterUnavailableError:
            raise
        except Exception as e:  # noqa: BLE001
            last_error = e

        elapsed = time.monotonic() - start_time
        if elapsed >= timeout:
            if raise_on_timeout:
                raise PollingTimeoutError(description, timeout, last_error)
            return False

        # Sleep for interval, but don't exceed remaining time
        sleep_time = min(interval, timeout - elapsed)
        if sleep_time > 0:
            if cancel_event is not None:
                cancel_event.wait(sleep_time)
            else:
                time.sleep(sleep_time)


__all__ = ["PollingTimeoutError", "wait_for_condition"]
