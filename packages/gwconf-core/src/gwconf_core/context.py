"""Per-test context and assertion surface.

Every test body receives a ConformanceT. It exposes the shared, read-only
run state (cluster handle, supported features, namespace labels, timeouts)
and the helpers a test uses to report its result:

- ``error(msg)``: record a failure and keep going
- ``fatal(msg)``: record a failure and stop the test
- ``require(cond, msg)``: ``fatal`` unless ``cond`` holds
- ``skip(reason)``: stop the test and record it as skipped
- ``wait_for(cond, ...)``: bounded, cancellable poll
- ``cleanup(fn)``: register a callback run after the body, last-in first-out

Plain ``assert`` statements and unexpected exceptions are also recorded as
failures by the runner.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, NoReturn

import structlog

from gwconf_core.errors import TestFailure, TestSkipped
from gwconf_core.features import FeatureSet, SupportedFeature
from gwconf_core.polling import wait_for_condition

if TYPE_CHECKING:
    from gwconf_core.cluster import ClusterHandle
    from gwconf_core.schemas.options import TimeoutConfig


class ConformanceT:
    """Context handed to one execution of one test body.

    Attributes:
        test_name: Short name of the running test.
        cluster: Shared cluster handle.
        supported_features: Resolved supported-feature set for the run.
        namespace_labels: Labels applied to suite-created namespaces.
        namespace: Dedicated isolation namespace, or None.
        gateway_class_name: GatewayClass under test.
        timeouts: Wait bounds for the run.
        cancel_event: Set when the test must stop (timeout or run cancelled).
    """

    def __init__(
        self,
        test_name: str,
        cluster: ClusterHandle,
        supported_features: FeatureSet,
        namespace_labels: dict[str, str],
        timeouts: TimeoutConfig,
        *,
        gateway_class_name: str,
        namespace: str | None = None,
        cancel_event: threading.Event | None = None,
        debug: bool = False,
    ) -> None:
        self.test_name = test_name
        self.cluster = cluster
        self.supported_features = supported_features
        self.namespace_labels = dict(namespace_labels)
        self.namespace = namespace
        self.gateway_class_name = gateway_class_name
        self.timeouts = timeouts
        self.cancel_event = cancel_event or threading.Event()
        self.debug = debug
        self._errors: list[str] = []
        self._cleanups: list[Callable[[], Any]] = []
        self._log = structlog.get_logger("gwconf_core.test").bind(test=test_name)

    @property
    def errors(self) -> list[str]:
        """Failures recorded so far."""
        return list(self._errors)

    @property
    def failed(self) -> bool:
        return bool(self._errors)

    def supports(self, feature: SupportedFeature) -> bool:
        return feature in self.supported_features

    def log(self, message: str, **fields: Any) -> None:
        self._log.info("test.log", message=message, **fields)

    def debug_log(self, message: str, **fields: Any) -> None:
        if self.debug:
            self._log.debug("test.debug", message=message, **fields)

    def error(self, message: str) -> None:
        self._errors.append(message)
        self._log.warning("test.error", message=message)

    def fatal(self, message: str) -> NoReturn:
        self._errors.append(message)
        raise TestFailure(message)

    def require(self, condition: bool, message: str) -> None:
        if not condition:
            self.fatal(message)

    def skip(self, reason: str) -> NoReturn:
        raise TestSkipped(reason)

    def cleanup(self, fn: Callable[[], Any]) -> None:
        self._cleanups.append(fn)

    def wait_for(
        self,
        condition: Callable[[], bool],
        description: str,
        timeout: float | None = None,
        interval: float | None = None,
    ) -> None:
        """Poll ``condition`` until true; raises PollingTimeoutError on timeout."""
        wait_for_condition(
            condition,
            timeout=timeout if timeout is not None else self.timeouts.test_default,
            interval=interval if interval is not None else self.timeouts.poll_interval,
            description=description,
            cancel_event=self.cancel_event,
        )

    def run_cleanups(self) -> list[str]:
        """Run registered cleanups in reverse order.

        Every cleanup runs even if an earlier one raises. Returns the errors
        raised, formatted for diagnostics.
        """
        problems: list[str] = []
        while self._cleanups:
            fn = self._cleanups.pop()
            try:
                fn()
            except Exception as e:  # noqa: BLE001
                problems.append(f"cleanup {getattr(fn, '__name__', fn)!s} failed: {e}")
                self._log.warning("test.cleanup_failed", error=str(e))
        return problems


__all__ = ["ConformanceT"]
