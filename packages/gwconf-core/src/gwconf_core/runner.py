"""Suite runner: executes planned tests with isolation and records outcomes.

Tests run one at a time in plan order. Each execution is wrapped so that
any failure inside a test body (assertion, fatal, unexpected exception,
timeout) becomes a Failed outcome and never stops the suite. Two conditions
end the run early:

- the cluster handle becomes unusable (ClusterUnavailableError, or a failed
  connectivity probe after a test failure): the current and remaining tests
  are recorded as skipped with "run aborted";
- the caller sets the cancel event: the in-flight test and all queued tests
  are recorded as skipped with "run cancelled".

Either way every planned test gets exactly one outcome.
"""

from __future__ import annotations

import queue
import threading
import time
import traceback
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Any

import structlog

from gwconf_core.context import ConformanceT
from gwconf_core.errors import (
    ClusterUnavailableError,
    RunCancelledError,
    TestFailure,
    TestSkipped,
)
from gwconf_core.isolation import IsolationUnit
from gwconf_core.polling import PollingTimeoutError
from gwconf_core.schemas.options import TimeoutConfig
from gwconf_core.schemas.outcome import (
    SKIP_ABORTED,
    SKIP_CANCELLED,
    SKIP_EXPLICIT,
    RunResult,
    TestOutcome,
    TestStatus,
)
from gwconf_core.telemetry.tracing import create_span

if TYPE_CHECKING:
    from gwconf_core.applicability import PlannedTest
    from gwconf_core.catalog import ConformanceTest
    from gwconf_core.cluster import ClusterHandle
    from gwconf_core.features import FeatureSet

logger = structlog.get_logger(__name__)

# How often a waiting runner checks for run cancellation
CANCEL_CHECK_INTERVAL: float = 0.2


def _skipped(test: ConformanceTest, reason: str) -> TestOutcome:
    return TestOutcome(
        test_name=test.short_name,
        features=test.features,
        status=TestStatus.SKIPPED,
        detail=reason,
    )


def _format_exception(prefix: str, error: BaseException) -> str:
    trace = "".join(traceback.format_exception(type(error), error, error.__traceback__))
    return f"{prefix}: {error}\n{trace}".rstrip()


class SuiteRunner:
    """Runs a test plan against a cluster.

    Args:
        cluster: Shared cluster handle.
        supported_features: Resolved supported-feature set.
        namespace_labels: Labels for namespaces created by isolation units.
        timeouts: Wait bounds.
        gateway_class_name: GatewayClass handed to tests.
        cleanup: Release isolation units after each test.
        retries: Extra attempts for a failed test.
        debug: Enable test debug output.
    """

    def __init__(
        self,
        cluster: ClusterHandle,
        supported_features: FeatureSet,
        *,
        namespace_labels: dict[str, str] | None = None,
        timeouts: TimeoutConfig | None = None,
        gateway_class_name: str = "gateway-conformance",
        cleanup: bool = True,
        retries: int = 0,
        debug: bool = False,
    ) -> None:
        self._cluster = cluster
        self._supported = supported_features
        self._labels = dict(namespace_labels or {})
        self._timeouts = timeouts or TimeoutConfig()
        self._gateway_class_name = gateway_class_name
        self._cleanup = cleanup
        self._retries = retries
        self._debug = debug

    def run(
        self,
        plan: Sequence[PlannedTest],
        skip_tests: Iterable[str] = (),
        cancel_event: threading.Event | None = None,
    ) -> RunResult:
        """Execute the plan and return one outcome per planned test.

        Args:
            plan: Planned tests in execution order.
            skip_tests: Names of tests never to execute.
            cancel_event: Set by the caller to cancel the run.

        Returns:
            RunResult with outcomes in plan order.
        """
        cancel_event = cancel_event or threading.Event()
        skip = set(skip_tests)
        outcomes: list[TestOutcome] = []
        abort_reason: str | None = None
        cancelled = False

        logger.info("suite_run.started", tests=len(plan), skip_tests=sorted(skip))

        for planned in plan:
            test = planned.test
            if cancel_event.is_set():
                cancelled = True
                outcomes.append(_skipped(test, SKIP_CANCELLED))
                continue
            if abort_reason is not None:
                outcomes.append(_skipped(test, f"{SKIP_ABORTED}: {abort_reason}"))
                continue
            if test.short_name in skip:
                logger.info("run_test.skipped", test=test.short_name, reason=SKIP_EXPLICIT)
                outcomes.append(_skipped(test, SKIP_EXPLICIT))
                continue
            if planned.skip_reason is not None:
                logger.info("run_test.skipped", test=test.short_name, reason=planned.skip_reason)
                outcomes.append(_skipped(test, planned.skip_reason))
                continue

            try:
                outcome = self._run_with_retries(test, cancel_event)
            except ClusterUnavailableError as e:
                abort_reason = str(e)
                logger.error("suite_run.aborted", test=test.short_name, reason=abort_reason)
                outcomes.append(_skipped(test, f"{SKIP_ABORTED}: {abort_reason}"))
                continue
            except RunCancelledError:
                cancelled = True
                logger.warning("suite_run.cancelled", test=test.short_name)
                outcomes.append(_skipped(test, SKIP_CANCELLED))
                continue

            if outcome.failed:
                probe_error = self._probe_cluster()
                if probe_error is not None:
                    abort_reason = probe_error
                    logger.error("suite_run.aborted", test=test.short_name, reason=abort_reason)
                    outcome = _skipped(test, f"{SKIP_ABORTED}: {abort_reason}")
            outcomes.append(outcome)

        # Cancellation that landed after the last started attempt
        cancelled = cancelled or cancel_event.is_set()
        result = RunResult(
            outcomes=tuple(outcomes),
            abort_reason=abort_reason,
            cancelled=cancelled,
        )
        logger.info(
            "suite_run.completed",
            passed=result.count(TestStatus.PASSED),
            failed=result.count(TestStatus.FAILED),
            skipped=result.count(TestStatus.SKIPPED),
            aborted=result.aborted,
            cancelled=cancelled,
        )
        return result

    def _probe_cluster(self) -> str | None:
        """Return why the cluster is unusable, or None if it still works."""
        try:
            self._cluster.check_connection()
        except ClusterUnavailableError as e:
            return str(e)
        return None

    def _run_with_retries(
        self,
        test: ConformanceTest,
        cancel_event: threading.Event,
    ) -> TestOutcome:
        attempt = 0
        while True:
            attempt += 1
            outcome = self._run_once(test, cancel_event, attempt)
            if not outcome.failed or attempt > self._retries:
                return outcome
            # A finished attempt is kept; cancellation only drops work not yet started
            if cancel_event.is_set():
                return outcome
            logger.warning(
                "run_test.retrying",
                test=test.short_name,
                attempt=attempt,
                detail=outcome.detail,
            )

    def _run_once(
        self,
        test: ConformanceTest,
        cancel_event: threading.Event,
        attempt: int,
    ) -> TestOutcome:
        """Execute one attempt of one test inside its isolation unit.

        Raises:
            ClusterUnavailableError: The cluster became unusable.
            RunCancelledError: The run was cancelled.
        """
        # Set on timeout or cancellation so the body's own waits stop. Isolation
        # waits follow the run-level event only, so a timed-out test is still
        # fully released before the next one starts.
        test_cancel = threading.Event()
        unit = IsolationUnit(
            test,
            self._cluster,
            labels=self._labels,
            timeouts=self._timeouts,
            cleanup=self._cleanup,
            cancel_event=cancel_event,
        )
        t = ConformanceT(
            test.short_name,
            self._cluster,
            self._supported,
            self._labels,
            self._timeouts,
            gateway_class_name=self._gateway_class_name,
            cancel_event=test_cancel,
            debug=self._debug,
        )

        logger.info(
            "run_test.started",
            test=test.short_name,
            attempt=attempt,
            features=[f.value for f in test.features],
            isolated=test.isolated,
            slow=test.slow,
        )
        started = time.monotonic()
        status = TestStatus.FAILED
        detail: str | None = None

        with create_span(
            "gwconf.test",
            {
                "gwconf.test.name": test.short_name,
                "gwconf.test.attempt": attempt,
                "gwconf.test.features": [f.value for f in test.features],
            },
        ) as span:
            try:
                try:
                    t.namespace = unit.acquire()
                except (ClusterUnavailableError, RunCancelledError):
                    raise
                except Exception as e:  # noqa: BLE001
                    status, detail = TestStatus.FAILED, f"isolation setup failed: {e}"
                else:
                    status, detail = self._execute_body(test, t, cancel_event, test_cancel)
            finally:
                problems = t.run_cleanups()
                try:
                    unit.release()
                except ClusterUnavailableError:
                    raise
                except Exception as e:  # noqa: BLE001
                    problems.append(f"isolation teardown failed: {e}")

            if problems and status is not TestStatus.SKIPPED:
                status = TestStatus.FAILED
                detail = "\n".join(filter(None, [detail, *problems]))
            span.set_attribute("gwconf.test.status", status.value)

        duration = time.monotonic() - started
        outcome = TestOutcome(
            test_name=test.short_name,
            features=test.features,
            status=status,
            detail=detail,
            attempts=attempt,
            duration_seconds=duration,
        )
        log = logger.warning if outcome.failed else logger.info
        log(
            f"run_test.{status.value.lower()}",
            test=test.short_name,
            attempt=attempt,
            duration_seconds=round(duration, 3),
            detail=detail,
        )
        return outcome

    def _execute_body(
        self,
        test: ConformanceTest,
        t: ConformanceT,
        cancel_event: threading.Event,
        test_cancel: threading.Event,
    ) -> tuple[TestStatus, str | None]:
        """Run the body on a daemon thread, bounded by the test timeout.

        The thread is not joined on timeout or cancellation: test_cancel is
        set so its waits return promptly, and the runner moves on. Being a
        daemon, an abandoned body never keeps the process alive.
        """
        timeout = test.timeout or self._timeouts.test_default
        deadline = time.monotonic() + timeout
        results: queue.Queue[tuple[bool, Any]] = queue.Queue(maxsize=1)

        def target() -> None:
            try:
                results.put((True, self._invoke(test, t)))
            except BaseException as e:  # noqa: BLE001 - re-raised by the runner
                results.put((False, e))

        worker = threading.Thread(
            target=target, name=f"gwconf-test-{test.short_name}", daemon=True
        )
        worker.start()
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                test_cancel.set()
                return TestStatus.FAILED, f"timed out after {timeout:g}s"
            try:
                ok, value = results.get(timeout=min(remaining, CANCEL_CHECK_INTERVAL))
            except queue.Empty:
                if cancel_event.is_set():
                    test_cancel.set()
                    raise RunCancelledError(test.short_name) from None
                continue
            if not ok:
                raise value
            return value

    @staticmethod
    def _invoke(test: ConformanceTest, t: ConformanceT) -> tuple[TestStatus, str | None]:
        """Call the test body and convert its result into a status."""
        try:
            test.body(t)
        except TestSkipped as e:
            return TestStatus.SKIPPED, e.reason
        except TestFailure:
            return TestStatus.FAILED, "\n".join(t.errors)
        except (ClusterUnavailableError, RunCancelledError):
            raise
        except PollingTimeoutError as e:
            return TestStatus.FAILED, "\n".join([*t.errors, str(e)])
        except AssertionError as e:
            return TestStatus.FAILED, _format_exception("assertion failed", e)
        except Exception as e:  # noqa: BLE001
            return TestStatus.FAILED, _format_exception(f"unexpected {type(e).__name__}", e)

        if t.failed:
            return TestStatus.FAILED, "\n".join(t.errors)
        return TestStatus.PASSED, None


__all__ = ["CANCEL_CHECK_INTERVAL", "SuiteRunner"]
