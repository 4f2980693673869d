"""Exception hierarchy for gwconf-core.

All run-level exceptions inherit from ConformanceError so callers can catch
every orchestrator failure with a single except clause. Per-test signals
(TestFailure, TestSkipped) are deliberately outside that hierarchy: they are
raised inside test bodies and always recovered by the suite runner.

Exception Hierarchy:
    ConformanceError (base)
    ├── ConfigurationError          # Invalid options, reported before cluster use
    │   ├── UnknownFeatureError     # Feature name not in the registry
    │   ├── UnknownProfileError     # Profile name not in the registry
    │   ├── InvalidImplementationError  # Missing/malformed implementation details
    │   └── DuplicateTestError      # Two catalog entries share a short name
    ├── ClusterUnavailableError     # Cluster handle unusable (auth, network)
    ├── ReportWriteError            # Report could not be serialized or written
    └── RunCancelledError           # Caller cancelled the run

    TestFailure                     # ConformanceT.fatal() inside a test body
    TestSkipped                     # ConformanceT.skip() inside a test body

Example:
    >>> from gwconf_core.errors import UnknownFeatureError
    >>> raise UnknownFeatureError(["HTTPRouteTeleport"])
    Traceback (most recent call last):
        ...
    UnknownFeatureError: Unknown feature(s): HTTPRouteTeleport
"""

from __future__ import annotations

from collections.abc import Iterable


class ConformanceError(Exception):
    """Base exception for all run-level conformance errors."""

    pass


class ConfigurationError(ConformanceError):
    """Raised when suite options are invalid.

    Configuration errors are always fatal and are raised before any
    interaction with the cluster, so no report is produced.
    """

    pass


class UnknownFeatureError(ConfigurationError):
    """Raised when a feature identifier is not in the feature registry.

    Attributes:
        features: Sorted list of the unknown identifiers.
    """

    def __init__(self, features: Iterable[str]) -> None:
        self.features = sorted(set(features))
        super().__init__(f"Unknown feature(s): {', '.join(self.features)}")


class UnknownProfileError(ConfigurationError):
    """Raised when a requested conformance profile does not exist.

    Attributes:
        profiles: Sorted list of the unknown profile names.
    """

    def __init__(self, profiles: Iterable[str]) -> None:
        self.profiles = sorted(set(profiles))
        super().__init__(f"Unknown conformance profile(s): {', '.join(self.profiles)}")


class InvalidImplementationError(ConfigurationError):
    """Raised when implementation details are missing or malformed.

    Attributes:
        errors: Mapping of field name to the problem found.
    """

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = dict(sorted(errors.items()))
        detail = "; ".join(f"{field}: {problem}" for field, problem in self.errors.items())
        super().__init__(f"Invalid implementation details ({detail})")


class DuplicateTestError(ConfigurationError):
    """Raised when a test catalog contains the same short name twice.

    Attributes:
        short_name: The duplicated test name.
    """

    def __init__(self, short_name: str) -> None:
        self.short_name = short_name
        super().__init__(f"Test already registered in catalog: {short_name}")


class ClusterUnavailableError(ConformanceError):
    """Raised when the shared cluster handle can no longer be used.

    Raised during setup this is fatal and prevents report generation.
    Raised mid-run it aborts the remaining tests.

    Attributes:
        reason: Why the cluster is unusable.
        operation: The operation that detected the problem, if known.
    """

    def __init__(self, reason: str, operation: str | None = None) -> None:
        self.reason = reason
        self.operation = operation
        if operation:
            message = f"Cluster unavailable during {operation}: {reason}"
        else:
            message = f"Cluster unavailable: {reason}"
        super().__init__(message)


class ReportWriteError(ConformanceError):
    """Raised when the conformance report cannot be serialized or written.

    Attributes:
        path: Destination path, or None when serialization failed.
        reason: Underlying error description.
    """

    def __init__(self, reason: str, path: str | None = None) -> None:
        self.path = path
        self.reason = reason
        if path:
            message = f"Failed to write conformance report to {path}: {reason}"
        else:
            message = f"Failed to serialize conformance report: {reason}"
        super().__init__(message)


class RunCancelledError(ConformanceError):
    """Raised by blocking waits once the run has been cancelled."""

    def __init__(self, description: str = "run") -> None:
        self.description = description
        super().__init__(f"Cancelled while waiting for {description}")


class TestFailure(Exception):
    """Raised by ConformanceT.fatal() to stop a test body immediately."""

    __test__ = False


class TestSkipped(Exception):
    """Raised by ConformanceT.skip() to record the test as skipped.

    Attributes:
        reason: Why the test body chose to skip.
    """

    __test__ = False

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


__all__ = [
    "ClusterUnavailableError",
    "ConfigurationError",
    "ConformanceError",
    "DuplicateTestError",
    "InvalidImplementationError",
    "ReportWriteError",
    "RunCancelledError",
    "TestFailure",
    "TestSkipped",
    "UnknownFeatureError",
    "UnknownProfileError",
]
