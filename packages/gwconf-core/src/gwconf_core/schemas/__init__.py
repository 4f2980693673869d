"""Schema definitions for gwconf.

Pydantic models for run configuration, per-test outcomes and the
conformance report.

Option Models:
    SuiteOptions: Every recognized run option
    TimeoutConfig: Bounds for blocking waits
    Implementation: Metadata for the implementation under test

Outcome Models:
    TestOutcome: Result of one catalog entry
    RunResult: Ordered outcomes plus abort/cancel state

Report Models:
    ConformanceReport: Final artifact
    ProfileReport, Status, ExtendedStatus, Statistics, Result
"""

from __future__ import annotations

from gwconf_core.schemas.implementation import Implementation, parse_implementation
from gwconf_core.schemas.options import (
    SuiteOptions,
    TimeoutConfig,
    parse_conformance_profiles,
    parse_namespace_labels,
    parse_skip_tests,
    parse_supported_features,
)
from gwconf_core.schemas.outcome import RunResult, TestOutcome, TestStatus
from gwconf_core.schemas.report import (
    ConformanceReport,
    ExtendedStatus,
    ProfileReport,
    Result,
    Statistics,
    Status,
)

__all__ = [
    "ConformanceReport",
    "ExtendedStatus",
    "Implementation",
    "ProfileReport",
    "Result",
    "RunResult",
    "Statistics",
    "Status",
    "SuiteOptions",
    "TestOutcome",
    "TestStatus",
    "TimeoutConfig",
    "parse_conformance_profiles",
    "parse_implementation",
    "parse_namespace_labels",
    "parse_skip_tests",
    "parse_supported_features",
]
