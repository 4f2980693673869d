"""gwconf-core: Gateway API conformance orchestration.

This package provides:
- SupportedFeature, FEATURE_REGISTRY: The closed set of testable features
- resolve_supported_features: Effective feature set from user input
- ProfileName, PROFILE_REGISTRY: Conformance profiles and their features
- TestCatalog, ConformanceTest: Explicit, ordered test catalog
- ConformanceT: Per-test context and assertion surface
- SuiteRunner: Isolated, cancellable test execution
- aggregate: Profile/feature scoring into a ConformanceReport
- ConformanceSuite: Orchestrator wiring everything together
- KubernetesCluster: Cluster handle backed by the kubernetes client

Example:
    >>> from gwconf_core import ConformanceSuite, SuiteOptions, TestCatalog
    >>> catalog = TestCatalog()
    >>> options = SuiteOptions(supported_features=["Gateway", "HTTPRoute"])
    >>> suite = ConformanceSuite(options, cluster, catalog)  # doctest: +SKIP
    >>> execution = suite.execute()  # doctest: +SKIP
"""

from __future__ import annotations

__version__ = "0.1.0"

from gwconf_core.aggregator import aggregate
from gwconf_core.applicability import PlannedTest, plan_tests
from gwconf_core.capabilities import resolve_supported_features
from gwconf_core.catalog import ConformanceTest, TestCatalog
from gwconf_core.cluster import ClusterHandle, KubernetesCluster
from gwconf_core.context import ConformanceT
from gwconf_core.errors import (
    ClusterUnavailableError,
    ConfigurationError,
    ConformanceError,
    DuplicateTestError,
    InvalidImplementationError,
    ReportWriteError,
    RunCancelledError,
    UnknownFeatureError,
    UnknownProfileError,
)
from gwconf_core.features import FEATURE_REGISTRY, FeatureChannel, SupportedFeature
from gwconf_core.orchestrator import (
    ConformanceSuite,
    SuiteExecution,
    ValidatedOptions,
    validate_options,
)
from gwconf_core.profiles import PROFILE_REGISTRY, ConformanceProfile, ProfileName
from gwconf_core.report import render_report, write_report
from gwconf_core.runner import SuiteRunner
from gwconf_core.schemas import (
    ConformanceReport,
    Implementation,
    Result,
    RunResult,
    SuiteOptions,
    TestOutcome,
    TestStatus,
    TimeoutConfig,
)

__all__ = [
    "ClusterHandle",
    "ClusterUnavailableError",
    "ConfigurationError",
    "ConformanceError",
    "ConformanceProfile",
    "ConformanceReport",
    "ConformanceSuite",
    "ConformanceT",
    "ConformanceTest",
    "DuplicateTestError",
    "FEATURE_REGISTRY",
    "FeatureChannel",
    "Implementation",
    "InvalidImplementationError",
    "KubernetesCluster",
    "PROFILE_REGISTRY",
    "PlannedTest",
    "ProfileName",
    "ReportWriteError",
    "Result",
    "RunCancelledError",
    "RunResult",
    "SuiteExecution",
    "SuiteOptions",
    "SuiteRunner",
    "SupportedFeature",
    "TestCatalog",
    "TestOutcome",
    "TestStatus",
    "TimeoutConfig",
    "UnknownFeatureError",
    "UnknownProfileError",
    "ValidatedOptions",
    "__version__",
    "aggregate",
    "plan_tests",
    "render_report",
    "resolve_supported_features",
    "validate_options",
    "write_report",
]
