"""Conformance orchestrator: configuration, lifecycle, run and report.

ConformanceSuite validates all options when it is constructed, before any
cluster interaction, then drives one run:

1. setup(): verify the cluster and create the shared base namespaces
2. run(): plan the catalog and execute it with the suite runner
3. teardown(): remove the shared namespaces (unless cleanup is disabled)
4. report(): aggregate outcomes into the conformance report

Example:
    >>> suite = ConformanceSuite(options, cluster, catalog)  # doctest: +SKIP
    >>> execution = suite.execute()  # doctest: +SKIP
    >>> write_report(execution.report, options.report_output)  # doctest: +SKIP
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timezone

import structlog

from gwconf_core.aggregator import aggregate
from gwconf_core.applicability import plan_tests
from gwconf_core.capabilities import resolve_supported_features
from gwconf_core.catalog import TestCatalog
from gwconf_core.cluster import ClusterHandle
from gwconf_core.errors import (
    ClusterUnavailableError,
    ConfigurationError,
    InvalidImplementationError,
    RunCancelledError,
)
from gwconf_core.features import FEATURE_REGISTRY, FeatureRegistry, FeatureSet
from gwconf_core.isolation import ensure_namespace, remove_namespace, validate_namespace
from gwconf_core.profiles import PROFILE_REGISTRY, ProfileName, ProfileRegistry
from gwconf_core.runner import SuiteRunner
from gwconf_core.schemas.options import SuiteOptions
from gwconf_core.schemas.outcome import RunResult
from gwconf_core.schemas.report import ConformanceReport
from gwconf_core.telemetry.tracing import create_span

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SuiteExecution:
    """What one complete execution produced."""

    result: RunResult
    report: ConformanceReport


@dataclass(frozen=True)
class ValidatedOptions:
    """Option values resolved against the registries and the catalog."""

    supported_features: FeatureSet
    profiles: frozenset[ProfileName]


def validate_options(
    options: SuiteOptions,
    catalog: TestCatalog,
    *,
    feature_registry: FeatureRegistry = FEATURE_REGISTRY,
    profile_registry: ProfileRegistry = PROFILE_REGISTRY,
) -> ValidatedOptions:
    """Check every option that can be checked without a cluster.

    Raises:
        ConfigurationError: Unknown feature or profile, missing implementation
            details, unknown run-test name, or invalid base namespace.
    """
    supported_features = resolve_supported_features(
        options.supported_features,
        options.exempt_features,
        options.enable_all_features,
        feature_registry,
    )
    profiles = profile_registry.resolve(options.conformance_profiles)
    if profiles and options.implementation is None:
        raise InvalidImplementationError(
            {"implementation": "required when conformance profiles are requested"}
        )
    if options.run_test is not None and options.run_test not in catalog:
        raise ConfigurationError(f"Test to run is not in the catalog: {options.run_test}")
    invalid_namespaces = [ns for ns in options.base_namespaces if not validate_namespace(ns)]
    if invalid_namespaces:
        raise ConfigurationError(
            f"Invalid base namespace(s): {', '.join(sorted(invalid_namespaces))}"
        )
    return ValidatedOptions(supported_features=supported_features, profiles=profiles)


class ConformanceSuite:
    """Wires capability resolution, the runner and the aggregator together.

    Args:
        options: Run options.
        cluster: Shared cluster handle (constructed and authenticated by the
            caller).
        catalog: Tests to run, in execution order. Frozen by the suite.
        feature_registry: Feature registry to validate against.
        profile_registry: Profile registry to score against.

    Raises:
        ConfigurationError: Any invalid option (unknown feature or profile,
            missing implementation details, unknown run-test name, invalid
            base namespace). Raised before the cluster is touched.
    """

    def __init__(
        self,
        options: SuiteOptions,
        cluster: ClusterHandle,
        catalog: TestCatalog,
        *,
        feature_registry: FeatureRegistry = FEATURE_REGISTRY,
        profile_registry: ProfileRegistry = PROFILE_REGISTRY,
    ) -> None:
        self.options = options
        self.cluster = cluster
        self.catalog = catalog.freeze()
        self._profile_registry = profile_registry

        validated = validate_options(
            options,
            catalog,
            feature_registry=feature_registry,
            profile_registry=profile_registry,
        )
        self.supported_features: FeatureSet = validated.supported_features
        self.profiles: frozenset[ProfileName] = validated.profiles

        unknown_skips = sorted(set(options.skip_tests) - set(catalog.names))
        if unknown_skips:
            logger.warning("suite.unknown_skip_tests", tests=unknown_skips)

        self._created_namespaces: list[str] = []
        self._runner = SuiteRunner(
            cluster,
            self.supported_features,
            namespace_labels=options.namespace_labels,
            timeouts=options.timeouts,
            gateway_class_name=options.gateway_class_name,
            cleanup=options.cleanup_base_resources,
            retries=options.retries,
            debug=options.debug,
        )

        logger.info(
            "suite.configured",
            gateway_class=options.gateway_class_name,
            cleanup=options.cleanup_base_resources,
            debug=options.debug,
            enable_all_features=options.enable_all_features,
            supported_features=sorted(f.value for f in self.supported_features),
            exempt_features=sorted(options.exempt_features),
            profiles=sorted(p.value for p in self.profiles),
            tests=len(self.catalog),
        )

    @property
    def legacy_mode(self) -> bool:
        """True when no profiles were requested (flat summary report)."""
        return not self.profiles

    def setup(self, cancel_event: threading.Event | None = None) -> None:
        """Verify the cluster and create the shared base namespaces.

        Raises:
            ClusterUnavailableError: The cluster cannot be used or the shared
                fixtures could not be created. Fatal: no report is produced.
            RunCancelledError: The run was cancelled during setup.
        """
        with create_span("gwconf.setup", {"gwconf.namespaces": len(self.options.base_namespaces)}):
            logger.info("suite.setup.started")
            self.cluster.check_connection()
            for namespace in self.options.base_namespaces:
                try:
                    ensure_namespace(
                        self.cluster,
                        namespace,
                        self.options.namespace_labels,
                        self.options.timeouts,
                        cancel_event,
                    )
                except (ClusterUnavailableError, RunCancelledError):
                    raise
                except Exception as e:
                    raise ClusterUnavailableError(str(e), f"setup of namespace {namespace}") from e
                self._created_namespaces.append(namespace)
            logger.info("suite.setup.completed", namespaces=self._created_namespaces)

    def run(self, cancel_event: threading.Event | None = None) -> RunResult:
        """Plan the catalog and execute it."""
        plan = plan_tests(
            self.catalog,
            self.supported_features,
            self.profiles,
            self._profile_registry,
            run_test=self.options.run_test,
        )
        return self._runner.run(plan, self.options.skip_tests, cancel_event)

    def teardown(self) -> None:
        """Delete the shared base namespaces created by setup().

        Failures are logged, never raised: teardown runs after the outcomes
        are final and must not hide them.
        """
        if not self.options.cleanup_base_resources:
            if self._created_namespaces:
                logger.info("suite.teardown.skipped", namespaces=self._created_namespaces)
            return
        while self._created_namespaces:
            namespace = self._created_namespaces.pop()
            try:
                remove_namespace(self.cluster, namespace, self.options.timeouts)
            except Exception as e:  # noqa: BLE001
                logger.warning("suite.teardown.failed", namespace=namespace, error=str(e))

    def report(
        self,
        result: RunResult,
        generated_at: datetime | None = None,
    ) -> ConformanceReport:
        """Aggregate a run result into the conformance report."""
        with create_span("gwconf.report", {"gwconf.legacy_mode": self.legacy_mode}):
            return aggregate(
                result.outcomes,
                self.profiles,
                self.options.implementation,
                generated_at or datetime.now(timezone.utc),
                registry=self._profile_registry,
                gateway_api_version=self.options.gateway_api_version,
            )

    def execute(
        self,
        cancel_event: threading.Event | None = None,
        generated_at: datetime | None = None,
    ) -> SuiteExecution:
        """Set up, run, tear down and report.

        A cluster failure during setup propagates (no report). A cluster
        failure mid-run is recorded in the RunResult and a best-effort report
        is still produced.
        """
        try:
            self.setup(cancel_event)
            result = self.run(cancel_event)
        finally:
            self.teardown()
        return SuiteExecution(result=result, report=self.report(result, generated_at))


__all__ = ["ConformanceSuite", "SuiteExecution", "ValidatedOptions", "validate_options"]
