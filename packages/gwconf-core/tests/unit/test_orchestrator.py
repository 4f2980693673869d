"""Unit tests for the conformance orchestrator."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import pytest

from gwconf_core.catalog import ConformanceTest, TestCatalog
from gwconf_core.errors import (
    ClusterUnavailableError,
    ConfigurationError,
    InvalidImplementationError,
    UnknownFeatureError,
    UnknownProfileError,
)
from gwconf_core.features import SupportedFeature
from gwconf_core.orchestrator import ConformanceSuite, validate_options
from gwconf_core.profiles import ProfileName
from gwconf_core.schemas.implementation import Implementation
from gwconf_core.schemas.options import SuiteOptions, TimeoutConfig
from gwconf_core.schemas.outcome import TestStatus
from gwconf_core.schemas.report import Result

GATEWAY = SupportedFeature.GATEWAY
HTTP_ROUTE = SupportedFeature.HTTP_ROUTE
REFERENCE_GRANT = SupportedFeature.REFERENCE_GRANT
QUERY = SupportedFeature.HTTP_ROUTE_QUERY_PARAM_MATCHING

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)

IMPLEMENTATION = Implementation(
    organization="acme",
    project="edge",
    url="https://example.com/edge",
    version="v1",
)


@pytest.fixture
def options_for(fast_timeouts: TimeoutConfig) -> Callable[..., SuiteOptions]:
    def _options(**overrides: Any) -> SuiteOptions:
        return SuiteOptions.build(timeouts=fast_timeouts, **overrides)

    return _options


@pytest.fixture
def catalog(make_test: Callable[..., ConformanceTest]) -> TestCatalog:
    return TestCatalog(
        [
            make_test("GatewayBasic", [GATEWAY]),
            make_test("HTTPRouteSimple", [GATEWAY, HTTP_ROUTE]),
            make_test("ReferenceGrant", [REFERENCE_GRANT]),
            make_test("QueryParams", [GATEWAY, HTTP_ROUTE, QUERY], body=lambda t: t.fatal("no")),
            make_test("MeshBasic", [SupportedFeature.MESH]),
        ]
    )


class TestConfigurationValidation:
    """Tests for validation done before any cluster interaction."""

    def test_unknown_feature(
        self, fake_cluster: Any, catalog: TestCatalog, options_for: Callable[..., SuiteOptions]
    ) -> None:
        with pytest.raises(UnknownFeatureError):
            ConformanceSuite(options_for(supported_features=["Teleport"]), fake_cluster, catalog)
        assert fake_cluster.calls == []

    def test_unknown_profile(
        self, fake_cluster: Any, catalog: TestCatalog, options_for: Callable[..., SuiteOptions]
    ) -> None:
        with pytest.raises(UnknownProfileError):
            ConformanceSuite(
                options_for(conformance_profiles=["GRPC"], implementation=IMPLEMENTATION),
                fake_cluster,
                catalog,
            )
        assert fake_cluster.calls == []

    def test_profiles_require_implementation(
        self, fake_cluster: Any, catalog: TestCatalog, options_for: Callable[..., SuiteOptions]
    ) -> None:
        with pytest.raises(InvalidImplementationError, match="implementation"):
            ConformanceSuite(options_for(conformance_profiles=["HTTP"]), fake_cluster, catalog)

    def test_run_test_must_exist(
        self, fake_cluster: Any, catalog: TestCatalog, options_for: Callable[..., SuiteOptions]
    ) -> None:
        with pytest.raises(ConfigurationError, match="Nope"):
            ConformanceSuite(options_for(run_test="Nope"), fake_cluster, catalog)

    def test_invalid_base_namespace(
        self, fake_cluster: Any, catalog: TestCatalog, options_for: Callable[..., SuiteOptions]
    ) -> None:
        with pytest.raises(ConfigurationError, match="Bad_NS"):
            ConformanceSuite(options_for(base_namespaces=["Bad_NS"]), fake_cluster, catalog)

    def test_catalog_frozen(
        self,
        fake_cluster: Any,
        catalog: TestCatalog,
        options_for: Callable[..., SuiteOptions],
        make_test: Callable[..., ConformanceTest],
    ) -> None:
        ConformanceSuite(options_for(), fake_cluster, catalog)
        with pytest.raises(RuntimeError):
            catalog.register(make_test("Late"))

    def test_validate_options_without_cluster(
        self, catalog: TestCatalog, options_for: Callable[..., SuiteOptions]
    ) -> None:
        validated = validate_options(
            options_for(
                supported_features=["Gateway", "HTTPRoute"],
                conformance_profiles=["HTTP"],
                implementation=IMPLEMENTATION,
            ),
            catalog,
        )
        assert validated.supported_features == frozenset({GATEWAY, HTTP_ROUTE})
        assert validated.profiles == frozenset({ProfileName.HTTP})
        with pytest.raises(UnknownFeatureError):
            validate_options(options_for(supported_features=["Teleport"]), catalog)


class TestExecute:
    """Tests for a full execution against the fake cluster."""

    def test_legacy_mode(
        self, fake_cluster: Any, catalog: TestCatalog, options_for: Callable[..., SuiteOptions]
    ) -> None:
        suite = ConformanceSuite(
            options_for(supported_features=["Gateway", "HTTPRoute"]), fake_cluster, catalog
        )
        assert suite.legacy_mode
        execution = suite.execute(generated_at=NOW)

        summary = execution.report.summary
        assert summary is not None
        assert summary.total == len(catalog)
        assert (summary.passed, summary.failed, summary.skipped) == (2, 0, 3)
        assert execution.report.profiles is None
        assert execution.report.skipped_tests == ["MeshBasic", "QueryParams", "ReferenceGrant"]
        assert execution.report.date == "2026-03-01T00:00:00Z"

    def test_profile_mode_partial(
        self, fake_cluster: Any, catalog: TestCatalog, options_for: Callable[..., SuiteOptions]
    ) -> None:
        suite = ConformanceSuite(
            options_for(
                enable_all_features=True,
                conformance_profiles=["HTTP"],
                implementation=IMPLEMENTATION,
            ),
            fake_cluster,
            catalog,
        )
        execution = suite.execute(generated_at=NOW)

        outcomes = {o.test_name: o for o in execution.result.outcomes}
        assert outcomes["MeshBasic"].detail == "not relevant to requested profiles"
        assert outcomes["QueryParams"].status is TestStatus.FAILED

        http = execution.report.profile(ProfileName.HTTP)
        assert http is not None
        assert http.result is Result.PARTIAL
        assert http.core.statistics.passed == 3
        assert http.extended is not None
        assert QUERY in http.extended.unsupported_features

    def test_base_namespaces_created_and_removed(
        self, fake_cluster: Any, catalog: TestCatalog, options_for: Callable[..., SuiteOptions]
    ) -> None:
        suite = ConformanceSuite(
            options_for(namespace_labels={"suite": "gwconf"}), fake_cluster, catalog
        )
        suite.setup()
        assert set(fake_cluster.namespaces) == {
            "gateway-conformance-infra",
            "gateway-conformance-app-backend",
            "gateway-conformance-web-backend",
        }
        assert all(labels == {"suite": "gwconf"} for labels in fake_cluster.namespaces.values())
        suite.teardown()
        assert fake_cluster.namespaces == {}

    def test_cleanup_disabled_keeps_base_namespaces(
        self, fake_cluster: Any, catalog: TestCatalog, options_for: Callable[..., SuiteOptions]
    ) -> None:
        suite = ConformanceSuite(
            options_for(cleanup_base_resources=False), fake_cluster, catalog
        )
        suite.execute(generated_at=NOW)
        assert len(fake_cluster.namespaces) == 3

    def test_setup_failure_is_fatal(
        self, fake_cluster: Any, catalog: TestCatalog, options_for: Callable[..., SuiteOptions]
    ) -> None:
        fake_cluster.connected = False
        suite = ConformanceSuite(options_for(), fake_cluster, catalog)
        with pytest.raises(ClusterUnavailableError):
            suite.execute(generated_at=NOW)

    def test_setup_namespace_timeout_is_cluster_error(
        self, fake_cluster: Any, catalog: TestCatalog, options_for: Callable[..., SuiteOptions]
    ) -> None:
        fake_cluster.ready = False
        suite = ConformanceSuite(options_for(), fake_cluster, catalog)
        with pytest.raises(ClusterUnavailableError, match="gateway-conformance-infra"):
            suite.setup()

    def test_mid_run_cluster_loss_still_reports(
        self,
        fake_cluster: Any,
        options_for: Callable[..., SuiteOptions],
        make_test: Callable[..., ConformanceTest],
    ) -> None:
        def lose(t: Any) -> None:
            fake_cluster.connected = False
            t.cluster.check_connection()

        catalog = TestCatalog([make_test("First"), make_test("Lost", body=lose), make_test("Last")])
        suite = ConformanceSuite(options_for(), fake_cluster, catalog)
        execution = suite.execute(generated_at=NOW)

        assert execution.result.aborted
        assert execution.report.summary is not None
        assert execution.report.summary.passed == 1
        assert execution.report.summary.skipped == 2

    def test_run_test_only(
        self, fake_cluster: Any, catalog: TestCatalog, options_for: Callable[..., SuiteOptions]
    ) -> None:
        suite = ConformanceSuite(
            options_for(enable_all_features=True, run_test="GatewayBasic"), fake_cluster, catalog
        )
        result = suite.execute(generated_at=NOW).result
        assert result.count(TestStatus.PASSED) == 1
        assert result.count(TestStatus.SKIPPED) == len(catalog) - 1
