"""Unit tests for report rendering and writing."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from gwconf_core.errors import ReportWriteError
from gwconf_core.features import SupportedFeature
from gwconf_core.profiles import ProfileName
from gwconf_core.report import render_report, write_report
from gwconf_core.schemas.implementation import Implementation
from gwconf_core.schemas.report import (
    ConformanceReport,
    ExtendedStatus,
    ProfileReport,
    Result,
    Statistics,
    Status,
)


@pytest.fixture
def profile_report() -> ConformanceReport:
    return ConformanceReport(
        date="2026-03-01T12:30:45Z",
        gateway_api_version="v0.8.0",
        implementation=Implementation(
            organization="acme",
            project="edge-gateway",
            url="https://github.com/acme/edge-gateway",
            version="v1.2.0",
            contact=["@acme/maintainers"],
        ),
        profiles=[
            ProfileReport(
                name=ProfileName.HTTP,
                result=Result.PARTIAL,
                core=Status(result=Result.SUCCESS, statistics=Statistics(passed=3)),
                extended=ExtendedStatus(
                    result=Result.PARTIAL,
                    statistics=Statistics(passed=1, failed=1),
                    failed_tests=["HTTPRouteQueryParamMatching"],
                    supported_features=[SupportedFeature.HTTP_ROUTE_METHOD_MATCHING],
                    unsupported_features=[SupportedFeature.HTTP_ROUTE_QUERY_PARAM_MATCHING],
                ),
            )
        ],
        skipped_tests=["MeshBasic"],
    )


class TestRenderReport:
    """Tests for render_report."""

    def test_camel_case_keys_in_schema_order(self, profile_report: ConformanceReport) -> None:
        data = yaml.safe_load(render_report(profile_report))
        assert list(data) == [
            "apiVersion",
            "kind",
            "date",
            "gatewayAPIVersion",
            "implementation",
            "profiles",
            "skippedTests",
        ]
        extended = data["profiles"][0]["extended"]
        assert extended["supportedFeatures"] == ["HTTPRouteMethodMatching"]
        assert extended["failedTests"] == ["HTTPRouteQueryParamMatching"]
        assert data["profiles"][0]["result"] == "partial"
        assert data["kind"] == "ConformanceReport"

    def test_legacy_report_has_summary_not_profiles(self) -> None:
        report = ConformanceReport(
            date="2026-03-01T12:30:45Z",
            summary=Statistics(passed=2, failed=1),
        )
        data = yaml.safe_load(render_report(report))
        assert "profiles" not in data
        assert data["summary"] == {"passed": 2, "failed": 1, "skipped": 0}

    def test_render_is_deterministic(self, profile_report: ConformanceReport) -> None:
        assert render_report(profile_report) == render_report(profile_report)


class TestWriteReport:
    """Tests for write_report."""

    def test_writes_file(self, tmp_path: Path, profile_report: ConformanceReport) -> None:
        path = tmp_path / "report.yaml"
        raw = write_report(profile_report, path)
        assert path.read_text(encoding="utf-8") == raw

    def test_without_path_only_echoes(self, profile_report: ConformanceReport) -> None:
        echoed: list[str] = []
        raw = write_report(profile_report, None, echo=echoed.append)
        assert echoed == [raw]

    def test_directory_path_rejected(
        self, tmp_path: Path, profile_report: ConformanceReport
    ) -> None:
        with pytest.raises(ReportWriteError, match="is a directory") as exc_info:
            write_report(profile_report, tmp_path)
        assert exc_info.value.path == str(tmp_path)

    def test_missing_parent_rejected(
        self, tmp_path: Path, profile_report: ConformanceReport
    ) -> None:
        with pytest.raises(ReportWriteError, match="parent directory"):
            write_report(profile_report, tmp_path / "missing" / "report.yaml")
