"""Conformance report schema.

The report is the contract with downstream certification consumers. Field
names serialize in camelCase and in declaration order, so the YAML output is
stable and diff-friendly.

Example:
    >>> report = ConformanceReport(date="2026-01-01T00:00:00Z", summary=Statistics(passed=3))
    >>> report.model_dump(mode="json", by_alias=True, exclude_none=True)["kind"]
    'ConformanceReport'
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from gwconf_core.features import SupportedFeature
from gwconf_core.profiles import ProfileName
from gwconf_core.schemas.implementation import Implementation

REPORT_API_VERSION = "gateway.networking.k8s.io/v1alpha1"
REPORT_KIND = "ConformanceReport"


class Result(str, Enum):
    """Scored status of a profile or of one of its blocks."""

    SUCCESS = "success"
    PARTIAL = "partial"
    FAILURE = "failure"


class _ReportModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class Statistics(_ReportModel):
    """Outcome counts."""

    passed: Annotated[int, Field(ge=0)] = 0
    failed: Annotated[int, Field(ge=0)] = 0
    skipped: Annotated[int, Field(ge=0)] = 0

    @property
    def total(self) -> int:
        return self.passed + self.failed + self.skipped


class Status(_ReportModel):
    """Scored block of a profile (core or extended)."""

    result: Result
    statistics: Statistics = Field(default_factory=Statistics)
    skipped_tests: list[str] = Field(default_factory=list)
    failed_tests: list[str] = Field(default_factory=list)


class ExtendedStatus(Status):
    """Extended block, with the extended features found supported."""

    supported_features: list[SupportedFeature] = Field(default_factory=list)
    unsupported_features: list[SupportedFeature] = Field(default_factory=list)


class ProfileReport(_ReportModel):
    """Per-profile result."""

    name: ProfileName
    result: Result
    core: Status
    extended: ExtendedStatus | None = None


class ConformanceReport(_ReportModel):
    """Final artifact of a conformance run.

    ``profiles`` is populated when profiles were requested; ``summary`` is
    populated in legacy mode. Exactly one of them is set.
    """

    api_version: Literal["gateway.networking.k8s.io/v1alpha1"] = Field(
        default=REPORT_API_VERSION,
        alias="apiVersion",
    )
    kind: Literal["ConformanceReport"] = REPORT_KIND
    date: str = Field(..., min_length=1, description="RFC 3339 generation timestamp")
    gateway_api_version: str | None = Field(default=None, alias="gatewayAPIVersion")
    implementation: Implementation | None = None
    profiles: list[ProfileReport] | None = None
    summary: Statistics | None = None
    skipped_tests: list[str] = Field(default_factory=list)

    def profile(self, name: ProfileName) -> ProfileReport | None:
        """Return the report for one profile, if it was evaluated."""
        for profile_report in self.profiles or []:
            if profile_report.name is name:
                return profile_report
        return None


__all__ = [
    "ConformanceReport",
    "ExtendedStatus",
    "ProfileReport",
    "REPORT_API_VERSION",
    "REPORT_KIND",
    "Result",
    "Statistics",
    "Status",
]
