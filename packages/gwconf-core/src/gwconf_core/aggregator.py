"""Report aggregation: fold per-test outcomes into a conformance report.

aggregate() is a pure function of its inputs. Outcomes are sorted by test
name before folding and every list in the report is sorted, so the result
does not depend on the order tests were executed in and repeated calls
produce identical reports.

Scoring rules for a requested profile P:

- a test belongs to P when it requires at least one feature and all of its
  required features are in P (core or extended);
- it is a core test of P when all its features are core features of P,
  otherwise an extended test of P;
- core block: success when every core test passed, failure otherwise
  (a skipped core test means a mandatory capability was not verified);
- extended block: success when every extended test passed, partial
  otherwise;
- profile result: failure if the core block failed, partial if some
  extended test failed or was skipped, success otherwise;
- an extended feature is supported when it has at least one test and all
  of them passed.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone

import structlog

from gwconf_core.features import SupportedFeature, sorted_features
from gwconf_core.profiles import PROFILE_REGISTRY, ConformanceProfile, ProfileName, ProfileRegistry
from gwconf_core.schemas.implementation import Implementation
from gwconf_core.schemas.outcome import TestOutcome, TestStatus
from gwconf_core.schemas.report import (
    ConformanceReport,
    ExtendedStatus,
    ProfileReport,
    Result,
    Statistics,
    Status,
)

logger = structlog.get_logger(__name__)


def format_timestamp(moment: datetime) -> str:
    """Format a timestamp as RFC 3339 UTC with second precision."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _statistics(outcomes: list[TestOutcome]) -> Statistics:
    return Statistics(
        passed=sum(1 for o in outcomes if o.status is TestStatus.PASSED),
        failed=sum(1 for o in outcomes if o.status is TestStatus.FAILED),
        skipped=sum(1 for o in outcomes if o.status is TestStatus.SKIPPED),
    )


def _names(outcomes: list[TestOutcome], status: TestStatus) -> list[str]:
    return sorted(o.test_name for o in outcomes if o.status is status)


def _all_passed(outcomes: list[TestOutcome]) -> bool:
    return all(o.status is TestStatus.PASSED for o in outcomes)


def classify(
    outcomes: Iterable[TestOutcome],
    profile: ConformanceProfile,
) -> tuple[list[TestOutcome], list[TestOutcome]]:
    """Split outcomes into the core and extended tests of a profile.

    Outcomes of tests that do not belong to the profile are dropped.
    """
    core: list[TestOutcome] = []
    extended: list[TestOutcome] = []
    for outcome in outcomes:
        features = set(outcome.features)
        if not features or not features <= profile.all_features:
            continue
        if features <= profile.core_features:
            core.append(outcome)
        else:
            extended.append(outcome)
    return core, extended


def score_profile(
    outcomes: Iterable[TestOutcome],
    profile: ConformanceProfile,
) -> ProfileReport:
    """Score one profile from (name-sorted) outcomes."""
    core, extended = classify(outcomes, profile)

    core_status = Status(
        result=Result.SUCCESS if _all_passed(core) else Result.FAILURE,
        statistics=_statistics(core),
        skipped_tests=_names(core, TestStatus.SKIPPED),
        failed_tests=_names(core, TestStatus.FAILED),
    )

    extended_status: ExtendedStatus | None = None
    if profile.extended_features:
        per_feature: dict[SupportedFeature, list[TestOutcome]] = {
            feature: [] for feature in profile.extended_features
        }
        for outcome in extended:
            for feature in outcome.features:
                if feature in per_feature:
                    per_feature[feature].append(outcome)
        supported = [f for f, tests in per_feature.items() if tests and _all_passed(tests)]
        unsupported = [f for f in per_feature if f not in supported]
        extended_status = ExtendedStatus(
            result=Result.SUCCESS if _all_passed(extended) else Result.PARTIAL,
            statistics=_statistics(extended),
            skipped_tests=_names(extended, TestStatus.SKIPPED),
            failed_tests=_names(extended, TestStatus.FAILED),
            supported_features=sorted_features(supported),
            unsupported_features=sorted_features(unsupported),
        )

    if core_status.result is Result.FAILURE:
        result = Result.FAILURE
    elif not _all_passed(extended):
        result = Result.PARTIAL
    else:
        result = Result.SUCCESS

    return ProfileReport(
        name=profile.name,
        result=result,
        core=core_status,
        extended=extended_status,
    )


def aggregate(
    outcomes: Iterable[TestOutcome],
    requested_profiles: Iterable[ProfileName],
    implementation: Implementation | None,
    generated_at: datetime,
    *,
    registry: ProfileRegistry = PROFILE_REGISTRY,
    gateway_api_version: str | None = None,
) -> ConformanceReport:
    """Build the conformance report for a run.

    Args:
        outcomes: One outcome per catalog entry, in any order.
        requested_profiles: Profiles to score; empty selects legacy mode.
        implementation: Implementation metadata.
        generated_at: Report timestamp.
        registry: Profile registry.
        gateway_api_version: Gateway API version recorded in the report.

    Returns:
        ConformanceReport with per-profile results, or a flat summary in
        legacy mode.
    """
    ordered = sorted(outcomes, key=lambda o: o.test_name)
    requested = sorted(set(requested_profiles), key=lambda p: p.value)
    skipped = _names(ordered, TestStatus.SKIPPED)

    if not requested:
        summary = _statistics(ordered)
        logger.info(
            "aggregate.legacy_summary",
            passed=summary.passed,
            failed=summary.failed,
            skipped=summary.skipped,
        )
        return ConformanceReport(
            date=format_timestamp(generated_at),
            gateway_api_version=gateway_api_version,
            implementation=implementation,
            summary=summary,
            skipped_tests=skipped,
        )

    profile_reports = [score_profile(ordered, registry.get(name)) for name in requested]
    for profile_report in profile_reports:
        logger.info(
            "aggregate.profile_scored",
            profile=profile_report.name.value,
            result=profile_report.result.value,
        )
    return ConformanceReport(
        date=format_timestamp(generated_at),
        gateway_api_version=gateway_api_version,
        implementation=implementation,
        profiles=profile_reports,
        skipped_tests=skipped,
    )


__all__ = ["aggregate", "classify", "format_timestamp", "score_profile"]
