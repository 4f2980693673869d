"""Decide which catalog entries run in this run.

plan_tests() returns one PlannedTest per catalog entry, in catalog order.
Entries that will not run carry the reason they are skipped, so the report
accounts for every test exactly once.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

import structlog

from gwconf_core.capabilities import missing_features
from gwconf_core.catalog import ConformanceTest
from gwconf_core.features import FeatureSet, SupportedFeature
from gwconf_core.profiles import PROFILE_REGISTRY, ProfileName, ProfileRegistry
from gwconf_core.schemas.outcome import (
    SKIP_NOT_RELEVANT,
    SKIP_NOT_SELECTED,
    missing_features_reason,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PlannedTest:
    """A catalog entry and, if it will not run, why."""

    test: ConformanceTest
    skip_reason: str | None = None

    @property
    def runnable(self) -> bool:
        return self.skip_reason is None


def profile_features(
    requested: Iterable[ProfileName],
    registry: ProfileRegistry = PROFILE_REGISTRY,
) -> frozenset[SupportedFeature]:
    """Union of core and extended features of the requested profiles."""
    features: set[SupportedFeature] = set()
    for name in requested:
        features |= registry.get(name).all_features
    return frozenset(features)


def plan_tests(
    catalog: Iterable[ConformanceTest],
    supported: FeatureSet,
    requested_profiles: Iterable[ProfileName] = (),
    registry: ProfileRegistry = PROFILE_REGISTRY,
    run_test: str | None = None,
) -> list[PlannedTest]:
    """Build the ordered execution plan.

    A test runs when all of its required features are supported and, if
    profiles were requested, at least one of its required features belongs
    to a requested profile. ``run_test`` restricts the run to a single test.

    Args:
        catalog: Tests in execution order.
        supported: Resolved supported-feature set.
        requested_profiles: Profiles evaluated this run (empty: legacy mode).
        registry: Profile registry.
        run_test: Optional name of the only test to run.

    Returns:
        One PlannedTest per catalog entry, same order as the catalog.
    """
    requested = frozenset(requested_profiles)
    relevant = profile_features(requested, registry) if requested else frozenset()

    plan: list[PlannedTest] = []
    for test in catalog:
        reason: str | None = None
        missing = missing_features(test.features, supported)
        if run_test is not None and test.short_name != run_test:
            reason = SKIP_NOT_SELECTED
        elif missing:
            reason = missing_features_reason(missing)
        elif requested and not (test.feature_set & relevant):
            reason = SKIP_NOT_RELEVANT
        plan.append(PlannedTest(test=test, skip_reason=reason))

    logger.info(
        "plan_tests.completed",
        total=len(plan),
        runnable=sum(1 for p in plan if p.runnable),
        profiles=sorted(p.value for p in requested),
    )
    return plan


__all__ = ["PlannedTest", "plan_tests", "profile_features"]
