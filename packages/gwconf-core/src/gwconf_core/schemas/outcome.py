"""Per-test outcome and run result models.

A TestOutcome is produced exactly once per catalog entry per run and is
never mutated afterwards. RunResult carries the ordered outcomes together
with run-level conditions (abort, cancellation).
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from gwconf_core.features import SupportedFeature

SKIP_EXPLICIT = "explicitly skipped"
SKIP_CANCELLED = "run cancelled"
SKIP_ABORTED = "run aborted"
SKIP_NOT_RELEVANT = "not relevant to requested profiles"
SKIP_NOT_SELECTED = "not selected"


def missing_features_reason(missing: list[SupportedFeature]) -> str:
    """Skip reason for a test whose required features are unsupported."""
    return "missing features: " + ", ".join(f.value for f in missing)


class TestStatus(str, Enum):
    """Final status of one test in one run."""

    __test__ = False

    PASSED = "Passed"
    FAILED = "Failed"
    SKIPPED = "Skipped"


class TestOutcome(BaseModel):
    """Result of one catalog entry.

    Attributes:
        test_name: Short name of the test.
        features: Features the test requires.
        status: Passed, Failed or Skipped.
        detail: Failure diagnostics or skip reason.
        attempts: Number of times the body was executed (0 when skipped).
        duration_seconds: Wall time spent on the last attempt.
    """

    __test__ = False

    model_config = ConfigDict(frozen=True, extra="forbid")

    test_name: str = Field(..., min_length=1, description="Test short name")
    features: tuple[SupportedFeature, ...] = Field(
        default=(),
        description="Required features",
    )
    status: TestStatus = Field(..., description="Final status")
    detail: str | None = Field(default=None, description="Diagnostics or skip reason")
    attempts: Annotated[int, Field(ge=0)] = 0
    duration_seconds: Annotated[float, Field(ge=0)] = 0.0

    @property
    def passed(self) -> bool:
        return self.status is TestStatus.PASSED

    @property
    def failed(self) -> bool:
        return self.status is TestStatus.FAILED

    @property
    def skipped(self) -> bool:
        return self.status is TestStatus.SKIPPED


class RunResult(BaseModel):
    """Everything the suite runner produced for one run.

    Attributes:
        outcomes: One outcome per planned test, in catalog order.
        abort_reason: Set when the cluster became unusable mid-run.
        cancelled: True when the caller cancelled the run.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    outcomes: tuple[TestOutcome, ...] = ()
    abort_reason: str | None = None
    cancelled: bool = False

    @property
    def aborted(self) -> bool:
        return self.abort_reason is not None

    def count(self, status: TestStatus) -> int:
        return sum(1 for o in self.outcomes if o.status is status)

    @property
    def has_failures(self) -> bool:
        return any(o.failed for o in self.outcomes)


__all__ = [
    "RunResult",
    "SKIP_ABORTED",
    "SKIP_CANCELLED",
    "SKIP_EXPLICIT",
    "SKIP_NOT_RELEVANT",
    "SKIP_NOT_SELECTED",
    "TestOutcome",
    "TestStatus",
    "missing_features_reason",
]
