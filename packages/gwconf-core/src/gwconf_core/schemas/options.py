"""Suite options and flag parsing helpers.

SuiteOptions holds every recognized run option. Values stay as plain
strings here; feature names are validated once by the orchestrator
through the capability resolver, and profile names by the profiles flag
parser and again by the orchestrator.

Example:
    >>> from gwconf_core.schemas.options import (
    ...     SuiteOptions, parse_namespace_labels, parse_supported_features)
    >>> options = SuiteOptions(
    ...     supported_features=parse_supported_features("Gateway,HTTPRoute"),
    ...     namespace_labels=parse_namespace_labels("istio-injection=enabled"),
    ... )
    >>> options.namespace_labels
    {'istio-injection': 'enabled'}
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from gwconf_core.errors import ConfigurationError
from gwconf_core.profiles import PROFILE_REGISTRY, ProfileRegistry
from gwconf_core.schemas.implementation import Implementation

DEFAULT_GATEWAY_CLASS = "gateway-conformance"
DEFAULT_GATEWAY_API_VERSION = "v0.8.0"
DEFAULT_BASE_NAMESPACES = (
    "gateway-conformance-infra",
    "gateway-conformance-app-backend",
    "gateway-conformance-web-backend",
)


class TimeoutConfig(BaseModel):
    """Bounds for every blocking wait in a run, in seconds.

    Attributes:
        namespace_ready: Wait for a created namespace to become Active.
        namespace_deletion: Wait for a deleted namespace to disappear.
        test_default: Per-test timeout when the test declares none.
        poll_interval: Interval between polls of cluster state.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    namespace_ready: Annotated[float, Field(gt=0)] = 60.0
    namespace_deletion: Annotated[float, Field(gt=0)] = 120.0
    test_default: Annotated[float, Field(gt=0)] = 300.0
    poll_interval: Annotated[float, Field(gt=0)] = 1.0


class SuiteOptions(BaseModel):
    """All options recognized by a conformance run.

    Attributes:
        gateway_class_name: GatewayClass the tests target.
        supported_features: Explicitly supported feature identifiers.
        exempt_features: Feature identifiers the implementation is exempt from.
        enable_all_features: Treat every registered feature as supported.
        skip_tests: Test short names never to execute.
        run_test: Run only this test (all others are recorded as skipped).
        namespace_labels: Labels applied to every namespace the suite creates.
        conformance_profiles: Profiles to evaluate; empty means legacy mode.
        implementation: Implementation metadata (required with profiles).
        cleanup_base_resources: Delete suite-created resources after use.
        debug: Verbose logging.
        report_output: Path to write the report to; None only logs it.
        base_namespaces: Shared namespaces created during setup.
        gateway_api_version: Gateway API version recorded in the report.
        retries: Extra attempts for a failed test.
        timeouts: Wait bounds.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    gateway_class_name: str = Field(default=DEFAULT_GATEWAY_CLASS, min_length=1)
    supported_features: list[str] = Field(default_factory=list)
    exempt_features: list[str] = Field(default_factory=list)
    enable_all_features: bool = False
    skip_tests: list[str] = Field(default_factory=list)
    run_test: str | None = None
    namespace_labels: dict[str, str] = Field(default_factory=dict)
    conformance_profiles: list[str] = Field(default_factory=list)
    implementation: Implementation | None = None
    cleanup_base_resources: bool = True
    debug: bool = False
    report_output: Path | None = None
    base_namespaces: list[str] = Field(default_factory=lambda: list(DEFAULT_BASE_NAMESPACES))
    gateway_api_version: str = DEFAULT_GATEWAY_API_VERSION
    retries: Annotated[int, Field(ge=0, le=10)] = 0
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)

    @classmethod
    def from_yaml(cls, path: Path, **overrides: Any) -> SuiteOptions:
        """Load options from a YAML file, then apply keyword overrides.

        Keys in the file use the field names above. Overrides whose value is
        None are ignored so unset CLI flags do not clobber file values.

        Raises:
            ConfigurationError: If the file cannot be read or is invalid.
        """
        try:
            with path.open() as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot load options from {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Options file {path} must contain a mapping")

        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls.build(**data)

    @classmethod
    def build(cls, **data: Any) -> SuiteOptions:
        """Validate options, converting pydantic errors to ConfigurationError."""
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise ConfigurationError(f"Invalid suite options ({problems})") from e


def _split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_supported_features(value: str | None) -> list[str]:
    """Split a comma-separated feature flag into identifiers."""
    return _split_csv(value)


def parse_skip_tests(value: str | None) -> list[str]:
    """Split a comma-separated skip-tests flag into test names."""
    return _split_csv(value)


def parse_conformance_profiles(
    value: str | None,
    registry: ProfileRegistry = PROFILE_REGISTRY,
) -> list[str]:
    """Split a comma-separated profiles flag and check every name exists.

    Raises:
        UnknownProfileError: Naming every unknown profile.
    """
    names = _split_csv(value)
    registry.resolve(names)
    return names


def parse_namespace_labels(value: str | None) -> dict[str, str]:
    """Parse ``key=value`` pairs separated by commas.

    Raises:
        ConfigurationError: If a pair has no ``=`` or an empty key.
    """
    labels: dict[str, str] = {}
    for pair in _split_csv(value):
        key, sep, label_value = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ConfigurationError(f"Invalid namespace label {pair!r}, expected key=value")
        labels[key] = label_value.strip()
    return labels


__all__ = [
    "DEFAULT_BASE_NAMESPACES",
    "DEFAULT_GATEWAY_API_VERSION",
    "DEFAULT_GATEWAY_CLASS",
    "SuiteOptions",
    "TimeoutConfig",
    "parse_conformance_profiles",
    "parse_namespace_labels",
    "parse_skip_tests",
    "parse_supported_features",
]
