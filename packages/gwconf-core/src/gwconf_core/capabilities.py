"""Capability resolution: user feature input to the effective feature set.

The supported-feature set is computed once per run and is immutable after
that. All identifiers are validated here, so the rest of the suite only ever
deals with SupportedFeature members.

Example:
    >>> from gwconf_core.capabilities import resolve_supported_features
    >>> sorted(f.value for f in resolve_supported_features(
    ...     ["Gateway", "HTTPRoute"], ["HTTPRoute"], enable_all=False))
    ['Gateway']
"""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from gwconf_core.errors import UnknownFeatureError
from gwconf_core.features import (
    FEATURE_REGISTRY,
    FeatureRegistry,
    FeatureSet,
    SupportedFeature,
)

logger = structlog.get_logger(__name__)


def _to_features(names: Iterable[str], registry: FeatureRegistry) -> FeatureSet:
    features: set[SupportedFeature] = set()
    for name in names:
        feature = registry.lookup(name)
        if feature is not None:
            features.add(feature)
    return frozenset(features)


def resolve_supported_features(
    supported: Iterable[str],
    exempt: Iterable[str],
    enable_all: bool,
    registry: FeatureRegistry = FEATURE_REGISTRY,
) -> FeatureSet:
    """Compute the effective supported-feature set for a run.

    With ``enable_all`` the result is every registered feature minus the
    exempt ones. Otherwise it is the explicit supported list minus the exempt
    list. A feature named in both lists is excluded.

    Args:
        supported: Explicitly supported feature identifiers.
        exempt: Feature identifiers the implementation is exempt from.
        enable_all: Treat every registered feature as supported.
        registry: Feature registry to validate against.

    Returns:
        Immutable set of supported features.

    Raises:
        UnknownFeatureError: If any identifier in either list is not in the
            registry. Raised before any other work is done.
    """
    supported_names = [name.strip() for name in supported if name.strip()]
    exempt_names = [name.strip() for name in exempt if name.strip()]

    unknown = registry.unknown([*supported_names, *exempt_names])
    if unknown:
        logger.error("resolve_features.unknown", unknown=unknown)
        raise UnknownFeatureError(unknown)

    exempt_features = _to_features(exempt_names, registry)
    if enable_all:
        base = registry.all()
    else:
        base = _to_features(supported_names, registry)

    resolved = frozenset(base - exempt_features)
    logger.debug(
        "resolve_features.completed",
        enable_all=enable_all,
        supported=sorted(f.value for f in resolved),
        exempt=sorted(f.value for f in exempt_features),
    )
    return resolved


def missing_features(
    required: Iterable[SupportedFeature],
    supported: FeatureSet,
) -> list[SupportedFeature]:
    """Return required features that are not supported, sorted by name."""
    return sorted({f for f in required if f not in supported}, key=lambda f: f.value)


__all__ = ["missing_features", "resolve_supported_features"]
