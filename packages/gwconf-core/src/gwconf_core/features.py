"""Feature registry for gwconf.

This module defines the closed set of optional capabilities that
conformance tests may require. Every feature belongs to a release channel
(standard or experimental). Feature names are the Gateway API
SupportedFeature identifiers, so they can be passed through unchanged from
existing conformance configuration.

Example:
    >>> from gwconf_core.features import FEATURE_REGISTRY, SupportedFeature
    >>> SupportedFeature.HTTP_ROUTE.value
    'HTTPRoute'
    >>> FEATURE_REGISTRY.channel_of(SupportedFeature.MESH)
    <FeatureChannel.EXPERIMENTAL: 'experimental'>
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from enum import Enum


class FeatureChannel(str, Enum):
    """Release channel a feature belongs to."""

    STANDARD = "standard"
    EXPERIMENTAL = "experimental"


class SupportedFeature(str, Enum):
    """Every feature identifier known to the conformance suite."""

    # Core Gateway features
    GATEWAY = "Gateway"
    REFERENCE_GRANT = "ReferenceGrant"
    HTTP_ROUTE = "HTTPRoute"
    TLS_ROUTE = "TLSRoute"
    MESH = "Mesh"

    # Extended Gateway features
    GATEWAY_PORT_8080 = "GatewayPort8080"
    GATEWAY_STATIC_ADDRESSES = "GatewayStaticAddresses"

    # Extended HTTPRoute features
    HTTP_ROUTE_QUERY_PARAM_MATCHING = "HTTPRouteQueryParamMatching"
    HTTP_ROUTE_METHOD_MATCHING = "HTTPRouteMethodMatching"
    HTTP_ROUTE_RESPONSE_HEADER_MODIFICATION = "HTTPRouteResponseHeaderModification"
    HTTP_ROUTE_PORT_REDIRECT = "HTTPRoutePortRedirect"
    HTTP_ROUTE_SCHEME_REDIRECT = "HTTPRouteSchemeRedirect"
    HTTP_ROUTE_PATH_REDIRECT = "HTTPRoutePathRedirect"
    HTTP_ROUTE_HOST_REWRITE = "HTTPRouteHostRewrite"
    HTTP_ROUTE_PATH_REWRITE = "HTTPRoutePathRewrite"
    HTTP_ROUTE_REQUEST_MIRROR = "HTTPRouteRequestMirror"
    HTTP_ROUTE_REQUEST_MULTIPLE_MIRRORS = "HTTPRouteRequestMultipleMirrors"
    HTTP_ROUTE_DESTINATION_PORT_MATCHING = "HTTPRouteDestinationPortMatching"


FeatureSet = frozenset[SupportedFeature]

_EXPERIMENTAL_FEATURES: FeatureSet = frozenset(
    {
        SupportedFeature.TLS_ROUTE,
        SupportedFeature.MESH,
        SupportedFeature.GATEWAY_STATIC_ADDRESSES,
        SupportedFeature.HTTP_ROUTE_DESTINATION_PORT_MATCHING,
    }
)

HTTP_ROUTE_EXTENDED_FEATURES: FeatureSet = frozenset(
    {
        SupportedFeature.HTTP_ROUTE_QUERY_PARAM_MATCHING,
        SupportedFeature.HTTP_ROUTE_METHOD_MATCHING,
        SupportedFeature.HTTP_ROUTE_RESPONSE_HEADER_MODIFICATION,
        SupportedFeature.HTTP_ROUTE_PORT_REDIRECT,
        SupportedFeature.HTTP_ROUTE_SCHEME_REDIRECT,
        SupportedFeature.HTTP_ROUTE_PATH_REDIRECT,
        SupportedFeature.HTTP_ROUTE_HOST_REWRITE,
        SupportedFeature.HTTP_ROUTE_PATH_REWRITE,
        SupportedFeature.HTTP_ROUTE_REQUEST_MIRROR,
        SupportedFeature.HTTP_ROUTE_REQUEST_MULTIPLE_MIRRORS,
        SupportedFeature.HTTP_ROUTE_DESTINATION_PORT_MATCHING,
    }
)


class FeatureRegistry:
    """Static catalog mapping feature identifiers to their channel.

    The registry is immutable once built. Iteration follows the order in
    which features were declared.

    Example:
        >>> registry = FeatureRegistry({SupportedFeature.GATEWAY: FeatureChannel.STANDARD})
        >>> registry.lookup("Gateway")
        <SupportedFeature.GATEWAY: 'Gateway'>
        >>> registry.lookup("Nope") is None
        True
    """

    def __init__(self, channels: Mapping[SupportedFeature, FeatureChannel]) -> None:
        self._channels: dict[SupportedFeature, FeatureChannel] = dict(channels)
        self._by_name: dict[str, SupportedFeature] = {f.value: f for f in self._channels}

    def __iter__(self) -> Iterator[SupportedFeature]:
        return iter(self._channels)

    def __len__(self) -> int:
        return len(self._channels)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, SupportedFeature):
            return item in self._channels
        return item in self._by_name

    def lookup(self, name: str) -> SupportedFeature | None:
        """Return the feature with the given identifier, or None."""
        return self._by_name.get(name)

    def channel_of(self, feature: SupportedFeature) -> FeatureChannel:
        """Return the release channel of a registered feature.

        Raises:
            KeyError: If the feature is not registered.
        """
        return self._channels[feature]

    def all(self) -> FeatureSet:
        """Return every registered feature."""
        return frozenset(self._channels)

    def by_channel(self, channel: FeatureChannel) -> list[SupportedFeature]:
        """Return registered features of one channel in declaration order."""
        return [f for f, c in self._channels.items() if c is channel]

    def unknown(self, names: Iterable[str]) -> list[str]:
        """Return the identifiers from ``names`` that are not registered."""
        return sorted({name for name in names if name not in self._by_name})


FEATURE_REGISTRY = FeatureRegistry(
    {
        feature: (
            FeatureChannel.EXPERIMENTAL
            if feature in _EXPERIMENTAL_FEATURES
            else FeatureChannel.STANDARD
        )
        for feature in SupportedFeature
    }
)


def sorted_features(features: Iterable[SupportedFeature]) -> list[SupportedFeature]:
    """Sort features by identifier for deterministic output."""
    return sorted(features, key=lambda f: f.value)


__all__ = [
    "FEATURE_REGISTRY",
    "FeatureChannel",
    "FeatureRegistry",
    "FeatureSet",
    "HTTP_ROUTE_EXTENDED_FEATURES",
    "SupportedFeature",
    "sorted_features",
]
