"""Unit tests for the feature registry."""

from __future__ import annotations

import pytest

from gwconf_core.features import (
    FEATURE_REGISTRY,
    HTTP_ROUTE_EXTENDED_FEATURES,
    FeatureChannel,
    FeatureRegistry,
    SupportedFeature,
    sorted_features,
)


class TestFeatureRegistry:
    """Tests for FeatureRegistry lookups."""

    def test_every_feature_is_registered(self) -> None:
        """Test that the default registry covers the whole enumeration."""
        assert len(FEATURE_REGISTRY) == len(SupportedFeature)
        assert set(FEATURE_REGISTRY) == set(SupportedFeature)

    def test_lookup_by_identifier(self) -> None:
        assert FEATURE_REGISTRY.lookup("HTTPRoute") is SupportedFeature.HTTP_ROUTE
        assert FEATURE_REGISTRY.lookup("httproute") is None
        assert FEATURE_REGISTRY.lookup("HTTPRouteTeleport") is None

    def test_contains_accepts_members_and_names(self) -> None:
        assert SupportedFeature.MESH in FEATURE_REGISTRY
        assert "Mesh" in FEATURE_REGISTRY
        assert "Nope" not in FEATURE_REGISTRY
        assert 42 not in FEATURE_REGISTRY

    def test_unknown_is_sorted_and_deduplicated(self) -> None:
        unknown = FEATURE_REGISTRY.unknown(["Zed", "Gateway", "Alpha", "Zed"])
        assert unknown == ["Alpha", "Zed"]

    def test_channels(self) -> None:
        """Test that experimental features are tagged experimental."""
        assert FEATURE_REGISTRY.channel_of(SupportedFeature.GATEWAY) is FeatureChannel.STANDARD
        assert FEATURE_REGISTRY.channel_of(SupportedFeature.TLS_ROUTE) is FeatureChannel.EXPERIMENTAL
        experimental = FEATURE_REGISTRY.by_channel(FeatureChannel.EXPERIMENTAL)
        assert SupportedFeature.MESH in experimental
        assert SupportedFeature.HTTP_ROUTE not in experimental

    def test_by_channel_partitions_registry(self) -> None:
        standard = FEATURE_REGISTRY.by_channel(FeatureChannel.STANDARD)
        experimental = FEATURE_REGISTRY.by_channel(FeatureChannel.EXPERIMENTAL)
        assert set(standard) | set(experimental) == FEATURE_REGISTRY.all()
        assert not set(standard) & set(experimental)

    def test_channel_of_unregistered_feature(self) -> None:
        registry = FeatureRegistry({SupportedFeature.GATEWAY: FeatureChannel.STANDARD})
        with pytest.raises(KeyError):
            registry.channel_of(SupportedFeature.MESH)
        assert registry.lookup("Mesh") is None


class TestFeatureSets:
    """Tests for the predefined feature groupings."""

    def test_http_route_extended_features_are_http_route_features(self) -> None:
        assert all(f.value.startswith("HTTPRoute") for f in HTTP_ROUTE_EXTENDED_FEATURES)
        assert SupportedFeature.HTTP_ROUTE not in HTTP_ROUTE_EXTENDED_FEATURES

    def test_sorted_features_orders_by_identifier(self) -> None:
        ordered = sorted_features(
            [SupportedFeature.MESH, SupportedFeature.GATEWAY, SupportedFeature.HTTP_ROUTE]
        )
        assert [f.value for f in ordered] == ["Gateway", "HTTPRoute", "Mesh"]
