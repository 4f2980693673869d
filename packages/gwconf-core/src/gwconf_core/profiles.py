"""Conformance profile registry.

A profile is a named certification tier: a set of core features an
implementation must support and a set of extended features that are scored
but not required.

Example:
    >>> from gwconf_core.profiles import PROFILE_REGISTRY, ProfileName
    >>> profile = PROFILE_REGISTRY.get(ProfileName.HTTP)
    >>> sorted(f.value for f in profile.core_features)
    ['Gateway', 'HTTPRoute', 'ReferenceGrant']
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from gwconf_core.errors import UnknownProfileError
from gwconf_core.features import (
    HTTP_ROUTE_EXTENDED_FEATURES,
    SupportedFeature,
)


class ProfileName(str, Enum):
    """Names of the conformance profiles known to the suite."""

    HTTP = "HTTP"
    TLS = "TLS"
    MESH = "MESH"


class ConformanceProfile(BaseModel):
    """Immutable profile definition.

    Attributes:
        name: Profile identifier.
        core_features: Features every conformant implementation must support.
        extended_features: Optional features scored by the profile.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: ProfileName = Field(..., description="Profile identifier")
    core_features: frozenset[SupportedFeature] = Field(
        ...,
        min_length=1,
        description="Mandatory features",
    )
    extended_features: frozenset[SupportedFeature] = Field(
        default_factory=frozenset,
        description="Optional, scored features",
    )

    @model_validator(mode="after")
    def _check_disjoint(self) -> ConformanceProfile:
        overlap = self.core_features & self.extended_features
        if overlap:
            names = ", ".join(sorted(f.value for f in overlap))
            raise ValueError(f"features cannot be both core and extended: {names}")
        return self

    @property
    def all_features(self) -> frozenset[SupportedFeature]:
        """Core and extended features together."""
        return self.core_features | self.extended_features


class ProfileRegistry:
    """Static catalog of conformance profiles, keyed by name."""

    def __init__(self, profiles: Iterable[ConformanceProfile]) -> None:
        self._profiles: dict[ProfileName, ConformanceProfile] = {}
        for profile in profiles:
            if profile.name in self._profiles:
                raise ValueError(f"Duplicate profile: {profile.name.value}")
            self._profiles[profile.name] = profile

    def __iter__(self) -> Iterator[ConformanceProfile]:
        return iter(self._profiles.values())

    def __len__(self) -> int:
        return len(self._profiles)

    def get(self, name: ProfileName) -> ConformanceProfile:
        """Return the profile with the given name.

        Raises:
            UnknownProfileError: If no such profile is registered.
        """
        try:
            return self._profiles[name]
        except KeyError:
            raise UnknownProfileError([str(getattr(name, "value", name))]) from None

    def resolve(self, names: Iterable[str]) -> frozenset[ProfileName]:
        """Validate profile names and return them as ProfileName members.

        Blank names are ignored.

        Raises:
            UnknownProfileError: Naming every unknown profile.
        """
        known = {p.value: p for p in self._profiles}
        requested = [name.strip() for name in names if name.strip()]
        unknown = [name for name in requested if name not in known]
        if unknown:
            raise UnknownProfileError(unknown)
        return frozenset(known[name] for name in requested)


HTTP_PROFILE = ConformanceProfile(
    name=ProfileName.HTTP,
    core_features=frozenset(
        {
            SupportedFeature.GATEWAY,
            SupportedFeature.REFERENCE_GRANT,
            SupportedFeature.HTTP_ROUTE,
        }
    ),
    extended_features=HTTP_ROUTE_EXTENDED_FEATURES
    | {
        SupportedFeature.GATEWAY_PORT_8080,
        SupportedFeature.GATEWAY_STATIC_ADDRESSES,
    },
)

TLS_PROFILE = ConformanceProfile(
    name=ProfileName.TLS,
    core_features=frozenset(
        {
            SupportedFeature.GATEWAY,
            SupportedFeature.REFERENCE_GRANT,
            SupportedFeature.TLS_ROUTE,
        }
    ),
)

MESH_PROFILE = ConformanceProfile(
    name=ProfileName.MESH,
    core_features=frozenset({SupportedFeature.MESH}),
)

PROFILE_REGISTRY = ProfileRegistry([HTTP_PROFILE, TLS_PROFILE, MESH_PROFILE])


__all__ = [
    "ConformanceProfile",
    "HTTP_PROFILE",
    "MESH_PROFILE",
    "PROFILE_REGISTRY",
    "ProfileName",
    "ProfileRegistry",
    "TLS_PROFILE",
]
