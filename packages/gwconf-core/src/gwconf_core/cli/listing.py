"""Registry listing commands: ``gwconf features`` and ``gwconf profiles``."""

from __future__ import annotations

import click

from gwconf_core.features import FEATURE_REGISTRY, FeatureChannel, sorted_features
from gwconf_core.profiles import PROFILE_REGISTRY


@click.command(name="features", help="List the features the suite can test.")
@click.option(
    "--channel",
    type=click.Choice([c.value for c in FeatureChannel]),
    default=None,
    help="Only list features of this release channel.",
)
def features_command(channel: str | None) -> None:
    """Print one ``<feature> <channel>`` line per registered feature."""
    if channel is not None:
        selected = FEATURE_REGISTRY.by_channel(FeatureChannel(channel))
    else:
        selected = list(FEATURE_REGISTRY)
    width = max((len(f.value) for f in selected), default=0)
    for feature in selected:
        click.echo(f"{feature.value:<{width}}  {FEATURE_REGISTRY.channel_of(feature).value}")


@click.command(name="profiles", help="List conformance profiles and their features.")
def profiles_command() -> None:
    for profile in sorted(PROFILE_REGISTRY, key=lambda p: p.name.value):
        click.echo(f"{profile.name.value}:")
        core = ", ".join(f.value for f in sorted_features(profile.core_features))
        click.echo(f"  core: {core}")
        if profile.extended_features:
            extended = ", ".join(f.value for f in sorted_features(profile.extended_features))
            click.echo(f"  extended: {extended}")


__all__ = ["features_command", "profiles_command"]
