"""Main entry point for the gwconf CLI.

Commands:
    gwconf run: Execute the conformance suite and write the report
    gwconf features: List the feature registry
    gwconf profiles: List conformance profiles

Example:
    $ gwconf --help
    $ gwconf features --channel experimental
    $ gwconf run --catalog my_tests:CATALOG --conformance-profiles HTTP ...
"""

from __future__ import annotations

import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version

import click

from gwconf_core.cli.listing import features_command, profiles_command
from gwconf_core.cli.run import run_command


def _get_version() -> str:
    """Get the installed package version, or 'unknown' when not installed."""
    try:
        return get_version("gwconf")
    except PackageNotFoundError:
        return "unknown"


@click.group(
    name="gwconf",
    help="gwconf - Gateway API conformance suite runner.",
    epilog="Use 'gwconf <command> --help' for command-specific help.",
    context_settings={
        "help_option_names": ["-h", "--help"],
    },
)
@click.version_option(
    version=_get_version(),
    prog_name="gwconf",
    message="%(prog)s %(version)s",
)
def cli() -> None:
    """Root command group for the gwconf CLI."""


cli.add_command(run_command)
cli.add_command(features_command)
cli.add_command(profiles_command)


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the gwconf CLI.

    Args:
        argv: Command-line arguments (uses sys.argv if None).
    """
    try:
        cli(args=argv, standalone_mode=False)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except click.Abort:
        click.echo("Aborted!", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
