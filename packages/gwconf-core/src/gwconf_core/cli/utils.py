"""CLI utility functions and error handling.

Errors are printed as plain text to stderr and each run-level failure class
has its own exit code, so CI can tell "the implementation failed
conformance" apart from "the run itself broke".

Example:
    from gwconf_core.cli.utils import error_exit, ExitCode

    error_exit("Unknown feature", exit_code=ExitCode.CONFIGURATION_ERROR)
"""

from __future__ import annotations

import importlib
import sys
from enum import IntEnum
from typing import TYPE_CHECKING, Any

import click

from gwconf_core.catalog import ConformanceTest, TestCatalog
from gwconf_core.errors import ConfigurationError

if TYPE_CHECKING:
    from typing import NoReturn


class ExitCode(IntEnum):
    """Exit codes for gwconf commands."""

    SUCCESS = 0
    """Run completed and no test failed."""

    TESTS_FAILED = 1
    """Run completed, report produced, at least one test failed."""

    USAGE_ERROR = 2
    """Invalid usage (click reports these itself)."""

    CONFIGURATION_ERROR = 5
    """Invalid options; nothing was run."""

    CLUSTER_ERROR = 8
    """Cluster unusable during setup (no report) or mid-run (best-effort report)."""

    REPORT_ERROR = 9
    """Tests ran but the report could not be written."""

    CANCELLED = 130
    """Run interrupted by the user."""


def error(message: str, **context: str | int | bool | None) -> None:
    """Print an error message to stderr."""
    if context:
        context_str = ", ".join(f"{k}={v}" for k, v in context.items() if v is not None)
        full_message = f"Error: {message} ({context_str})"
    else:
        full_message = f"Error: {message}"
    click.echo(full_message, err=True)


def error_exit(
    message: str,
    exit_code: ExitCode = ExitCode.TESTS_FAILED,
    **context: str | int | bool | None,
) -> NoReturn:
    """Print an error message to stderr and exit with a code."""
    error(message, **context)
    sys.exit(exit_code)


def info(message: str) -> None:
    """Print an informational message to stderr (stdout carries the report)."""
    click.echo(message, err=True)


def load_catalog(reference: str) -> TestCatalog:
    """Import a test catalog from a ``module:attribute`` reference.

    The attribute may be a TestCatalog, an iterable of ConformanceTest, or a
    zero-argument callable returning either.

    Raises:
        ConfigurationError: If the reference cannot be imported or does not
            resolve to tests.
    """
    module_name, sep, attribute = reference.partition(":")
    if not sep or not module_name or not attribute:
        raise ConfigurationError(f"Catalog reference must be 'module:attribute', got {reference!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import catalog module {module_name!r}: {e}") from e

    target: Any = module
    for part in attribute.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as e:
            raise ConfigurationError(f"{module_name!r} has no attribute {attribute!r}") from e

    if callable(target) and not isinstance(target, TestCatalog):
        target = target()
    if isinstance(target, TestCatalog):
        return target
    try:
        tests = list(target)
    except TypeError as e:
        raise ConfigurationError(f"{reference!r} is not a test catalog") from e
    if not all(isinstance(t, ConformanceTest) for t in tests):
        raise ConfigurationError(f"{reference!r} contains objects that are not ConformanceTest")
    return TestCatalog(tests)


__all__ = ["ExitCode", "error", "error_exit", "info", "load_catalog"]
