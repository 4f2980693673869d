"""Conformance run command.

This module implements ``gwconf run``, which:
- Builds SuiteOptions from an optional YAML file plus command-line flags
- Imports the test catalog named by ``--catalog``
- Connects to the cluster from kubeconfig or in-cluster configuration
- Executes the suite and writes the conformance report

Ctrl-C cancels the run: in-flight waits stop, remaining tests are recorded
as skipped and the partial report is still written.

Example:
    $ gwconf run --catalog my_tests:CATALOG --supported-features Gateway,HTTPRoute
    $ gwconf run --catalog my_tests:CATALOG --config options.yaml \\
        --conformance-profiles HTTP --organization acme --project edge \\
        --url https://example.com/edge --version v1.2.0 --report-output report.yaml
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

import click
import structlog
from click.core import ParameterSource

from gwconf_core.cli.utils import ExitCode, error, error_exit, info, load_catalog
from gwconf_core.cluster import KubernetesCluster
from gwconf_core.errors import (
    ClusterUnavailableError,
    ConfigurationError,
    ReportWriteError,
    RunCancelledError,
)
from gwconf_core.orchestrator import ConformanceSuite, SuiteExecution, validate_options
from gwconf_core.report import write_report
from gwconf_core.schemas.implementation import parse_implementation
from gwconf_core.schemas.options import (
    SuiteOptions,
    parse_conformance_profiles,
    parse_namespace_labels,
    parse_skip_tests,
    parse_supported_features,
)
from gwconf_core.telemetry.logging import configure_logging

logger = structlog.get_logger(__name__)

JOIN_INTERVAL = 0.5

_IMPLEMENTATION_PARAMS = ("organization", "project", "url", "impl_version", "contact")


def _given(ctx: click.Context, name: str) -> bool:
    return ctx.get_parameter_source(name) not in (None, ParameterSource.DEFAULT)


def build_options(ctx: click.Context, config_path: Path | None) -> SuiteOptions:
    """Merge the options file (if any) with the flags given on the command line.

    Only flags the user actually passed override file values.

    Raises:
        ConfigurationError: If any value is invalid.
    """
    params = ctx.params
    overrides: dict[str, Any] = {}
    converters: dict[str, tuple[str, Any]] = {
        "gateway_class": ("gateway_class_name", None),
        "supported_features": ("supported_features", parse_supported_features),
        "exempt_features": ("exempt_features", parse_supported_features),
        "all_features": ("enable_all_features", None),
        "skip_tests": ("skip_tests", parse_skip_tests),
        "run_test": ("run_test", None),
        "namespace_labels": ("namespace_labels", parse_namespace_labels),
        "conformance_profiles": ("conformance_profiles", parse_conformance_profiles),
        "cleanup": ("cleanup_base_resources", None),
        "debug": ("debug", None),
        "report_output": ("report_output", None),
        "retries": ("retries", None),
    }
    for param, (field, convert) in converters.items():
        if _given(ctx, param):
            value = params[param]
            overrides[field] = convert(value) if convert is not None else value

    if any(_given(ctx, name) for name in _IMPLEMENTATION_PARAMS):
        overrides["implementation"] = parse_implementation(
            params["organization"] or "",
            params["project"] or "",
            params["url"] or "",
            params["impl_version"] or "",
            params["contact"] or "",
        )

    if config_path is not None:
        return SuiteOptions.from_yaml(config_path, **overrides)
    return SuiteOptions.build(**overrides)


def execute_with_interrupts(
    suite: ConformanceSuite,
    cancel_event: threading.Event,
) -> SuiteExecution:
    """Run the suite in a worker thread so Ctrl-C can set the cancel event.

    Raises:
        Whatever the suite raised.
    """
    outcome: dict[str, Any] = {}

    def target() -> None:
        try:
            outcome["execution"] = suite.execute(cancel_event)
        except BaseException as e:  # noqa: BLE001 - re-raised in the caller's thread
            outcome["error"] = e

    worker = threading.Thread(target=target, name="gwconf-run", daemon=True)
    worker.start()
    while worker.is_alive():
        try:
            worker.join(timeout=JOIN_INTERVAL)
        except KeyboardInterrupt:
            if not cancel_event.is_set():
                error("Interrupted, cancelling run")
                cancel_event.set()

    if "error" in outcome:
        raise outcome["error"]
    return outcome["execution"]


@click.command(
    name="run",
    help="Run the conformance suite against a Gateway API implementation.",
    epilog="""
Examples:
    $ gwconf run --catalog my_tests:CATALOG --supported-features Gateway,HTTPRoute
    $ gwconf run --catalog my_tests:CATALOG --all-features --exempt-features Mesh
    $ gwconf run --catalog my_tests:CATALOG --config options.yaml --report-output report.yaml
""",
)
@click.option(
    "--catalog",
    "catalog_ref",
    required=True,
    help="Test catalog to run, as module:attribute.",
    metavar="MODULE:ATTR",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML file with suite options; flags override its values.",
    metavar="PATH",
)
@click.option("--kubeconfig", type=click.Path(dir_okay=False), help="Path to kubeconfig.")
@click.option("--context", "kube_context", help="Kubeconfig context to use.")
@click.option(
    "--log-format",
    type=click.Choice(["console", "json"]),
    default="console",
    show_default=True,
    help="Log output format.",
)
@click.option(
    "--gateway-class",
    default="gateway-conformance",
    show_default=True,
    help="GatewayClass the tests target.",
)
@click.option("--supported-features", help="Comma-separated supported features.")
@click.option("--exempt-features", help="Comma-separated exempt features.")
@click.option("--all-features", is_flag=True, help="Treat every feature as supported.")
@click.option("--skip-tests", help="Comma-separated test short names to skip.")
@click.option("--run-test", help="Run only this test.")
@click.option("--namespace-labels", help="Comma-separated key=value labels for namespaces.")
@click.option("--conformance-profiles", help="Comma-separated profiles to evaluate.")
@click.option("--organization", help="Implementation organization.")
@click.option("--project", help="Implementation project.")
@click.option("--url", help="Implementation URL.")
@click.option("--version", "impl_version", help="Implementation version.")
@click.option("--contact", help="Comma-separated implementation contacts.")
@click.option(
    "--cleanup/--no-cleanup",
    default=True,
    show_default=True,
    help="Delete suite-created resources after use.",
)
@click.option("--debug", is_flag=True, help="Verbose logging.")
@click.option(
    "--report-output",
    type=click.Path(path_type=Path),
    help="Write the report to this file.",
    metavar="PATH",
)
@click.option(
    "--retries",
    type=click.IntRange(0, 10),
    default=0,
    show_default=True,
    help="Extra attempts for a failed test.",
)
@click.pass_context
def run_command(
    ctx: click.Context,
    catalog_ref: str,
    config_path: Path | None,
    kubeconfig: str | None,
    kube_context: str | None,
    log_format: str,
    **_flags: Any,
) -> None:
    """Run the suite and exit with a code describing the outcome.

    Args:
        ctx: Click context (flag values are read from ctx.params).
        catalog_ref: ``module:attribute`` of the test catalog.
        config_path: Optional options file.
        kubeconfig: Optional kubeconfig path.
        kube_context: Optional kubeconfig context.
        log_format: ``console`` or ``json``.
    """
    configure_logging(debug=bool(ctx.params.get("debug")), json_output=log_format == "json")

    try:
        options = build_options(ctx, config_path)
        catalog = load_catalog(catalog_ref)
        # Configuration errors surface before any attempt to reach the cluster
        validate_options(options, catalog)
    except ConfigurationError as e:
        error_exit(str(e), exit_code=ExitCode.CONFIGURATION_ERROR)

    # Options from a file may enable debug even when the flag was not passed.
    if options.debug:
        configure_logging(debug=True, json_output=log_format == "json")

    try:
        cluster = KubernetesCluster.from_kubeconfig(kubeconfig, kube_context)
    except ClusterUnavailableError as e:
        error_exit(str(e), exit_code=ExitCode.CLUSTER_ERROR)

    try:
        suite = ConformanceSuite(options, cluster, catalog)
    except ConfigurationError as e:
        error_exit(str(e), exit_code=ExitCode.CONFIGURATION_ERROR)

    cancel_event = threading.Event()
    try:
        execution = execute_with_interrupts(suite, cancel_event)
    except RunCancelledError as e:
        error_exit(str(e), exit_code=ExitCode.CANCELLED)
    except ClusterUnavailableError as e:
        error_exit(str(e), exit_code=ExitCode.CLUSTER_ERROR)

    echo = click.echo if options.report_output is None else None
    try:
        write_report(execution.report, options.report_output, echo=echo)
    except ReportWriteError as e:
        error_exit(str(e), exit_code=ExitCode.REPORT_ERROR)
    if options.report_output is not None:
        info(f"Report written to {options.report_output}")

    result = execution.result
    if result.cancelled:
        error_exit("Run cancelled", exit_code=ExitCode.CANCELLED)
    if result.aborted:
        error_exit(f"Cluster became unavailable: {result.abort_reason}", exit_code=ExitCode.CLUSTER_ERROR)
    if result.has_failures:
        error_exit("Conformance tests failed", exit_code=ExitCode.TESTS_FAILED)


__all__ = ["build_options", "execute_with_interrupts", "run_command"]
