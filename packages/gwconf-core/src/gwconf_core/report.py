"""Serialize and persist conformance reports.

The report is rendered as block-style YAML with keys in schema order, so
two reports for the same run diff cleanly.

Example:
    >>> from gwconf_core.schemas.report import ConformanceReport, Statistics
    >>> text = render_report(ConformanceReport(date="2026-01-01T00:00:00Z",
    ...                                        summary=Statistics(passed=1)))
    >>> text.splitlines()[0]
    'apiVersion: gateway.networking.k8s.io/v1alpha1'
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import structlog
import yaml

from gwconf_core.errors import ReportWriteError
from gwconf_core.schemas.report import ConformanceReport

logger = structlog.get_logger(__name__)


def render_report(report: ConformanceReport) -> str:
    """Render a report as YAML.

    Raises:
        ReportWriteError: If the report cannot be serialized.
    """
    try:
        data = report.model_dump(mode="json", by_alias=True, exclude_none=True)
        return yaml.safe_dump(
            data,
            sort_keys=False,
            default_flow_style=False,
            allow_unicode=True,
        )
    except (ValueError, TypeError, yaml.YAMLError) as e:
        raise ReportWriteError(str(e)) from e


def write_report(
    report: ConformanceReport,
    output: Path | None,
    echo: Callable[[str], None] | None = None,
) -> str:
    """Render a report, write it to ``output`` if given, and surface it.

    The rendered YAML is always logged (and passed to ``echo`` when given),
    so a run without an output path still shows its report.

    Args:
        report: Report to write.
        output: Destination file; None skips persistence.
        echo: Optional callback receiving the rendered YAML.

    Returns:
        The rendered YAML.

    Raises:
        ReportWriteError: If rendering fails, the path is a directory, its
            parent directory does not exist, or the write fails.
    """
    raw = render_report(report)

    if output is not None:
        path = Path(output)
        if path.is_dir():
            raise ReportWriteError("path is a directory", str(path))
        if not path.parent.is_dir():
            raise ReportWriteError("parent directory does not exist", str(path))
        try:
            path.write_text(raw, encoding="utf-8")
        except OSError as e:
            raise ReportWriteError(e.strerror or str(e), str(path)) from e
        logger.info("report.written", path=str(path), bytes=len(raw))

    logger.info("report.rendered", report=raw)
    if echo is not None:
        echo(raw)
    return raw


__all__ = ["render_report", "write_report"]
