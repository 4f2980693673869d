"""gwconf command-line interface."""

from __future__ import annotations

from gwconf_core.cli.main import cli, main

__all__ = ["cli", "main"]
