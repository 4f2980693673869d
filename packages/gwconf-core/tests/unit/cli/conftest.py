"""Unit test fixtures for the CLI module.

CLI tests run the real commands against the in-memory cluster: the
kubernetes client factory is replaced and logging configuration is stubbed
so structlog never holds on to CliRunner's temporary streams.
"""

from __future__ import annotations

import importlib
import sys
import uuid
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest
import structlog
from click.testing import CliRunner

CATALOG_SOURCE = '''
from gwconf_core import SupportedFeature, TestCatalog

CATALOG = TestCatalog()


@CATALOG.test("GatewayBasic", features=[SupportedFeature.GATEWAY])
def gateway_basic(t):
    t.require(t.gateway_class_name != "", "gateway class must be set")


@CATALOG.test("HTTPRouteSimple", features=[SupportedFeature.GATEWAY, SupportedFeature.HTTP_ROUTE])
def route_simple(t):
    if FAIL_ROUTES:
        t.fatal("route rejected")


@CATALOG.test("MeshBasic", features=[SupportedFeature.MESH])
def mesh_basic(t):
    pass


TEST_NAMES = ["GatewayBasic", "MeshBasic"]


def build_catalog():
    return CATALOG
'''


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Keep structlog away from CliRunner's temporary streams."""
    monkeypatch.setattr("gwconf_core.cli.run.configure_logging", lambda **_: None)
    yield
    structlog.reset_defaults()


@pytest.fixture
def patched_cluster(monkeypatch: pytest.MonkeyPatch, fake_cluster: Any) -> MagicMock:
    """Make ``gwconf run`` connect to the in-memory cluster."""
    factory = MagicMock()
    factory.from_kubeconfig.return_value = fake_cluster
    monkeypatch.setattr("gwconf_core.cli.run.KubernetesCluster", factory)
    return factory


@pytest.fixture
def catalog_module(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Generator[Callable[..., str], None, None]:
    """Write an importable catalog module and return its name.

    Usage:
        def test_x(catalog_module) -> None:
            ref = f"{catalog_module(fail_routes=True)}:CATALOG"
    """
    monkeypatch.syspath_prepend(str(tmp_path))
    created: list[str] = []

    def _write(fail_routes: bool = False) -> str:
        name = f"gwconf_catalog_{uuid.uuid4().hex[:8]}"
        source = f"FAIL_ROUTES = {fail_routes!r}\n" + CATALOG_SOURCE
        (tmp_path / f"{name}.py").write_text(source)
        created.append(name)
        importlib.invalidate_caches()
        return name

    yield _write
    for name in created:
        sys.modules.pop(name, None)
