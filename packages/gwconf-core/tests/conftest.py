"""Shared pytest fixtures for gwconf-core package tests.

This module provides an in-memory cluster handle and small builders used
across unit tests. Nothing here talks to a real Kubernetes API.

NOTE: Do NOT add __init__.py to test directories - pytest uses importlib mode
which can cause namespace collisions with __init__.py files.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from gwconf_core.catalog import ConformanceTest
from gwconf_core.errors import ClusterUnavailableError
from gwconf_core.features import SupportedFeature
from gwconf_core.schemas.options import TimeoutConfig


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers",
        "slow: Tests that wait on real timeouts (a few seconds)",
    )


class FakeCluster:
    """In-memory ClusterHandle.

    Namespaces become ready immediately unless ``ready`` is False. Setting
    ``connected`` to False makes every call raise ClusterUnavailableError.
    With ``deletion_polls`` set, a deleted namespace stays visible for that
    many ``namespace_exists`` calls, like a Terminating namespace.
    """

    def __init__(self) -> None:
        self.namespaces: dict[str, dict[str, str]] = {}
        self.applied: list[tuple[str, str | None]] = []
        self.deleted: list[tuple[str, str | None]] = []
        self.calls: list[str] = []
        self.connected = True
        self.ready = True
        self.linger_on_delete = False
        self.deletion_polls = 0
        self._terminating: dict[str, int] = {}
        self.fail_apply: Exception | None = None
        self.fail_delete_manifest: Exception | None = None

    def _check(self, operation: str) -> None:
        self.calls.append(operation)
        if not self.connected:
            raise ClusterUnavailableError("connection refused", operation)

    def check_connection(self) -> None:
        self._check("check_connection")

    def create_namespace(self, name: str, labels: dict[str, str]) -> None:
        self._check(f"create_namespace:{name}")
        self.namespaces.setdefault(name, dict(labels))

    def namespace_ready(self, name: str) -> bool:
        self._check(f"namespace_ready:{name}")
        return self.ready and name in self.namespaces

    def namespace_exists(self, name: str) -> bool:
        self._check(f"namespace_exists:{name}")
        if name in self._terminating:
            self._terminating[name] -= 1
            if self._terminating[name] <= 0:
                del self._terminating[name]
                self.namespaces.pop(name, None)
        return name in self.namespaces

    def delete_namespace(self, name: str) -> None:
        self._check(f"delete_namespace:{name}")
        if self.linger_on_delete:
            return
        if self.deletion_polls and name in self.namespaces:
            self._terminating[name] = self.deletion_polls
        else:
            self.namespaces.pop(name, None)

    def apply_manifest(self, document: dict[str, Any], namespace: str | None) -> None:
        self._check("apply_manifest")
        if self.fail_apply is not None:
            raise self.fail_apply
        self.applied.append((_ref(document), namespace))

    def delete_manifest(self, document: dict[str, Any], namespace: str | None) -> None:
        self._check("delete_manifest")
        if self.fail_delete_manifest is not None:
            raise self.fail_delete_manifest
        self.deleted.append((_ref(document), namespace))


def _ref(document: dict[str, Any]) -> str:
    return f"{document['kind']}/{document.get('metadata', {}).get('name', '')}"


@pytest.fixture
def fake_cluster() -> FakeCluster:
    """Provide a connected in-memory cluster handle."""
    return FakeCluster()


@pytest.fixture
def fast_timeouts() -> TimeoutConfig:
    """Timeouts short enough for unit tests."""
    return TimeoutConfig(
        namespace_ready=0.5,
        namespace_deletion=0.5,
        test_default=5.0,
        poll_interval=0.01,
    )


@pytest.fixture
def make_test() -> Callable[..., ConformanceTest]:
    """Factory for ConformanceTest with a no-op body by default.

    Usage:
        def test_x(make_test) -> None:
            test = make_test("Foo", [SupportedFeature.GATEWAY], body=lambda t: None)
    """

    def _make(
        short_name: str,
        features: list[SupportedFeature] | None = None,
        body: Callable[[Any], None] | None = None,
        **kwargs: Any,
    ) -> ConformanceTest:
        return ConformanceTest(
            short_name=short_name,
            body=body or (lambda t: None),
            features=tuple(features or ()),
            **kwargs,
        )

    return _make
