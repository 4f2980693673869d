"""Unit tests for the per-test context."""

from __future__ import annotations

import threading
from typing import Any

import pytest

from gwconf_core.context import ConformanceT
from gwconf_core.errors import RunCancelledError, TestFailure, TestSkipped
from gwconf_core.features import SupportedFeature
from gwconf_core.polling import PollingTimeoutError
from gwconf_core.schemas.options import TimeoutConfig


@pytest.fixture
def context(fake_cluster: Any, fast_timeouts: TimeoutConfig) -> ConformanceT:
    return ConformanceT(
        "HTTPRouteSimple",
        fake_cluster,
        frozenset({SupportedFeature.GATEWAY}),
        {"suite": "gwconf"},
        fast_timeouts,
        gateway_class_name="acme",
    )


class TestConformanceT:
    """Tests for ConformanceT helpers."""

    def test_exposes_run_state(self, context: ConformanceT, fake_cluster: Any) -> None:
        assert context.cluster is fake_cluster
        assert context.gateway_class_name == "acme"
        assert context.namespace_labels == {"suite": "gwconf"}
        assert context.supports(SupportedFeature.GATEWAY)
        assert not context.supports(SupportedFeature.MESH)

    def test_error_records_and_continues(self, context: ConformanceT) -> None:
        context.error("first")
        context.error("second")
        assert context.failed
        assert context.errors == ["first", "second"]

    def test_fatal_stops(self, context: ConformanceT) -> None:
        with pytest.raises(TestFailure, match="route not accepted"):
            context.fatal("route not accepted")
        assert context.errors == ["route not accepted"]

    def test_require(self, context: ConformanceT) -> None:
        context.require(True, "unused")
        assert not context.failed
        with pytest.raises(TestFailure):
            context.require(False, "gateway has no address")

    def test_skip(self, context: ConformanceT) -> None:
        with pytest.raises(TestSkipped) as exc_info:
            context.skip("backend not reachable from runner")
        assert exc_info.value.reason == "backend not reachable from runner"
        assert not context.failed

    def test_cleanups_run_in_reverse_and_collect_errors(self, context: ConformanceT) -> None:
        order: list[str] = []

        def broken() -> None:
            order.append("broken")
            raise RuntimeError("boom")

        context.cleanup(lambda: order.append("first"))
        context.cleanup(broken)
        context.cleanup(lambda: order.append("last"))

        problems = context.run_cleanups()
        assert order == ["last", "broken", "first"]
        assert len(problems) == 1
        assert "boom" in problems[0]
        assert context.run_cleanups() == []

    def test_wait_for_uses_timeout(self, context: ConformanceT) -> None:
        with pytest.raises(PollingTimeoutError, match="route accepted"):
            context.wait_for(lambda: False, "route accepted", timeout=0.05)

    def test_wait_for_stops_when_cancelled(
        self, fake_cluster: Any, fast_timeouts: TimeoutConfig
    ) -> None:
        cancel = threading.Event()
        cancel.set()
        t = ConformanceT(
            "X",
            fake_cluster,
            frozenset(),
            {},
            fast_timeouts,
            gateway_class_name="acme",
            cancel_event=cancel,
        )
        with pytest.raises(RunCancelledError):
            t.wait_for(lambda: True, "anything")
