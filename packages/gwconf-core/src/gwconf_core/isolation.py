"""Isolation units: per-test cluster fixtures with guaranteed release.

An IsolationUnit owns everything a single test creates before its body
runs: an optional dedicated namespace and the test's manifests. acquire()
creates them, release() deletes them in reverse order and waits for the
namespace to disappear. The runner calls release() on every exit path.

Functions:
    generate_unique_namespace: Create a unique, valid namespace name
    validate_namespace: Check a namespace name against Kubernetes rules
    load_manifests: Read YAML manifest documents from files
    ensure_namespace / remove_namespace: Shared-namespace helpers

Example:
    >>> ns = generate_unique_namespace("HTTPRouteSimpleSameNamespace")
    >>> ns.startswith("httproutesimplesamenamespace-")
    True
"""

from __future__ import annotations

import re
import threading
import uuid
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
import yaml

from gwconf_core.errors import ClusterUnavailableError, RunCancelledError
from gwconf_core.polling import PollingTimeoutError, wait_for_condition

if TYPE_CHECKING:
    from gwconf_core.catalog import ConformanceTest
    from gwconf_core.cluster import ClusterHandle
    from gwconf_core.schemas.options import TimeoutConfig

logger = structlog.get_logger(__name__)

# K8s namespace constraints
MAX_NAMESPACE_LENGTH = 63
NAMESPACE_PATTERN = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")


class InvalidNamespaceError(ValueError):
    """Raised when a namespace name is invalid for Kubernetes."""

    def __init__(self, namespace: str, reason: str) -> None:
        self.namespace = namespace
        self.reason = reason
        super().__init__(f"Invalid namespace '{namespace}': {reason}")


def generate_unique_namespace(prefix: str = "gwconf") -> str:
    """Generate a unique namespace name from a prefix.

    The prefix is lowercased, underscores become hyphens, invalid characters
    are dropped and it is truncated so the result fits in 63 characters
    with an 8-character random suffix.

    Raises:
        InvalidNamespaceError: If the generated name is still invalid.
    """
    normalized_prefix = prefix.lower().replace("_", "-")
    normalized_prefix = re.sub(r"[^a-z0-9-]", "", normalized_prefix).strip("-")

    suffix = uuid.uuid4().hex[:8]
    max_prefix_length = MAX_NAMESPACE_LENGTH - len(suffix) - 1
    if len(normalized_prefix) > max_prefix_length:
        normalized_prefix = normalized_prefix[:max_prefix_length].rstrip("-")
    if not normalized_prefix:
        normalized_prefix = "gwconf"

    namespace = f"{normalized_prefix}-{suffix}"
    if not validate_namespace(namespace):
        raise InvalidNamespaceError(namespace, "Generated namespace does not match K8s naming rules")
    return namespace


def validate_namespace(namespace: str) -> bool:
    """Check if a namespace name is valid for Kubernetes."""
    if not namespace or len(namespace) > MAX_NAMESPACE_LENGTH:
        return False
    return bool(NAMESPACE_PATTERN.match(namespace))


def load_manifests(paths: Iterable[str | Path]) -> list[dict[str, Any]]:
    """Load every non-empty YAML document from the given files, in order.

    Raises:
        OSError: If a file cannot be read.
        ValueError: If a document is not a mapping with apiVersion and kind.
    """
    documents: list[dict[str, Any]] = []
    for path in paths:
        with Path(path).open() as f:
            for doc in yaml.safe_load_all(f):
                if not doc:
                    continue
                if not isinstance(doc, dict) or "apiVersion" not in doc or "kind" not in doc:
                    raise ValueError(f"{path}: manifest documents need apiVersion and kind")
                documents.append(doc)
    return documents


def ensure_namespace(
    cluster: ClusterHandle,
    name: str,
    labels: dict[str, str],
    timeouts: TimeoutConfig,
    cancel_event: threading.Event | None = None,
) -> None:
    """Create a namespace and wait until it is Active."""
    cluster.create_namespace(name, labels)
    wait_for_condition(
        lambda: cluster.namespace_ready(name),
        timeout=timeouts.namespace_ready,
        interval=timeouts.poll_interval,
        description=f"namespace {name} to become Active",
        cancel_event=cancel_event,
    )


def remove_namespace(
    cluster: ClusterHandle,
    name: str,
    timeouts: TimeoutConfig,
    cancel_event: threading.Event | None = None,
) -> None:
    """Delete a namespace and wait until it is gone.

    When the run is cancelled the delete is still issued but the wait is
    abandoned.
    """
    cluster.delete_namespace(name)
    try:
        wait_for_condition(
            lambda: not cluster.namespace_exists(name),
            timeout=timeouts.namespace_deletion,
            interval=timeouts.poll_interval,
            description=f"namespace {name} deletion",
            cancel_event=cancel_event,
        )
    except RunCancelledError:
        logger.info("isolation.deletion_wait_abandoned", namespace=name)


class IsolationUnit:
    """Cluster fixtures owned by one execution of one test.

    Attributes:
        namespace: Dedicated namespace (isolated tests only), set on acquire.
        acquired: True between a successful acquire() and release().
    """

    def __init__(
        self,
        test: ConformanceTest,
        cluster: ClusterHandle,
        *,
        labels: dict[str, str],
        timeouts: TimeoutConfig,
        cleanup: bool = True,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self._test = test
        self._cluster = cluster
        self._labels = dict(labels)
        self._timeouts = timeouts
        self._cleanup = cleanup
        self._cancel_event = cancel_event
        self._applied: list[dict[str, Any]] = []
        self._namespace_created = False
        self.namespace: str | None = None
        self.acquired = False

    def __enter__(self) -> IsolationUnit:
        self.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()

    def acquire(self) -> str | None:
        """Create the namespace and apply manifests.

        Whatever was created before a failure is tracked, so release()
        still removes it.

        Returns:
            The dedicated namespace, or None for non-isolated tests.
        """
        if self._test.isolated:
            self.namespace = generate_unique_namespace(self._test.short_name)
            self._namespace_created = True
            ensure_namespace(
                self._cluster,
                self.namespace,
                self._labels,
                self._timeouts,
                self._cancel_event,
            )

        if self._test.manifests:
            for document in load_manifests(self._test.manifests):
                self._cluster.apply_manifest(document, self.namespace)
                self._applied.append(document)

        self.acquired = True
        logger.debug(
            "isolation.acquired",
            test=self._test.short_name,
            namespace=self.namespace,
            manifests=len(self._applied),
        )
        return self.namespace

    def release(self) -> None:
        """Delete everything acquire() created.

        Manifests are deleted in reverse order, then the namespace. Deletion
        of every object is attempted even if one fails; the first failure is
        raised afterwards.

        Raises:
            ClusterUnavailableError: If the cluster became unusable.
            PollingTimeoutError: If the namespace did not go away in time.
        """
        self.acquired = False
        if not self._cleanup:
            if self._applied or self._namespace_created:
                logger.info(
                    "isolation.cleanup_disabled",
                    test=self._test.short_name,
                    namespace=self.namespace,
                    manifests=len(self._applied),
                )
            return

        first_error: Exception | None = None
        while self._applied:
            document = self._applied.pop()
            try:
                self._cluster.delete_manifest(document, self.namespace)
            except ClusterUnavailableError:
                raise
            except Exception as e:  # noqa: BLE001
                logger.warning(
                    "isolation.manifest_delete_failed",
                    test=self._test.short_name,
                    kind=document.get("kind"),
                    error=str(e),
                )
                first_error = first_error or e

        if self._namespace_created and self.namespace:
            self._namespace_created = False
            try:
                remove_namespace(self._cluster, self.namespace, self._timeouts, self._cancel_event)
            except PollingTimeoutError as e:
                first_error = first_error or e

        logger.debug("isolation.released", test=self._test.short_name, namespace=self.namespace)
        if first_error is not None:
            raise first_error


__all__ = [
    "InvalidNamespaceError",
    "IsolationUnit",
    "MAX_NAMESPACE_LENGTH",
    "ensure_namespace",
    "generate_unique_namespace",
    "load_manifests",
    "remove_namespace",
    "validate_namespace",
]
