"""Cluster handle used by the suite and handed to every test.

The orchestrator only needs a narrow surface: connectivity checks,
namespace lifecycle and applying/deleting manifest documents. ClusterHandle
describes that surface; KubernetesCluster implements it on top of the
official ``kubernetes`` client.

Errors that make the handle unusable (401/403 responses, connection
failures) are raised as ClusterUnavailableError so the runner can abort
the run instead of recording misleading test failures.

Example:
    >>> cluster = KubernetesCluster.from_kubeconfig()  # doctest: +SKIP
    >>> cluster.check_connection()  # doctest: +SKIP
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

import structlog
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError as Urllib3HTTPError

from gwconf_core.errors import ClusterUnavailableError

logger = structlog.get_logger(__name__)

# HTTP statuses that mean the credentials no longer work
_AUTH_FAILURE_STATUSES = frozenset({401, 403})


@runtime_checkable
class ClusterHandle(Protocol):
    """Operations the conformance core performs on the cluster."""

    def check_connection(self) -> None:
        """Raise ClusterUnavailableError if the cluster cannot be used."""
        ...

    def create_namespace(self, name: str, labels: dict[str, str]) -> None:
        """Create a namespace; an existing namespace is not an error."""
        ...

    def namespace_ready(self, name: str) -> bool:
        """Return True once the namespace is Active."""
        ...

    def namespace_exists(self, name: str) -> bool:
        """Return True while the namespace exists (including Terminating)."""
        ...

    def delete_namespace(self, name: str) -> None:
        """Delete a namespace; a missing namespace is not an error."""
        ...

    def apply_manifest(self, document: dict[str, Any], namespace: str | None) -> None:
        """Create one manifest document, defaulting its namespace."""
        ...

    def delete_manifest(self, document: dict[str, Any], namespace: str | None) -> None:
        """Delete one manifest document; a missing object is not an error."""
        ...


def _translate(error: Exception, operation: str) -> Exception:
    """Map a client error to ClusterUnavailableError where the handle is unusable."""
    if isinstance(error, ApiException) and error.status in _AUTH_FAILURE_STATUSES:
        return ClusterUnavailableError(f"{error.status} {error.reason}", operation)
    if isinstance(error, Urllib3HTTPError):
        return ClusterUnavailableError(str(error), operation)
    return error


class KubernetesCluster:
    """ClusterHandle backed by the ``kubernetes`` Python client.

    Args:
        api_client: Configured ``kubernetes.client.ApiClient``.
        core_api: CoreV1Api override (tests).
        version_api: VersionApi override (tests).
        dynamic_client: DynamicClient override (tests).
    """

    def __init__(
        self,
        api_client: Any = None,
        *,
        core_api: Any = None,
        version_api: Any = None,
        dynamic_client: Any = None,
    ) -> None:
        from kubernetes import client

        self._api_client = api_client
        self._core = core_api or client.CoreV1Api(api_client)
        self._version = version_api or client.VersionApi(api_client)
        self._dynamic = dynamic_client

    @classmethod
    def from_kubeconfig(
        cls,
        kubeconfig: str | None = None,
        context: str | None = None,
    ) -> KubernetesCluster:
        """Build a handle from kubeconfig or in-cluster configuration.

        Loading order:
        1. Explicit kubeconfig path
        2. In-cluster configuration
        3. Default kubeconfig (~/.kube/config)

        Raises:
            ClusterUnavailableError: If no configuration can be loaded.
        """
        from kubernetes import client
        from kubernetes import config as k8s_config

        try:
            if kubeconfig:
                api_client = k8s_config.new_client_from_config(
                    config_file=kubeconfig,
                    context=context,
                )
                logger.info("cluster.kubeconfig_loaded", kubeconfig=kubeconfig, context=context)
            else:
                try:
                    k8s_config.load_incluster_config()
                    api_client = client.ApiClient()
                    logger.info("cluster.incluster_loaded")
                except k8s_config.ConfigException:
                    api_client = k8s_config.new_client_from_config(context=context)
                    logger.info("cluster.default_kubeconfig_loaded", context=context)
        except Exception as e:
            raise ClusterUnavailableError(str(e), "client configuration") from e

        return cls(api_client)

    @property
    def dynamic(self) -> Any:
        """Lazily created DynamicClient for arbitrary manifest kinds."""
        if self._dynamic is None:
            from kubernetes.dynamic import DynamicClient

            try:
                self._dynamic = DynamicClient(self._api_client)
            except Exception as e:
                raise _translate(e, "API discovery") from e
        return self._dynamic

    # =========================================================================
    # ClusterHandle
    # =========================================================================

    def check_connection(self) -> None:
        try:
            self._version.get_code()
        except Exception as e:
            reason = f"{e.status} {e.reason}" if isinstance(e, ApiException) else str(e)
            raise ClusterUnavailableError(reason, "connection check") from e

    def create_namespace(self, name: str, labels: dict[str, str]) -> None:
        from kubernetes import client

        body = client.V1Namespace(
            metadata=client.V1ObjectMeta(name=name, labels=dict(labels) or None)
        )
        try:
            self._core.create_namespace(body=body)
            logger.debug("cluster.namespace_created", namespace=name, labels=labels)
        except ApiException as e:
            if e.status == 409:
                logger.debug("cluster.namespace_exists", namespace=name)
                return
            raise _translate(e, f"create namespace {name}") from e
        except Urllib3HTTPError as e:
            raise _translate(e, f"create namespace {name}") from e

    def namespace_ready(self, name: str) -> bool:
        try:
            namespace = self._core.read_namespace(name=name)
        except ApiException as e:
            if e.status == 404:
                return False
            raise _translate(e, f"read namespace {name}") from e
        except Urllib3HTTPError as e:
            raise _translate(e, f"read namespace {name}") from e
        status = getattr(namespace, "status", None)
        return getattr(status, "phase", None) == "Active"

    def namespace_exists(self, name: str) -> bool:
        try:
            self._core.read_namespace(name=name)
        except ApiException as e:
            if e.status == 404:
                return False
            raise _translate(e, f"read namespace {name}") from e
        except Urllib3HTTPError as e:
            raise _translate(e, f"read namespace {name}") from e
        return True

    def delete_namespace(self, name: str) -> None:
        try:
            self._core.delete_namespace(name=name)
            logger.debug("cluster.namespace_deleted", namespace=name)
        except ApiException as e:
            if e.status == 404:
                return
            raise _translate(e, f"delete namespace {name}") from e
        except Urllib3HTTPError as e:
            raise _translate(e, f"delete namespace {name}") from e

    def _resource_for(self, document: dict[str, Any]) -> Any:
        return self.dynamic.resources.get(
            api_version=document["apiVersion"],
            kind=document["kind"],
        )

    def apply_manifest(self, document: dict[str, Any], namespace: str | None) -> None:
        name = document.get("metadata", {}).get("name", "<unnamed>")
        operation = f"apply {document.get('kind')}/{name}"
        try:
            resource = self._resource_for(document)
            target_ns = None
            if resource.namespaced:
                target_ns = document.get("metadata", {}).get("namespace") or namespace
            resource.create(body=document, namespace=target_ns)
            logger.debug("cluster.manifest_applied", kind=document.get("kind"), name=name)
        except ApiException as e:
            if e.status == 409:
                logger.debug("cluster.manifest_exists", kind=document.get("kind"), name=name)
                return
            raise _translate(e, operation) from e
        except Urllib3HTTPError as e:
            raise _translate(e, operation) from e

    def delete_manifest(self, document: dict[str, Any], namespace: str | None) -> None:
        metadata = document.get("metadata", {})
        name = metadata.get("name")
        operation = f"delete {document.get('kind')}/{name}"
        try:
            resource = self._resource_for(document)
            target_ns = None
            if resource.namespaced:
                target_ns = metadata.get("namespace") or namespace
            resource.delete(name=name, namespace=target_ns)
        except ApiException as e:
            if e.status == 404:
                return
            raise _translate(e, operation) from e
        except Urllib3HTTPError as e:
            raise _translate(e, operation) from e


__all__ = ["ClusterHandle", "KubernetesCluster"]
