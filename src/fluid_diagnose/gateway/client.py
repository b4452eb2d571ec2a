"""Read Fluid custom resources and their Kubernetes workloads as plain dicts."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from fluid_diagnose.gateway.errors import DatasetNotFoundError, GatewayError

logger = logging.getLogger(__name__)

FLUID_GROUP = "data.fluid.io"
FLUID_VERSION = "v1alpha1"
DATASET_PLURAL = "datasets"


class ResourceGateway(Protocol):
    """Capabilities the collector needs from a cluster.

    Getters return ``None`` when the resource does not exist and raise
    :class:`GatewayError` for any other failure. All payloads use the
    Kubernetes wire form (camelCase keys, ISO-8601 timestamps).
    """

    def get_dataset(self, namespace: str, name: str) -> dict[str, Any]: ...

    def get_runtime(self, namespace: str, name: str, plural: str) -> dict[str, Any] | None: ...

    def get_statefulset(self, namespace: str, name: str) -> dict[str, Any] | None: ...

    def get_daemonset(self, namespace: str, name: str) -> dict[str, Any] | None: ...

    def get_pvc(self, namespace: str, name: str) -> dict[str, Any] | None: ...

    def get_pv(self, name: str) -> dict[str, Any] | None: ...

    def list_events(self, namespace: str, involved_name: str) -> list[dict[str, Any]]: ...

    def list_pods(self, namespace: str, label_selector: str) -> list[dict[str, Any]]: ...

    def read_pod_log(self, namespace: str, pod: str, container: str, tail_lines: int) -> str: ...


def _load_kube_config(kubeconfig_path: str | None, context: str | None) -> client.Configuration:
    """Load in-cluster or kubeconfig-based configuration.

    An explicit kubeconfig path or context always selects kubeconfig.
    """
    if not kubeconfig_path and not context:
        try:
            config.load_incluster_config()
            return client.Configuration.get_default_copy()
        except config.ConfigException:
            logger.debug("Not running in a cluster, loading kubeconfig")
    kwargs: dict[str, Any] = {}
    if kubeconfig_path:
        kwargs["config_file"] = str(kubeconfig_path)
    if context:
        kwargs["context"] = context
    config.load_kube_config(**kwargs)
    return client.Configuration.get_default_copy()


class KubernetesGateway:
    """ResourceGateway backed by the official Kubernetes Python client."""

    def __init__(
        self,
        kubeconfig: str | None = None,
        context: str | None = None,
        request_timeout: float | None = None,
    ) -> None:
        cfg = _load_kube_config(kubeconfig, context)
        self._api_client = client.ApiClient(cfg)
        self._core = client.CoreV1Api(self._api_client)
        self._apps = client.AppsV1Api(self._api_client)
        self._custom = client.CustomObjectsApi(self._api_client)
        self._timeout_kwargs: dict[str, Any] = (
            {"_request_timeout": request_timeout} if request_timeout else {}
        )

    def _to_dict(self, obj: Any) -> dict[str, Any]:
        return self._api_client.sanitize_for_serialization(obj)

    def _get(self, action: str, fn: Any, **kwargs: Any) -> dict[str, Any] | None:
        try:
            obj = fn(**kwargs, **self._timeout_kwargs)
        except ApiException as e:
            if e.status == 404:
                logger.debug("%s: not found", action)
                return None
            raise GatewayError.from_api_exception(action, e) from e
        return self._to_dict(obj)

    def get_dataset(self, namespace: str, name: str) -> dict[str, Any]:
        dataset = self._get(
            f"get dataset {namespace}/{name}",
            self._custom.get_namespaced_custom_object,
            group=FLUID_GROUP,
            version=FLUID_VERSION,
            namespace=namespace,
            plural=DATASET_PLURAL,
            name=name,
        )
        if dataset is None:
            raise DatasetNotFoundError(namespace, name)
        return dataset

    def get_runtime(self, namespace: str, name: str, plural: str) -> dict[str, Any] | None:
        # 404 covers both a missing object and a runtime CRD that is not installed
        return self._get(
            f"get {plural} {namespace}/{name}",
            self._custom.get_namespaced_custom_object,
            group=FLUID_GROUP,
            version=FLUID_VERSION,
            namespace=namespace,
            plural=plural,
            name=name,
        )

    def get_statefulset(self, namespace: str, name: str) -> dict[str, Any] | None:
        return self._get(
            f"get statefulset {namespace}/{name}",
            self._apps.read_namespaced_stateful_set,
            name=name,
            namespace=namespace,
        )

    def get_daemonset(self, namespace: str, name: str) -> dict[str, Any] | None:
        return self._get(
            f"get daemonset {namespace}/{name}",
            self._apps.read_namespaced_daemon_set,
            name=name,
            namespace=namespace,
        )

    def get_pvc(self, namespace: str, name: str) -> dict[str, Any] | None:
        return self._get(
            f"get pvc {namespace}/{name}",
            self._core.read_namespaced_persistent_volume_claim,
            name=name,
            namespace=namespace,
        )

    def get_pv(self, name: str) -> dict[str, Any] | None:
        return self._get(f"get pv {name}", self._core.read_persistent_volume, name=name)

    def list_events(self, namespace: str, involved_name: str) -> list[dict[str, Any]]:
        try:
            event_list = self._core.list_namespaced_event(
                namespace=namespace,
                field_selector=f"involvedObject.name={involved_name}",
                **self._timeout_kwargs,
            )
        except ApiException as e:
            raise GatewayError.from_api_exception(f"list events for {namespace}/{involved_name}", e) from e
        return [self._to_dict(ev) for ev in event_list.items]

    def list_pods(self, namespace: str, label_selector: str) -> list[dict[str, Any]]:
        try:
            pod_list = self._core.list_namespaced_pod(
                namespace=namespace,
                label_selector=label_selector,
                **self._timeout_kwargs,
            )
        except ApiException as e:
            raise GatewayError.from_api_exception(f"list pods {label_selector!r} in {namespace}", e) from e
        return [self._to_dict(pod) for pod in pod_list.items]

    def read_pod_log(self, namespace: str, pod: str, container: str, tail_lines: int) -> str:
        try:
            log = self._core.read_namespaced_pod_log(
                name=pod,
                namespace=namespace,
                container=container,
                tail_lines=tail_lines,
                timestamps=False,
                **self._timeout_kwargs,
            )
        except ApiException as e:
            raise GatewayError.from_api_exception(f"read logs of {pod}/{container}", e) from e
        return log or ""
