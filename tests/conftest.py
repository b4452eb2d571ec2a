"""Shared fixtures: an in-memory ResourceGateway and Kubernetes-shaped payload builders."""

from __future__ import annotations

from typing import Any

import pytest

from fluid_diagnose.gateway import DatasetNotFoundError, GatewayError

NAMESPACE = "fluid-demo"
NAME = "demo-data"


def make_dataset(name: str = NAME, namespace: str = NAMESPACE, phase: str | None = "Bound") -> dict[str, Any]:
    status: dict[str, Any] = {
        "ufsTotal": "10GiB",
        "fileNum": "42",
        "conditions": [{"type": "Ready", "status": "True", "reason": "DatasetReady", "message": "ready"}],
        "runtimes": [{"name": name, "namespace": namespace, "type": "alluxio"}],
    }
    if phase is not None:
        status["phase"] = phase
    return {
        "apiVersion": "data.fluid.io/v1alpha1",
        "kind": "Dataset",
        "metadata": {
            "name": name,
            "namespace": namespace,
            "uid": "1234",
            "resourceVersion": "99",
            "generation": 3,
            "creationTimestamp": "2026-02-07T18:00:00Z",
            "managedFields": [{"manager": "kubectl"}],
            "labels": {"team": "ml"},
        },
        "spec": {"mounts": [{"mountPoint": "s3://bucket/data", "name": "data"}, {"name": "no-mountpoint"}]},
        "status": status,
    }


def make_runtime(kind: str = "AlluxioRuntime", name: str = NAME, namespace: str = NAMESPACE) -> dict[str, Any]:
    return {
        "apiVersion": "data.fluid.io/v1alpha1",
        "kind": kind,
        "metadata": {"name": name, "namespace": namespace, "uid": "5678", "resourceVersion": "100"},
        "status": {
            "masterPhase": "Ready",
            "desiredMasterNumberScheduled": 1,
            "masterNumberReady": 1,
            "workerPhase": "PartialReady",
            "workerReason": "one worker pending",
            "desiredWorkerNumberScheduled": 2,
            "currentWorkerNumberScheduled": 2,
            "workerNumberReady": 1,
            "workerNumberAvailable": 1,
            "workerNumberUnavailable": 1,
        },
    }


def make_statefulset(name: str, replicas: int, ready: int) -> dict[str, Any]:
    return {
        "metadata": {"name": name},
        "spec": {"replicas": replicas},
        "status": {"replicas": replicas, "readyReplicas": ready, "availableReplicas": ready},
    }


def make_daemonset(name: str, desired: int, ready: int) -> dict[str, Any]:
    return {
        "metadata": {"name": name},
        "status": {
            "desiredNumberScheduled": desired,
            "numberReady": ready,
            "numberAvailable": ready,
            "numberUnavailable": desired - ready,
        },
    }


def make_pvc(name: str = NAME, phase: str = "Bound", volume: str = "") -> dict[str, Any]:
    return {
        "metadata": {"name": name},
        "spec": {"volumeName": volume, "storageClassName": "fluid"},
        "status": {"phase": phase, "capacity": {"storage": "100Gi"}},
    }


def make_pod(
    name: str,
    role: str,
    ready: bool = True,
    restarts: int = 0,
    release: str = NAME,
    prefix: str = "alluxio",
) -> dict[str, Any]:
    conditions = [{"type": "Ready", "status": "True" if ready else "False"}]
    if not ready:
        conditions.append(
            {"type": "PodScheduled", "status": "False", "reason": "Unschedulable", "message": "Insufficient memory"}
        )
    state = {"running": {}} if ready else {"waiting": {"reason": "CrashLoopBackOff", "message": "back-off"}}
    return {
        "metadata": {"name": name, "labels": {"release": release, "role": f"{prefix}-{role}"}},
        "spec": {"nodeName": "node-1"},
        "status": {
            "phase": "Running" if ready else "Pending",
            "conditions": conditions,
            "containerStatuses": [{"restartCount": restarts, "state": state}],
        },
    }


def make_event(
    involved_name: str,
    message: str,
    type_: str = "Warning",
    last: str | None = "2026-02-07T18:10:00Z",
    kind: str = "Pod",
    reason: str = "FailedScheduling",
) -> dict[str, Any]:
    return {
        "type": type_,
        "reason": reason,
        "message": message,
        "count": 2,
        "firstTimestamp": "2026-02-07T18:00:00Z",
        "lastTimestamp": last,
        "source": {"component": "default-scheduler"},
        "involvedObject": {"kind": kind, "name": involved_name},
    }


class FakeGateway:
    """In-memory ResourceGateway recording every call it receives."""

    def __init__(self) -> None:
        self.datasets: dict[tuple[str, str], dict[str, Any]] = {}
        self.runtimes: dict[str, dict[str, Any]] = {}
        self.statefulsets: dict[str, dict[str, Any]] = {}
        self.daemonsets: dict[str, dict[str, Any]] = {}
        self.pvcs: dict[str, dict[str, Any]] = {}
        self.pvs: dict[str, dict[str, Any]] = {}
        self.events: list[dict[str, Any]] = []
        self.pods: list[dict[str, Any]] = []
        self.logs: dict[tuple[str, str], str] = {}
        self.failures: dict[str, Exception] = {}
        self.calls: list[tuple[Any, ...]] = []

    def _maybe_fail(self, method: str) -> None:
        if method in self.failures:
            raise self.failures[method]

    def get_dataset(self, namespace: str, name: str) -> dict[str, Any]:
        self.calls.append(("get_dataset", namespace, name))
        self._maybe_fail("get_dataset")
        if (namespace, name) not in self.datasets:
            raise DatasetNotFoundError(namespace, name)
        return self.datasets[(namespace, name)]

    def get_runtime(self, namespace: str, name: str, plural: str) -> dict[str, Any] | None:
        self.calls.append(("get_runtime", namespace, name, plural))
        self._maybe_fail("get_runtime")
        self._maybe_fail(f"get_runtime:{plural}")
        return self.runtimes.get(plural)

    def get_statefulset(self, namespace: str, name: str) -> dict[str, Any] | None:
        self.calls.append(("get_statefulset", namespace, name))
        self._maybe_fail("get_statefulset")
        return self.statefulsets.get(name)

    def get_daemonset(self, namespace: str, name: str) -> dict[str, Any] | None:
        self.calls.append(("get_daemonset", namespace, name))
        self._maybe_fail("get_daemonset")
        return self.daemonsets.get(name)

    def get_pvc(self, namespace: str, name: str) -> dict[str, Any] | None:
        self.calls.append(("get_pvc", namespace, name))
        self._maybe_fail("get_pvc")
        return self.pvcs.get(name)

    def get_pv(self, name: str) -> dict[str, Any] | None:
        self.calls.append(("get_pv", name))
        self._maybe_fail("get_pv")
        return self.pvs.get(name)

    def list_events(self, namespace: str, involved_name: str) -> list[dict[str, Any]]:
        self.calls.append(("list_events", namespace, involved_name))
        self._maybe_fail("list_events")
        return [ev for ev in self.events if ev["involvedObject"]["name"] == involved_name]

    def list_pods(self, namespace: str, label_selector: str) -> list[dict[str, Any]]:
        self.calls.append(("list_pods", namespace, label_selector))
        self._maybe_fail("list_pods")
        wanted = dict(term.split("=", 1) for term in label_selector.split(","))
        return [
            pod for pod in self.pods
            if all(pod["metadata"]["labels"].get(k) == v for k, v in wanted.items())
        ]

    def read_pod_log(self, namespace: str, pod: str, container: str, tail_lines: int) -> str:
        self.calls.append(("read_pod_log", namespace, pod, container, tail_lines))
        self._maybe_fail("read_pod_log")
        if (pod, container) not in self.logs:
            raise GatewayError(f"failed to read logs of {pod}/{container}: 400 BadRequest", status=400)
        return self.logs[(pod, container)]


@pytest.fixture
def gateway() -> FakeGateway:
    """Gateway holding a bound dataset with an Alluxio runtime and healthy workloads."""
    gw = FakeGateway()
    gw.datasets[(NAMESPACE, NAME)] = make_dataset()
    gw.runtimes["alluxioruntimes"] = make_runtime()
    gw.statefulsets[f"{NAME}-master"] = make_statefulset(f"{NAME}-master", 1, 1)
    gw.statefulsets[f"{NAME}-worker"] = make_statefulset(f"{NAME}-worker", 2, 2)
    gw.daemonsets[f"{NAME}-fuse"] = make_daemonset(f"{NAME}-fuse", 2, 2)
    gw.pvcs[NAME] = make_pvc(volume=f"{NAMESPACE}-{NAME}")
    gw.pvs[f"{NAMESPACE}-{NAME}"] = {
        "metadata": {"name": f"{NAMESPACE}-{NAME}"},
        "spec": {"capacity": {"storage": "100Gi"}, "persistentVolumeReclaimPolicy": "Retain"},
        "status": {"phase": "Bound"},
    }
    gw.pods = [
        make_pod(f"{NAME}-master-0", "master"),
        make_pod(f"{NAME}-worker-0", "worker"),
        make_pod(f"{NAME}-worker-1", "worker"),
        make_pod(f"{NAME}-fuse-a", "fuse"),
        make_pod(f"{NAME}-fuse-b", "fuse"),
    ]
    gw.logs[(f"{NAME}-master-0", "alluxio-master")] = "master line 1\nmaster line 2"
    gw.logs[(f"{NAME}-worker-0", "alluxio-worker")] = "worker line 1"
    return gw
