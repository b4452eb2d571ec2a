"""Simulated Fluid deployment for demos and development without a cluster.

The fixture is served through :class:`MockGateway`, so a mock run goes
through the real collector, analyzer and normalizer and yields output of
exactly the same shape as a live run. The simulated deployment is partially
degraded: the dataset is Bound, one of two workers is pending on memory and
one fuse pod cannot be scheduled on a tainted node.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from fluid_diagnose.config import Settings, get_settings
from fluid_diagnose.context import DiagnosticContext, to_context
from fluid_diagnose.diagnosis import analyze
from fluid_diagnose.gateway import DatasetNotFoundError, GatewayError
from fluid_diagnose.observation import DatasetCollector, DiagnosticResult

MOCK_NOW = datetime(2026, 2, 7, 18, 35, tzinfo=timezone.utc)


def _ts(minutes_ago: int) -> str:
    return (MOCK_NOW - timedelta(minutes=minutes_ago)).strftime("%Y-%m-%dT%H:%M:%SZ")


def _dataset(name: str, namespace: str) -> dict[str, Any]:
    mount_point = "cos://my-bucket.cos.ap-guangzhou.myqcloud.com/data"
    return {
        "apiVersion": "data.fluid.io/v1alpha1",
        "kind": "Dataset",
        "metadata": {
            "name": name,
            "namespace": namespace,
            "uid": "5f1c2a8e-0d3b-4f7a-9a61-3c0e8b2d4f10",
            "resourceVersion": "184467",
            "generation": 2,
            "creationTimestamp": _ts(40),
            "managedFields": [{"manager": "kubectl", "operation": "Apply"}],
        },
        "spec": {
            "mounts": [
                {
                    "mountPoint": mount_point,
                    "name": "data",
                    "path": "/",
                    "options": {
                        "fs.cosn.userinfo.secretId": "<redacted>",
                        "fs.cosn.userinfo.secretKey": "<redacted>",
                    },
                }
            ],
            "tolerations": [{"effect": "NoSchedule", "key": "fluid.io/cache", "operator": "Exists"}],
        },
        "status": {
            "conditions": [
                {
                    "lastTransitionTime": _ts(35),
                    "message": "The ddc runtime is ready.",
                    "reason": "DatasetReady",
                    "status": "True",
                    "type": "Ready",
                }
            ],
            "mounts": [{"mountPoint": mount_point, "name": "data"}],
            "phase": "Bound",
            "runtimes": [{"name": name, "namespace": namespace, "type": "alluxio"}],
            "ufsTotal": "128.5GiB",
            "fileNum": "54321",
        },
    }


def _runtime(name: str, namespace: str) -> dict[str, Any]:
    return {
        "apiVersion": "data.fluid.io/v1alpha1",
        "kind": "AlluxioRuntime",
        "metadata": {
            "name": name,
            "namespace": namespace,
            "uid": "9b7d4e21-6c5a-4b38-8f0e-7a1d2c3b4e5f",
            "resourceVersion": "184502",
            "generation": 1,
            "creationTimestamp": _ts(40),
        },
        "spec": {
            "replicas": 2,
            "tieredstore": {
                "levels": [{"mediumtype": "MEM", "path": "/dev/shm", "quota": "4Gi", "high": "0.95", "low": "0.7"}]
            },
            "worker": {"resources": {"requests": {"cpu": "2", "memory": "4Gi"}}},
        },
        "status": {
            "masterPhase": "Ready",
            "desiredMasterNumberScheduled": 1,
            "currentMasterNumberScheduled": 1,
            "masterNumberReady": 1,
            "workerPhase": "PartialReady",
            "workerReason": f"Worker pod {name}-worker-1 pending: Insufficient memory",
            "desiredWorkerNumberScheduled": 2,
            "currentWorkerNumberScheduled": 1,
            "workerNumberReady": 1,
            "workerNumberAvailable": 1,
            "workerNumberUnavailable": 1,
            "fusePhase": "PartialReady",
            "fuseReason": "Fuse pod on node node-3 is unschedulable: node has taint",
            "desiredFuseNumberScheduled": 3,
            "currentFuseNumberScheduled": 2,
            "fuseNumberReady": 2,
            "fuseNumberAvailable": 2,
            "fuseNumberUnavailable": 1,
        },
    }


def _pod(
    name: str,
    labels: dict[str, str],
    ready: bool,
    node: str = "",
    restarts: int = 0,
    waiting: dict[str, str] | None = None,
    unschedulable: str = "",
) -> dict[str, Any]:
    conditions = [{"type": "Ready", "status": "True" if ready else "False"}]
    if unschedulable:
        conditions.append(
            {"type": "PodScheduled", "status": "False", "reason": "Unschedulable", "message": unschedulable}
        )
    state: dict[str, Any] = {"waiting": waiting} if waiting else {"running": {"startedAt": _ts(30)}}
    return {
        "metadata": {"name": name, "labels": labels},
        "spec": {"nodeName": node} if node else {},
        "status": {
            "phase": "Running" if ready else "Pending",
            "conditions": conditions,
            "containerStatuses": [{"restartCount": restarts, "state": state}],
        },
    }


def _pods(name: str) -> list[dict[str, Any]]:
    def labels(role: str) -> dict[str, str]:
        return {"release": name, "role": f"alluxio-{role}"}

    pending = {"reason": "ContainerCreating", "message": ""}
    return [
        _pod(f"{name}-master-0", labels("master"), ready=True, node="node-1"),
        _pod(f"{name}-worker-0", labels("worker"), ready=True, node="node-1", restarts=1),
        _pod(
            f"{name}-worker-1",
            labels("worker"),
            ready=False,
            restarts=3,
            waiting=pending,
            unschedulable="0/5 nodes are available: 2 Insufficient memory.",
        ),
        _pod(f"{name}-fuse-abc12", labels("fuse"), ready=True, node="node-1"),
        _pod(f"{name}-fuse-def34", labels("fuse"), ready=True, node="node-2"),
        _pod(
            f"{name}-fuse-x7k2p",
            labels("fuse"),
            ready=False,
            waiting=pending,
            unschedulable="0/5 nodes are available: node has taint {fluid.io/cache: } that pod didn't tolerate",
        ),
    ]


def _event(
    involved_kind: str,
    involved_name: str,
    type_: str,
    reason: str,
    message: str,
    count: int,
    first: int,
    last: int,
    source: str,
) -> dict[str, Any]:
    return {
        "type": type_,
        "reason": reason,
        "message": message,
        "count": count,
        "firstTimestamp": _ts(first),
        "lastTimestamp": _ts(last),
        "source": {"component": source},
        "involvedObject": {"kind": involved_kind, "name": involved_name},
    }


def _events(name: str) -> list[dict[str, Any]]:
    return [
        _event(
            "Pod",
            f"{name}-fuse-x7k2p",
            "Warning",
            "FailedScheduling",
            "0/5 nodes are available: 1 node(s) had taint {fluid.io/cache: }, that the pod didn't tolerate, "
            "2 node(s) had untolerated taint {node.kubernetes.io/disk-pressure: }, 2 Insufficient memory.",
            3,
            30,
            5,
            "default-scheduler",
        ),
        _event(
            "Pod",
            f"{name}-worker-1",
            "Warning",
            "Unhealthy",
            "Readiness probe failed: alluxio worker not ready - master connection timeout",
            8,
            25,
            3,
            "kubelet",
        ),
        _event("StatefulSet", f"{name}-worker", "Normal", "SuccessfulCreate",
               f"create Pod {name}-worker-1 in StatefulSet {name}-worker successful", 1, 32, 32,
               "statefulset-controller"),
        _event("Pod", f"{name}-master-0", "Normal", "Started", "Started container alluxio-master", 1, 34, 34,
               "kubelet"),
        _event("Dataset", name, "Normal", "RuntimeBound", f"Dataset {name} is bound to AlluxioRuntime", 1, 35, 35,
               "dataset-controller"),
    ]


_MASTER_LOG = """\
2026-02-07 18:00:01 INFO  [main] AlluxioMaster - Starting Alluxio master @ node-1
2026-02-07 18:00:03 INFO  [main] RaftJournalSystem - Initializing Raft journal system
2026-02-07 18:00:04 INFO  [main] UfsManager - Using fs.cosn.userinfo.secretKey from mount options
2026-02-07 18:00:08 INFO  [main] FileSystemMaster - Starting file system master
2026-02-07 18:00:10 INFO  [grpc-default-executor-0] DefaultBlockMaster - Registering worker {name}-worker-0
2026-02-07 18:00:45 WARN  [HeartbeatThread] DefaultBlockMaster - No heartbeat from {name}-worker-1 for 30s
2026-02-07 18:01:15 WARN  [HeartbeatThread] DefaultBlockMaster - Worker {name}-worker-1 timed out
2026-02-07 18:20:00 INFO  [HeartbeatThread] DefaultBlockMaster - Cluster status: 1 active workers, 1 lost workers"""

_WORKER_LOG = """\
2026-02-07 18:00:15 INFO  [main] AlluxioWorker - Starting Alluxio worker @ node-1
2026-02-07 18:00:17 INFO  [main] BlockWorker - Initializing block worker with 4GB tiered storage
2026-02-07 18:00:25 INFO  [grpc-default-executor-0] BlockWorker - Connected to master @ {name}-master-0:19998
2026-02-07 18:15:00 WARN  [CacheManager] BlockWorker - High memory pressure, eviction triggered
2026-02-07 18:20:00 INFO  [HeartbeatThread] BlockWorker - Storage usage: 2.8GB / 4GB (70%)"""


class MockGateway:
    """ResourceGateway serving a fixed, partially degraded Alluxio deployment."""

    def __init__(self, name: str, namespace: str) -> None:
        self.name = name
        self.namespace = namespace
        self._pods = _pods(name)
        self._events = _events(name)
        self._logs = {
            f"{name}-master-0": _MASTER_LOG.format(name=name),
            f"{name}-worker-0": _WORKER_LOG.format(name=name),
        }

    def _owns(self, namespace: str, name: str) -> bool:
        return namespace == self.namespace and name == self.name

    def get_dataset(self, namespace: str, name: str) -> dict[str, Any]:
        if not self._owns(namespace, name):
            raise DatasetNotFoundError(namespace, name)
        return _dataset(name, namespace)

    def get_runtime(self, namespace: str, name: str, plural: str) -> dict[str, Any] | None:
        if self._owns(namespace, name) and plural == "alluxioruntimes":
            return _runtime(name, namespace)
        return None

    def get_statefulset(self, namespace: str, name: str) -> dict[str, Any] | None:
        replicas = {f"{self.name}-master": (1, 1), f"{self.name}-worker": (2, 1)}
        if namespace != self.namespace or name not in replicas:
            return None
        desired, ready = replicas[name]
        return {
            "metadata": {"name": name},
            "spec": {"replicas": desired},
            "status": {"replicas": desired, "readyReplicas": ready, "availableReplicas": ready},
        }

    def get_daemonset(self, namespace: str, name: str) -> dict[str, Any] | None:
        if namespace != self.namespace or name != f"{self.name}-fuse":
            return None
        return {
            "metadata": {"name": name},
            "status": {
                "desiredNumberScheduled": 3,
                "currentNumberScheduled": 2,
                "numberReady": 2,
                "numberAvailable": 2,
                "numberUnavailable": 1,
            },
        }

    def get_pvc(self, namespace: str, name: str) -> dict[str, Any] | None:
        if not self._owns(namespace, name):
            return None
        return {
            "metadata": {"name": name},
            "spec": {"volumeName": f"{namespace}-{name}", "storageClassName": "fluid"},
            "status": {"phase": "Bound", "capacity": {"storage": "100Gi"}},
        }

    def get_pv(self, name: str) -> dict[str, Any] | None:
        if name != f"{self.namespace}-{self.name}":
            return None
        return {
            "metadata": {"name": name},
            "spec": {
                "capacity": {"storage": "100Gi"},
                "storageClassName": "fluid",
                "persistentVolumeReclaimPolicy": "Retain",
            },
            "status": {"phase": "Bound"},
        }

    def list_events(self, namespace: str, involved_name: str) -> list[dict[str, Any]]:
        if namespace != self.namespace:
            return []
        return [ev for ev in self._events if ev["involvedObject"]["name"] == involved_name]

    def list_pods(self, namespace: str, label_selector: str) -> list[dict[str, Any]]:
        if namespace != self.namespace:
            return []
        wanted = dict(term.split("=", 1) for term in label_selector.split(",") if term)
        return [
            pod for pod in self._pods
            if all(pod["metadata"]["labels"].get(k) == v for k, v in wanted.items())
        ]

    def read_pod_log(self, namespace: str, pod: str, container: str, tail_lines: int) -> str:
        if pod not in self._logs:
            raise GatewayError(
                f'failed to read logs of {pod}/{container}: 400 container "{container}" '
                "is waiting to start: ContainerCreating",
                status=400,
                reason="BadRequest",
            )
        return "\n".join(self._logs[pod].splitlines()[-tail_lines:])


def mock_diagnostic_result(name: str, namespace: str, settings: Settings | None = None) -> DiagnosticResult:
    """Diagnose the simulated deployment through the real pipeline."""
    opts = settings or get_settings()
    collector = DatasetCollector(
        MockGateway(name, namespace),
        tail_lines=opts.log_tail_lines,
        max_failing_fuse_logs=opts.max_failing_fuse_logs,
        clock=lambda: MOCK_NOW,
    )
    return analyze(collector.collect(namespace, name), restart_threshold=opts.restart_threshold)


def mock_diagnostic_context(name: str, namespace: str, settings: Settings | None = None) -> DiagnosticContext:
    """AI-ready context for the simulated deployment."""
    return to_context(mock_diagnostic_result(name, namespace, settings))
