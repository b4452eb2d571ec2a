"""Collect a Fluid dataset's state (CRs, events, workloads, logs) for diagnosis."""

from __future__ import annotations

import copy
import logging
from datetime import datetime, timezone
from typing import Any, Callable

import yaml

from fluid_diagnose.diagnosis.models import Finding, Severity
from fluid_diagnose.gateway import GatewayError, ResourceGateway
from fluid_diagnose.observation.models import (
    ComponentStatus,
    ConditionInfo,
    DatasetInfo,
    DatasetPhase,
    DiagnosticResult,
    EventInfo,
    LogEntry,
    PodGroupStatus,
    PodStatus,
    PVCStatus,
    PVStatus,
    RuntimeInfo,
    RuntimeKind,
    RuntimeRef,
)

logger = logging.getLogger(__name__)

# Default number of log lines to fetch per captured container
DEFAULT_LOG_TAIL_LINES = 100
# Failing fuse pods are one per node, so only a few are sampled
DEFAULT_MAX_FAILING_FUSE_LOGS = 2

NOISY_METADATA_FIELDS = ("managedFields", "resourceVersion", "uid", "generation", "creationTimestamp")

RUNTIME_COMPONENTS = ("master", "worker", "fuse")

# Stage name -> (component, issue, suggestion) reported when the stage fails
_STAGE_FAILURES = {
    "events": (
        "events",
        "Failed to collect events",
        "Check RBAC permissions for event access",
    ),
    "resources": (
        "resources",
        "Failed to collect resource status",
        "Check RBAC permissions for pod/statefulset/daemonset access",
    ),
    "logs": (
        "logs",
        "Failed to collect some logs",
        "Check RBAC permissions for pod/log access",
    ),
}


def clean_resource(obj: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of a resource without volatile bookkeeping metadata."""
    cleaned = copy.deepcopy(obj)
    metadata = cleaned.get("metadata")
    if isinstance(metadata, dict):
        for key in NOISY_METADATA_FIELDS:
            metadata.pop(key, None)
    return cleaned


def resource_to_yaml(obj: dict[str, Any]) -> str:
    """Serialize a cleaned resource to YAML, preserving key order."""
    return yaml.safe_dump(clean_resource(obj), sort_keys=False, default_flow_style=False)


def _as_int(value: Any) -> int:
    """Non-negative int from an optional API number."""
    try:
        return max(int(value), 0)
    except (TypeError, ValueError):
        return 0


def _as_str(value: Any) -> str:
    return "" if value is None else str(value)


def _metadata(obj: dict[str, Any]) -> dict[str, Any]:
    return obj.get("metadata") or {}


def _build_dataset_info(obj: dict[str, Any]) -> DatasetInfo:
    """Build DatasetInfo from a Dataset custom resource."""
    meta = _metadata(obj)
    status = obj.get("status") or {}
    spec = obj.get("spec") or {}
    conditions = [
        ConditionInfo(
            type=_as_str(c.get("type")),
            status=_as_str(c.get("status")),
            reason=_as_str(c.get("reason")),
            message=_as_str(c.get("message")),
        )
        for c in status.get("conditions") or []
        if isinstance(c, dict)
    ]
    runtimes = [
        RuntimeRef(
            name=_as_str(r.get("name")),
            namespace=_as_str(r.get("namespace")),
            type=_as_str(r.get("type")),
        )
        for r in status.get("runtimes") or []
        if isinstance(r, dict)
    ]
    mount_points = [
        _as_str(m.get("mountPoint"))
        for m in spec.get("mounts") or []
        if isinstance(m, dict) and m.get("mountPoint")
    ]
    return DatasetInfo(
        name=_as_str(meta.get("name")),
        namespace=_as_str(meta.get("namespace")),
        phase=DatasetPhase.parse(status.get("phase")),
        ufs_total=_as_str(status.get("ufsTotal")),
        file_num=_as_str(status.get("fileNum")),
        mount_points=mount_points,
        conditions=conditions,
        runtimes=runtimes,
        yaml=resource_to_yaml(obj),
    )


def _build_component_status(status: dict[str, Any], role: str) -> ComponentStatus:
    """Read ``<role>Phase``, ``desired<Role>NumberScheduled`` etc. from runtime status."""
    title = role.capitalize()
    return ComponentStatus(
        phase=_as_str(status.get(f"{role}Phase")),
        reason=_as_str(status.get(f"{role}Reason")),
        desired_scheduled=_as_int(status.get(f"desired{title}NumberScheduled")),
        current_scheduled=_as_int(status.get(f"current{title}NumberScheduled")),
        ready=_as_int(status.get(f"{role}NumberReady")),
        available=_as_int(status.get(f"{role}NumberAvailable")),
        unavailable=_as_int(status.get(f"{role}NumberUnavailable")),
    )


def _build_runtime_info(obj: dict[str, Any], kind: RuntimeKind) -> RuntimeInfo:
    """Build RuntimeInfo from a runtime custom resource."""
    meta = _metadata(obj)
    status = obj.get("status") or {}
    return RuntimeInfo(
        name=_as_str(meta.get("name")),
        namespace=_as_str(meta.get("namespace")),
        kind=kind,
        master=_build_component_status(status, "master"),
        worker=_build_component_status(status, "worker"),
        fuse=_build_component_status(status, "fuse"),
        yaml=resource_to_yaml(obj),
    )


def _build_event_info(ev: dict[str, Any]) -> EventInfo:
    """Build EventInfo from a core/v1 Event."""
    involved = ev.get("involvedObject") or {}
    source = ev.get("source") or {}
    return EventInfo(
        type=_as_str(ev.get("type")) or "Normal",
        reason=_as_str(ev.get("reason")),
        message=_as_str(ev.get("message")),
        count=_as_int(ev.get("count")) or 1,
        first_timestamp=ev.get("firstTimestamp"),
        last_timestamp=ev.get("lastTimestamp") or ev.get("eventTime"),
        source=_as_str(source.get("component")),
        object_kind=_as_str(involved.get("kind")),
        object_name=_as_str(involved.get("name")),
    )


def is_pod_ready(pod: dict[str, Any]) -> bool:
    """Return True if the pod's Ready condition is True."""
    for c in (pod.get("status") or {}).get("conditions") or []:
        if c.get("type") == "Ready":
            return c.get("status") == "True"
    return False


def _build_pod_status(pod: dict[str, Any]) -> PodStatus:
    """Build PodStatus from a core/v1 Pod, using its first container."""
    meta = _metadata(pod)
    status = pod.get("status") or {}
    restart_count = 0
    container_state = ""
    reason = ""
    message = ""
    container_statuses = status.get("containerStatuses") or []
    if container_statuses:
        cs = container_statuses[0]
        restart_count = _as_int(cs.get("restartCount"))
        state = cs.get("state") or {}
        if state.get("waiting"):
            container_state = "Waiting"
            reason = _as_str(state["waiting"].get("reason"))
            message = _as_str(state["waiting"].get("message"))
        elif state.get("terminated"):
            container_state = "Terminated"
            reason = _as_str(state["terminated"].get("reason"))
            message = _as_str(state["terminated"].get("message"))
        elif state.get("running"):
            container_state = "Running"
    conditions = [
        f"{c.get('type')}: {_as_str(c.get('reason'))} ({_as_str(c.get('message'))})"
        for c in status.get("conditions") or []
        if c.get("status") == "False" and c.get("type") != "Ready"
    ]
    return PodStatus(
        name=_as_str(meta.get("name")),
        phase=_as_str(status.get("phase")) or "Unknown",
        ready=is_pod_ready(pod),
        restart_count=restart_count,
        reason=reason,
        message=message,
        node_name=_as_str((pod.get("spec") or {}).get("nodeName")),
        container_state=container_state,
        conditions=conditions,
    )


def _build_statefulset_group(sts: dict[str, Any]) -> PodGroupStatus:
    """Build PodGroupStatus from an apps/v1 StatefulSet."""
    spec = sts.get("spec") or {}
    status = sts.get("status") or {}
    desired = _as_int(spec.get("replicas") if spec.get("replicas") is not None else status.get("replicas"))
    ready = min(_as_int(status.get("readyReplicas")), desired)
    return PodGroupStatus(
        name=_as_str(_metadata(sts).get("name")),
        kind="StatefulSet",
        desired=desired,
        ready=ready,
        available=_as_int(status.get("availableReplicas")),
        unavailable=desired - ready,
    )


def _build_daemonset_group(ds: dict[str, Any]) -> PodGroupStatus:
    """Build PodGroupStatus from an apps/v1 DaemonSet."""
    status = ds.get("status") or {}
    desired = _as_int(status.get("desiredNumberScheduled"))
    return PodGroupStatus(
        name=_as_str(_metadata(ds).get("name")),
        kind="DaemonSet",
        desired=desired,
        ready=min(_as_int(status.get("numberReady")), desired),
        available=_as_int(status.get("numberAvailable")),
        unavailable=_as_int(status.get("numberUnavailable")),
    )


def _build_pvc_status(pvc: dict[str, Any]) -> PVCStatus:
    spec = pvc.get("spec") or {}
    status = pvc.get("status") or {}
    return PVCStatus(
        name=_as_str(_metadata(pvc).get("name")),
        phase=_as_str(status.get("phase")),
        volume_name=_as_str(spec.get("volumeName")),
        storage_class=_as_str(spec.get("storageClassName")),
        capacity=_as_str((status.get("capacity") or {}).get("storage")),
    )


def _build_pv_status(pv: dict[str, Any]) -> PVStatus:
    spec = pv.get("spec") or {}
    return PVStatus(
        name=_as_str(_metadata(pv).get("name")),
        phase=_as_str((pv.get("status") or {}).get("phase")),
        storage_class=_as_str(spec.get("storageClassName")),
        capacity=_as_str((spec.get("capacity") or {}).get("storage")),
        reclaim_policy=_as_str(spec.get("persistentVolumeReclaimPolicy")),
    )


def sort_events(events: list[EventInfo]) -> list[EventInfo]:
    """Most recent first."""
    return sorted(events, key=lambda e: e.sort_key, reverse=True)


class DatasetCollector:
    """Collects a dataset's state through a ResourceGateway, one stage after another."""

    def __init__(
        self,
        gateway: ResourceGateway,
        tail_lines: int = DEFAULT_LOG_TAIL_LINES,
        max_failing_fuse_logs: int = DEFAULT_MAX_FAILING_FUSE_LOGS,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.gateway = gateway
        self.tail_lines = tail_lines
        self.max_failing_fuse_logs = max_failing_fuse_logs
        self.clock = clock

    def collect(self, namespace: str, name: str) -> DiagnosticResult:
        """Collect a best-effort snapshot of the dataset.

        Only reading the dataset may raise (``DatasetNotFoundError`` or
        ``GatewayError``). Later stages record a warning in
        ``collection_findings`` and continue.
        """
        collected_at = self.clock()
        dataset, runtime = self._collect_snapshots(namespace, name)
        result = DiagnosticResult(
            collected_at=collected_at,
            dataset_name=name,
            namespace=namespace,
            dataset=dataset,
            runtime=runtime,
        )
        self._run_stage("events", result, self._collect_events)
        self._run_stage("resources", result, self._collect_resource_status)
        self._run_stage("logs", result, self._collect_logs)
        return result

    def _run_stage(
        self,
        stage: str,
        result: DiagnosticResult,
        fn: Callable[[DiagnosticResult], None],
    ) -> None:
        logger.debug("Collecting %s for %s/%s", stage, result.namespace, result.dataset_name)
        try:
            fn(result)
        except Exception as e:
            logger.warning("Failed to collect %s: %s", stage, e)
            component, issue, suggestion = _STAGE_FAILURES[stage]
            result.collection_findings.append(
                Finding(
                    severity=Severity.WARNING,
                    component=component,
                    issue=issue,
                    suggestion=suggestion,
                    evidence=str(e),
                )
            )

    def _collect_snapshots(self, namespace: str, name: str) -> tuple[DatasetInfo, RuntimeInfo | None]:
        dataset = _build_dataset_info(self.gateway.get_dataset(namespace, name))
        runtime = None
        for kind in RuntimeKind:
            try:
                obj = self.gateway.get_runtime(namespace, name, kind.value)
            except GatewayError as e:
                # e.g. no RBAC on this runtime kind; keep probing the others
                logger.warning("Skipping %s while probing runtimes: %s", kind.value, e)
                continue
            if obj is not None:
                logger.debug("Found %s %s/%s", kind.value, namespace, name)
                runtime = _build_runtime_info(obj, kind)
                break
        else:
            logger.info("No runtime bound to dataset %s/%s", namespace, name)
        return dataset, runtime

    def _collect_events(self, result: DiagnosticResult) -> None:
        ns, name = result.namespace, result.dataset_name
        involved = [name, *(f"{name}-{role}" for role in RUNTIME_COMPONENTS)]
        involved.extend(
            _as_str(_metadata(pod).get("name"))
            for pod in self.gateway.list_pods(ns, f"release={name}")
        )
        events: list[EventInfo] = []
        for obj_name in involved:
            events.extend(_build_event_info(ev) for ev in self.gateway.list_events(ns, obj_name))
        result.events = sort_events(events)

    def _lookup(self, fn: Callable[..., Any], *args: Any) -> Any:
        """Call a gateway getter, treating a gateway error like absence."""
        try:
            return fn(*args)
        except GatewayError as e:
            logger.debug("Ignoring lookup failure: %s", e)
            return None

    def _fill_pods(self, result: DiagnosticResult, role: str, group: PodGroupStatus) -> None:
        selector = f"release={result.dataset_name},role={result.component_prefix}-{role}"
        pods = self._lookup(self.gateway.list_pods, result.namespace, selector) or []
        for pod in pods:
            group.add_pod(_build_pod_status(pod))

    def _collect_resource_status(self, result: DiagnosticResult) -> None:
        ns, name = result.namespace, result.dataset_name
        resources = result.resources

        master = self._lookup(self.gateway.get_statefulset, ns, f"{name}-master")
        if master is not None:
            resources.master = _build_statefulset_group(master)
            self._fill_pods(result, "master", resources.master)

        workers = self._lookup(self.gateway.get_statefulset, ns, f"{name}-worker")
        if workers is not None:
            resources.workers = _build_statefulset_group(workers)
            self._fill_pods(result, "worker", resources.workers)

        fuse = self._lookup(self.gateway.get_daemonset, ns, f"{name}-fuse")
        if fuse is not None:
            resources.fuse = _build_daemonset_group(fuse)
            self._fill_pods(result, "fuse", resources.fuse)

        pvc = self._lookup(self.gateway.get_pvc, ns, name)
        if pvc is not None:
            resources.pvc = _build_pvc_status(pvc)
            if resources.pvc.volume_name:
                pv = self._lookup(self.gateway.get_pv, resources.pvc.volume_name)
                if pv is not None:
                    resources.pv = _build_pv_status(pv)

    def _capture_log(self, result: DiagnosticResult, role: str, pod: PodStatus) -> LogEntry:
        container = f"{result.component_prefix}-{role}"
        entry = LogEntry(
            role=role,
            pod_name=pod.name,
            container_name=container,
            tail_lines=self.tail_lines,
        )
        try:
            entry.logs = self.gateway.read_pod_log(result.namespace, pod.name, container, self.tail_lines)
        except GatewayError as e:
            entry.error = str(e)
            return entry
        entry.truncated = len(entry.logs.splitlines()) >= self.tail_lines
        return entry

    def _collect_logs(self, result: DiagnosticResult) -> None:
        resources = result.resources
        if resources.master is not None and resources.master.pods:
            result.logs.master = self._capture_log(result, "master", resources.master.pods[0])

        if resources.workers is not None:
            # One healthy and one failing worker, when available
            for pods in (resources.workers.pods, resources.workers.failing_pods):
                if pods:
                    result.logs.workers.append(self._capture_log(result, "worker", pods[0]))

        if resources.fuse is not None:
            for pod in resources.fuse.failing_pods[: self.max_failing_fuse_logs]:
                result.logs.fuse.append(self._capture_log(result, "fuse", pod))
