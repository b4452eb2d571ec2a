"""Correlated view of a Fluid dataset, its runtime and their Kubernetes workloads."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator
from pydantic.alias_generators import to_camel

from fluid_diagnose.diagnosis.models import Finding, HealthVerdict


class WireModel(BaseModel):
    """Base model serialized with camelCase keys, as Kubernetes tooling expects."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DatasetPhase(str, Enum):
    """Lifecycle phase reported in Dataset status."""

    PENDING = "Pending"
    BOUND = "Bound"
    NOT_BOUND = "NotBound"
    FAILED = "Failed"
    UPDATING = "Updating"
    MIGRATING = "Migrating"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: object) -> "DatasetPhase":
        """Map a raw phase string to a phase, defaulting to UNKNOWN."""
        try:
            return cls(str(value))
        except ValueError:
            return cls.UNKNOWN


class RuntimeKind(str, Enum):
    """Fluid runtime resources, in the order they are probed."""

    ALLUXIO = "alluxioruntimes"
    JINDO = "jindoruntimes"
    JUICEFS = "juicefsruntimes"
    EFC = "efcruntimes"
    THIN = "thinruntimes"
    VINEYARD = "vineyardruntimes"
    GOOSEFS = "goosefsruntimes"

    @property
    def display_name(self) -> str:
        return self.value.removesuffix("runtimes")

    @property
    def component_prefix(self) -> str:
        """Prefix of the ``role`` pod label and container names for this runtime."""
        return _COMPONENT_PREFIXES.get(self, self.display_name)


_COMPONENT_PREFIXES = {
    RuntimeKind.JINDO: "jindofs",
}

DEFAULT_COMPONENT_PREFIX = RuntimeKind.ALLUXIO.component_prefix


class ConditionInfo(WireModel):
    """Status condition of a Fluid resource."""

    type: str = ""
    status: str = ""
    reason: str = ""
    message: str = ""


class RuntimeRef(WireModel):
    """Runtime listed in a Dataset's status."""

    name: str = ""
    namespace: str = ""
    type: str = ""


class DatasetInfo(WireModel):
    """Decoded Dataset custom resource."""

    name: str
    namespace: str
    phase: DatasetPhase = DatasetPhase.UNKNOWN
    ufs_total: str = ""
    file_num: str = ""
    mount_points: list[str] = Field(default_factory=list)
    conditions: list[ConditionInfo] = Field(default_factory=list)
    runtimes: list[RuntimeRef] = Field(default_factory=list)
    yaml: str = Field(default="", description="Cleaned YAML of the resource")


class ComponentStatus(WireModel):
    """Per-component counters reported in a runtime's status."""

    phase: str = ""
    reason: str = ""
    desired_scheduled: int = 0
    current_scheduled: int = 0
    ready: int = 0
    available: int = 0
    unavailable: int = 0


class RuntimeInfo(WireModel):
    """Decoded runtime custom resource bound to the dataset."""

    name: str
    namespace: str
    kind: RuntimeKind
    master: ComponentStatus = Field(default_factory=ComponentStatus)
    worker: ComponentStatus = Field(default_factory=ComponentStatus)
    fuse: ComponentStatus = Field(default_factory=ComponentStatus)
    yaml: str = Field(default="", description="Cleaned YAML of the resource")


class PodStatus(WireModel):
    """Status of a single runtime pod."""

    name: str
    phase: str = "Unknown"
    ready: bool = False
    restart_count: int = Field(default=0, ge=0)
    reason: str = ""
    message: str = ""
    node_name: str = ""
    container_state: str = ""  # Waiting | Running | Terminated
    conditions: list[str] = Field(default_factory=list)


class PodGroupStatus(WireModel):
    """A StatefulSet or DaemonSet and the pods it manages."""

    name: str
    kind: str  # StatefulSet | DaemonSet
    desired: int = Field(default=0, ge=0)
    ready: int = Field(default=0, ge=0)
    available: int = Field(default=0, ge=0)
    unavailable: int = Field(default=0, ge=0)
    pods: list[PodStatus] = Field(default_factory=list, description="Ready pods")
    failing_pods: list[PodStatus] = Field(default_factory=list, description="Pods that are not ready")

    @model_validator(mode="after")
    def _check_counts(self) -> "PodGroupStatus":
        if self.ready > self.desired:
            raise ValueError(f"{self.name}: ready ({self.ready}) exceeds desired ({self.desired})")
        if any(not p.ready for p in self.pods) or any(p.ready for p in self.failing_pods):
            raise ValueError(f"{self.name}: pod listed under the wrong readiness bucket")
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def healthy(self) -> bool:
        return self.ready == self.desired

    @property
    def ratio(self) -> str:
        return f"{self.ready}/{self.desired}"

    def add_pod(self, pod: PodStatus) -> None:
        """File a pod under ``pods`` or ``failing_pods`` by its ready flag."""
        if pod.ready:
            self.pods.append(pod)
        else:
            self.failing_pods.append(pod)

    def all_pods(self) -> list[PodStatus]:
        return [*self.pods, *self.failing_pods]


class PVCStatus(WireModel):
    """PersistentVolumeClaim created for the dataset."""

    name: str
    phase: str = ""
    volume_name: str = ""
    storage_class: str = ""
    capacity: str = ""

    @property
    def bound(self) -> bool:
        return self.phase == "Bound"


class PVStatus(WireModel):
    """PersistentVolume bound to the dataset's claim."""

    name: str
    phase: str = ""
    storage_class: str = ""
    capacity: str = ""
    reclaim_policy: str = ""


class EventInfo(WireModel):
    """Kubernetes event related to the dataset or its workloads."""

    type: str = "Normal"  # Normal | Warning
    reason: str = ""
    message: str = ""
    count: int = 1
    first_timestamp: datetime | None = None
    last_timestamp: datetime | None = None
    source: str = ""
    object_kind: str = ""
    object_name: str = ""

    @property
    def sort_key(self) -> datetime:
        """Most recent occurrence, falling back to the first one, then the epoch."""
        return self.last_timestamp or self.first_timestamp or datetime.min.replace(tzinfo=timezone.utc)


class LogEntry(WireModel):
    """Tail of one container's log, or the reason it could not be read."""

    role: str
    pod_name: str
    container_name: str
    logs: str = ""
    tail_lines: int = 0
    truncated: bool = False
    error: str | None = None


class DiagnosticResources(WireModel):
    """Workloads and storage resolved by naming convention."""

    master: PodGroupStatus | None = None
    workers: PodGroupStatus | None = None
    fuse: PodGroupStatus | None = None
    pvc: PVCStatus | None = None
    pv: PVStatus | None = None

    def groups(self) -> list[tuple[str, PodGroupStatus]]:
        """Resolved pod groups as (component, group) pairs, master first."""
        candidates = (("master", self.master), ("worker", self.workers), ("fuse", self.fuse))
        return [(component, group) for component, group in candidates if group is not None]


class DiagnosticLogs(WireModel):
    """Logs captured from runtime pods."""

    master: LogEntry | None = None
    workers: list[LogEntry] = Field(default_factory=list)
    fuse: list[LogEntry] = Field(default_factory=list)


class DiagnosticResult(WireModel):
    """Everything known about one dataset at one point in time."""

    collected_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    dataset_name: str
    namespace: str
    dataset: DatasetInfo
    runtime: RuntimeInfo | None = None
    events: list[EventInfo] = Field(default_factory=list)
    resources: DiagnosticResources = Field(default_factory=DiagnosticResources)
    logs: DiagnosticLogs = Field(default_factory=DiagnosticLogs)
    collection_findings: list[Finding] = Field(
        default_factory=list,
        description="Warnings for collection stages that failed",
    )
    findings: list[Finding] = Field(default_factory=list)
    health: HealthVerdict = HealthVerdict.UNKNOWN

    @property
    def runtime_type(self) -> str:
        return self.runtime.kind.value if self.runtime else ""

    @property
    def component_prefix(self) -> str:
        return self.runtime.kind.component_prefix if self.runtime else DEFAULT_COMPONENT_PREFIX
