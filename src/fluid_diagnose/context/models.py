"""Schema of the AI-ready diagnostic context.

Downstream tooling parses this payload, so field names and shapes are
stable; bump ``CONTEXT_VERSION`` on any incompatible change.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from fluid_diagnose.diagnosis.models import Finding, HealthVerdict
from fluid_diagnose.observation.models import EventInfo, WireModel

CONTEXT_VERSION = "1.0"


class ContextSummary(WireModel):
    """Quick overview of the dataset's state."""

    dataset_name: str
    namespace: str
    dataset_phase: str
    runtime_type: str = ""
    health_status: HealthVerdict
    master_ready: str = ""
    workers_ready: str = ""
    fuse_ready: str = ""
    pvc_status: str = ""
    error_count: int = 0
    warning_count: int = 0


class DiagnosticContext(WireModel):
    """Normalized, deterministic diagnostic data for LLM consumption."""

    summary: ContextSummary
    dataset_yaml: str
    runtime_yaml: str = ""
    events: list[EventInfo] = Field(default_factory=list)
    logs: dict[str, str] = Field(default_factory=dict, description="log key -> redacted log tail")
    failure_hints: list[Finding] = Field(default_factory=list)
    collected_at: datetime
    version: str = CONTEXT_VERSION

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)
