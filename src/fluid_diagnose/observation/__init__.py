"""Observation layer: collect Fluid dataset state for diagnosis."""

from fluid_diagnose.observation.collector import DatasetCollector, clean_resource
from fluid_diagnose.observation.models import (
    DatasetInfo,
    DatasetPhase,
    DiagnosticResult,
    EventInfo,
    LogEntry,
    PodGroupStatus,
    PodStatus,
    RuntimeInfo,
    RuntimeKind,
)

__all__ = [
    "DatasetCollector",
    "clean_resource",
    "DatasetInfo",
    "DatasetPhase",
    "DiagnosticResult",
    "EventInfo",
    "LogEntry",
    "PodGroupStatus",
    "PodStatus",
    "RuntimeInfo",
    "RuntimeKind",
]
