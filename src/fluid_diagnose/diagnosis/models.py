"""Structured outputs from the diagnosis layer."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class Severity(str, Enum):
    """How urgent a finding is."""

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class HealthVerdict(str, Enum):
    """Overall health of a dataset and its runtime."""

    HEALTHY = "Healthy"
    DEGRADED = "Degraded"
    UNHEALTHY = "Unhealthy"
    UNKNOWN = "Unknown"


class Finding(BaseModel):
    """A single classified observation with a suggested next step."""

    severity: Severity
    component: str = Field(
        ...,
        description="Affected component, e.g. dataset, master, worker, fuse, pvc, or an event object kind",
    )
    issue: str = Field(..., description="One-line summary of the problem")
    suggestion: str = Field(default="", description="What the operator should check or change")
    evidence: str | None = Field(
        default=None,
        description="Raw text backing the finding (event message, error text)",
    )
