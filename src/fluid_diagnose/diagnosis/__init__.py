"""Diagnosis layer: rule-based failure detection and health verdicts."""

from fluid_diagnose.diagnosis.analyzer import analyze, determine_health, generate_findings
from fluid_diagnose.diagnosis.models import Finding, HealthVerdict, Severity

__all__ = [
    "analyze",
    "determine_health",
    "generate_findings",
    "Finding",
    "HealthVerdict",
    "Severity",
]
