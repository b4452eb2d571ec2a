"""Rule-based analysis of a collected dataset snapshot."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fluid_diagnose.diagnosis.models import Finding, HealthVerdict, Severity
from fluid_diagnose.observation.models import DatasetPhase, DiagnosticResult, PodGroupStatus

logger = logging.getLogger(__name__)

DEFAULT_RESTART_THRESHOLD = 3


@dataclass(frozen=True)
class EventSignature:
    """Substrings in a Warning event message that identify a known failure."""

    patterns: tuple[str, ...]
    severity: Severity
    issue: str
    suggestion: str

    def matches(self, message: str) -> bool:
        return any(p in message for p in self.patterns)


EVENT_SIGNATURES = (
    EventSignature(
        patterns=("ImagePullBackOff", "ErrImagePull"),
        severity=Severity.CRITICAL,
        issue="Image pull failure detected",
        suggestion="Check image name, tag, and registry credentials",
    ),
    EventSignature(
        patterns=("Insufficient",),
        severity=Severity.WARNING,
        issue="Resource insufficiency detected",
        suggestion="Check node resources and pod resource requests",
    ),
    EventSignature(
        patterns=("FailedMount", "MountVolume"),
        severity=Severity.CRITICAL,
        issue="Volume mount failure detected",
        suggestion="Check PVC binding and CSI driver status",
    ),
)

# component -> (label, severity, suggestion) for an unhealthy pod group
_GROUP_RULES = {
    "master": ("Master", Severity.CRITICAL, "Check master pod logs and events for errors"),
    "worker": ("Workers", Severity.WARNING, "Check worker pod logs and node resources"),
    "fuse": ("Fuse", Severity.WARNING, "Check fuse pod logs and node selectors/tolerations"),
}


def _dataset_findings(result: DiagnosticResult) -> list[Finding]:
    phase = result.dataset.phase
    if phase == DatasetPhase.PENDING:
        return [
            Finding(
                severity=Severity.WARNING,
                component="dataset",
                issue="Dataset is in Pending phase",
                suggestion="Check if a matching Runtime CR exists and is healthy",
            )
        ]
    if phase == DatasetPhase.FAILED:
        return [
            Finding(
                severity=Severity.CRITICAL,
                component="dataset",
                issue="Dataset is in Failed phase",
                suggestion="Check events and conditions for failure reason",
            )
        ]
    return []


def _group_findings(result: DiagnosticResult) -> list[Finding]:
    findings = []
    for component, group in result.resources.groups():
        if group.healthy:
            continue
        label, severity, suggestion = _GROUP_RULES[component]
        findings.append(
            Finding(
                severity=severity,
                component=component,
                issue=f"{label} not healthy: {group.ratio} ready",
                suggestion=suggestion,
            )
        )
    return findings


def _pvc_findings(result: DiagnosticResult) -> list[Finding]:
    pvc = result.resources.pvc
    if pvc is None or pvc.bound:
        return []
    return [
        Finding(
            severity=Severity.CRITICAL,
            component="pvc",
            issue=f"PVC {pvc.name} is not bound: {pvc.phase or 'Unknown'}",
            suggestion="Check if the Dataset is bound to a Runtime",
        )
    ]


def _event_findings(result: DiagnosticResult) -> list[Finding]:
    findings = []
    for event in result.events:
        if event.type != "Warning":
            continue
        for signature in EVENT_SIGNATURES:
            if signature.matches(event.message):
                findings.append(
                    Finding(
                        severity=signature.severity,
                        component=event.object_kind,
                        issue=signature.issue,
                        suggestion=signature.suggestion,
                        evidence=event.message,
                    )
                )
    return findings


def _restart_findings(result: DiagnosticResult, threshold: int) -> list[Finding]:
    findings = []
    for component, group in result.resources.groups():
        for pod in group.all_pods():
            if pod.restart_count > threshold:
                findings.append(
                    Finding(
                        severity=Severity.WARNING,
                        component=component,
                        issue=f"High restart count ({pod.restart_count}) for pod {pod.name}",
                        suggestion="Check pod logs for crash reasons",
                    )
                )
    return findings


def generate_findings(
    result: DiagnosticResult,
    restart_threshold: int = DEFAULT_RESTART_THRESHOLD,
) -> list[Finding]:
    """Evaluate every rule against the snapshot, in a fixed order."""
    return [
        *_dataset_findings(result),
        *_group_findings(result),
        *_pvc_findings(result),
        *_event_findings(result),
        *_restart_findings(result, restart_threshold),
    ]


def _has_problem_resource(result: DiagnosticResult) -> bool:
    groups_unhealthy = any(not group.healthy for _, group in result.resources.groups())
    pvc = result.resources.pvc
    return groups_unhealthy or (pvc is not None and not pvc.bound)


def _is_running(group: PodGroupStatus) -> bool:
    # A group scaled to zero proves nothing about health
    return group.desired > 0


def determine_health(result: DiagnosticResult) -> HealthVerdict:
    """Derive the overall verdict from findings and resolved resources."""
    severities = {f.severity for f in result.findings}
    if Severity.CRITICAL in severities:
        return HealthVerdict.UNHEALTHY
    if Severity.WARNING in severities or _has_problem_resource(result):
        return HealthVerdict.DEGRADED
    has_evidence = result.resources.pvc is not None or any(
        _is_running(group) for _, group in result.resources.groups()
    )
    if has_evidence:
        return HealthVerdict.HEALTHY
    return HealthVerdict.UNKNOWN


def analyze(
    result: DiagnosticResult,
    restart_threshold: int = DEFAULT_RESTART_THRESHOLD,
) -> DiagnosticResult:
    """Set the result's findings and health verdict.

    Findings are rebuilt from the collection warnings plus every rule, so
    analyzing the same result again gives the same findings.
    """
    result.findings = [*result.collection_findings, *generate_findings(result, restart_threshold)]
    result.health = determine_health(result)
    logger.debug(
        "Analyzed %s/%s: %d findings, health=%s",
        result.namespace,
        result.dataset_name,
        len(result.findings),
        result.health.value,
    )
    return result
