"""Orchestrator: collect → analyze → normalize → report."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel

from fluid_diagnose.config import Settings, get_settings
from fluid_diagnose.context import DiagnosticContext, to_context
from fluid_diagnose.diagnosis import HealthVerdict, Severity, analyze
from fluid_diagnose.gateway import KubernetesGateway, ResourceGateway
from fluid_diagnose.mock import mock_diagnostic_result
from fluid_diagnose.observation import DatasetCollector, DiagnosticResult, LogEntry, RuntimeInfo
from fluid_diagnose.observation.models import ConditionInfo
from fluid_diagnose.pipeline.report import (
    REPORT_HEADER,
    REPORT_NO_FINDINGS,
    REPORT_SECTION_CONDITIONS,
    REPORT_SECTION_DATASET,
    REPORT_SECTION_EVENTS,
    REPORT_SECTION_FINDINGS,
    REPORT_SECTION_LOGS,
    REPORT_SECTION_RESOURCES,
    REPORT_SECTION_RUNTIME,
)

logger = logging.getLogger(__name__)

_HEALTH_STYLES = {
    HealthVerdict.HEALTHY: "green",
    HealthVerdict.DEGRADED: "yellow",
    HealthVerdict.UNHEALTHY: "red",
    HealthVerdict.UNKNOWN: "white",
}

_SEVERITY_ICONS = {
    Severity.CRITICAL: "🔴",
    Severity.WARNING: "🟡",
    Severity.INFO: "🔵",
}

# Lines of each log shown in the text report
REPORT_LOG_LINES = 10


@dataclass
class DiagnosisRun:
    """Result of one diagnostic run."""

    result: DiagnosticResult
    context: DiagnosticContext
    report: str = ""

    @property
    def health(self) -> HealthVerdict:
        return self.result.health


def diagnose_dataset(
    gateway: ResourceGateway,
    namespace: str,
    name: str,
    settings: Settings | None = None,
) -> DiagnosticResult:
    """Collect and analyze one dataset. Raises DatasetNotFoundError if it does not exist."""
    opts = settings or get_settings()
    collector = DatasetCollector(
        gateway,
        tail_lines=opts.log_tail_lines,
        max_failing_fuse_logs=opts.max_failing_fuse_logs,
    )
    result = collector.collect(namespace, name)
    return analyze(result, restart_threshold=opts.restart_threshold)


def run_diagnosis(
    name: str,
    namespace: str | None = None,
    kubeconfig: str | None = None,
    context: str | None = None,
    mock: bool = False,
    settings: Settings | None = None,
) -> DiagnosisRun:
    """
    Run the full pipeline against the cluster (or the mock fixture) and build the report.
    """
    opts = settings or get_settings()
    ns = namespace or opts.namespace

    if mock:
        logger.info("Using mock data for %s/%s", ns, name)
        result = mock_diagnostic_result(name, ns, opts)
    else:
        gateway = KubernetesGateway(
            kubeconfig=kubeconfig or (str(opts.kubeconfig) if opts.kubeconfig else None),
            context=context or opts.context,
            request_timeout=opts.request_timeout,
        )
        result = diagnose_dataset(gateway, ns, name, opts)

    return DiagnosisRun(result=result, context=to_context(result), report=build_report(result))


def _dataset_section(result: DiagnosticResult) -> str:
    dataset = result.dataset
    runtimes = ", ".join(f"{r.type}/{r.name}" if r.type else r.name for r in dataset.runtimes)
    mount_points = "\n".join(f"  - `{mp}`" for mp in dataset.mount_points) or "  - none"
    return REPORT_SECTION_DATASET.format(
        ufs_total=dataset.ufs_total or "-",
        file_num=dataset.file_num or "-",
        runtimes=runtimes or "none",
        mount_points=mount_points,
    )


def _runtime_rows(runtime: RuntimeInfo) -> list[str]:
    rows = []
    for label, status in (("Master", runtime.master), ("Worker", runtime.worker), ("Fuse", runtime.fuse)):
        if status.desired_scheduled == 0 and status.ready == 0:
            rows.append(f"| {label} | Not Found | | | | | |")
            continue
        rows.append(
            f"| {label} | {status.phase or 'Unknown'} | {status.ready}/{status.desired_scheduled} "
            f"| {status.current_scheduled} | {status.available} | {status.unavailable} | {status.reason} |"
        )
    return rows


def _condition_line(condition: ConditionInfo) -> str:
    symbol = "✓" if condition.status == "True" else "❌"
    line = f"- {symbol} **{condition.type}**: {condition.status}"
    if condition.reason:
        line += f" ({condition.reason})"
    if condition.message:
        line += f"\n  - {condition.message}"
    return line


def _resource_rows(result: DiagnosticResult) -> list[str]:
    rows = []
    resources = result.resources
    labels = (("Master", resources.master), ("Workers", resources.workers), ("Fuse", resources.fuse))
    for label, group in labels:
        if group is None:
            rows.append(f"| {label} | | | | Not Found |")
            continue
        if group.desired == 0:
            status = "Not Found"
        elif group.healthy:
            status = "Healthy"
        else:
            status = f"{len(group.failing_pods)} failing pod(s)"
        rows.append(f"| {label} | {group.kind} | {group.name} | {group.ratio} | {status} |")
    if resources.pvc is None:
        rows.append("| PVC | | | | Not Found |")
    else:
        pvc = resources.pvc
        name = f"{pvc.name} ({pvc.storage_class})" if pvc.storage_class else pvc.name
        rows.append(f"| PVC | PersistentVolumeClaim | {name} | {pvc.capacity or '-'} | {pvc.phase} |")
    if resources.pv is not None:
        pv = resources.pv
        name = f"{pv.name} ({pv.storage_class})" if pv.storage_class else pv.name
        status = f"{pv.phase}, {pv.reclaim_policy}" if pv.reclaim_policy else pv.phase
        rows.append(f"| PV | PersistentVolume | {name} | {pv.capacity or '-'} | {status} |")
    return rows


def _format_log(entry: LogEntry) -> str:
    title = f"**{entry.role}** `{entry.pod_name}/{entry.container_name}`"
    if entry.error:
        return f"{title}: unavailable ({entry.error})"
    if not entry.logs.strip():
        return f"{title}: (no logs)"
    tail = "\n".join(entry.logs.splitlines()[-REPORT_LOG_LINES:])
    return f"{title}\n```\n{tail}\n```"


def build_report(result: DiagnosticResult) -> str:
    """Render the result as a Markdown report."""
    parts = [
        REPORT_HEADER.format(
            namespace=result.namespace,
            name=result.dataset_name,
            phase=result.dataset.phase.value,
            runtime=result.runtime.kind.display_name if result.runtime else "Not Found",
            health=result.health.value,
            collected_at=result.collected_at.strftime("%Y-%m-%d %H:%M:%S %Z"),
        ),
        _dataset_section(result),
    ]
    if result.runtime is not None:
        parts.append(
            REPORT_SECTION_RUNTIME.format(
                name=result.runtime.name,
                kind=f"{result.runtime.kind.display_name.capitalize()}Runtime",
                rows="\n".join(_runtime_rows(result.runtime)),
            )
        )
    parts.append(REPORT_SECTION_RESOURCES.format(rows="\n".join(_resource_rows(result))))
    if result.dataset.conditions:
        conditions = "\n".join(_condition_line(c) for c in result.dataset.conditions)
        parts.append(REPORT_SECTION_CONDITIONS.format(conditions=conditions))

    if result.findings:
        findings = []
        for f in result.findings:
            line = f"- {_SEVERITY_ICONS[f.severity]} **[{f.component}]** {f.issue}\n  - Suggestion: {f.suggestion}"
            if f.evidence:
                line += f"\n  - Evidence: `{f.evidence}`"
            findings.append(line)
        parts.append(REPORT_SECTION_FINDINGS.format(findings="\n".join(findings)))
    else:
        parts.append(REPORT_NO_FINDINGS)

    warnings = [e for e in result.events if e.type == "Warning"]
    if warnings:
        events = "\n".join(
            f"- **{e.reason}** {e.object_kind}/{e.object_name} (x{e.count}): {e.message}" for e in warnings
        )
        parts.append(REPORT_SECTION_EVENTS.format(events=events))

    entries = [e for e in (result.logs.master, *result.logs.workers, *result.logs.fuse) if e is not None]
    if entries:
        parts.append(REPORT_SECTION_LOGS.format(logs="\n\n".join(_format_log(e) for e in entries)))

    return "\n".join(parts)


def print_result(run: DiagnosisRun, console: Console | None = None) -> None:
    """Print the diagnostic report to console using Rich."""
    c = console or Console()
    style = _HEALTH_STYLES[run.health]
    c.print(Panel(Markdown(run.report), title="Fluid Diagnose", border_style=style))
    c.print(f"\n[bold]Health:[/bold] [{style}]{run.health.value}[/{style}]")


def print_context(run: DiagnosisRun, console: Console | None = None) -> None:
    """Print the AI-ready context as JSON."""
    c = console or Console()
    c.out(run.context.to_json(), highlight=False)
