"""Project a DiagnosticResult into a redacted DiagnosticContext."""

from __future__ import annotations

from fluid_diagnose.context.models import CONTEXT_VERSION, ContextSummary, DiagnosticContext
from fluid_diagnose.observation.models import DiagnosticResult, LogEntry

REDACTED = "[REDACTED]"

# Lowercase substrings that mark a log line as possibly carrying a credential
SECRET_MARKERS = ("password", "secret", "token", "api_key", "apikey", "api key")


def _is_sensitive(line: str) -> bool:
    lower = line.lower()
    return any(marker in lower for marker in SECRET_MARKERS)


def normalize_logs(logs: str) -> str:
    """Replace every line that may carry a secret with a redaction marker."""
    return "\n".join(REDACTED if _is_sensitive(line) else line for line in logs.split("\n"))


def _log_map(result: DiagnosticResult) -> dict[str, str]:
    out: dict[str, str] = {}
    if result.logs.master is not None and result.logs.master.logs:
        out["master"] = normalize_logs(result.logs.master.logs)
    groups: tuple[tuple[str, list[LogEntry]], ...] = (
        ("worker", result.logs.workers),
        ("fuse", result.logs.fuse),
    )
    for role, entries in groups:
        for i, entry in enumerate(entries):
            if entry.logs:
                out[f"{role}-{i}"] = normalize_logs(entry.logs)
    return out


def _summary(result: DiagnosticResult) -> ContextSummary:
    resources = result.resources
    return ContextSummary(
        dataset_name=result.dataset_name,
        namespace=result.namespace,
        dataset_phase=result.dataset.phase.value,
        runtime_type=result.runtime_type,
        health_status=result.health,
        master_ready=resources.master.ratio if resources.master else "",
        workers_ready=resources.workers.ratio if resources.workers else "",
        fuse_ready=resources.fuse.ratio if resources.fuse else "",
        pvc_status=resources.pvc.phase if resources.pvc else "",
        error_count=len(result.findings),
        warning_count=sum(1 for e in result.events if e.type == "Warning"),
    )


def to_context(result: DiagnosticResult) -> DiagnosticContext:
    """Build the AI-ready context. Reads the result without modifying it."""
    return DiagnosticContext(
        summary=_summary(result),
        dataset_yaml=result.dataset.yaml,
        runtime_yaml=result.runtime.yaml if result.runtime else "",
        events=[e.model_copy() for e in result.events],
        logs=_log_map(result),
        failure_hints=[f.model_copy() for f in result.findings],
        collected_at=result.collected_at,
        version=CONTEXT_VERSION,
    )
