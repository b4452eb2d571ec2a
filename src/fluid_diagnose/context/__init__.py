"""AI-ready context: a redacted, summarized projection of a diagnosis."""

from fluid_diagnose.context.models import CONTEXT_VERSION, ContextSummary, DiagnosticContext
from fluid_diagnose.context.normalizer import normalize_logs, to_context

__all__ = [
    "CONTEXT_VERSION",
    "ContextSummary",
    "DiagnosticContext",
    "normalize_logs",
    "to_context",
]
