"""Pipeline: collect, analyze and report on a Fluid dataset."""

from fluid_diagnose.pipeline.orchestrator import (
    DiagnosisRun,
    build_report,
    diagnose_dataset,
    print_context,
    print_result,
    run_diagnosis,
)

__all__ = [
    "DiagnosisRun",
    "build_report",
    "diagnose_dataset",
    "print_context",
    "print_result",
    "run_diagnosis",
]
