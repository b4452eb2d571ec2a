"""Markdown templates for the human-readable diagnostic report."""

REPORT_HEADER = """
# Fluid Dataset Diagnostic Report

- **Dataset:** {namespace}/{name}
- **Phase:** {phase}
- **Runtime:** {runtime}
- **Health:** {health}
- **Collected at:** {collected_at}
"""

REPORT_SECTION_RESOURCES = """
## Resources
| Component | Kind | Name | Ready | Status |
|---|---|---|---|---|
{rows}
"""

REPORT_SECTION_FINDINGS = """
## Findings
{findings}
"""

REPORT_NO_FINDINGS = """
## Findings
No issues detected.
"""

REPORT_SECTION_EVENTS = """
## Warning events (most recent first)
{events}
"""

REPORT_SECTION_LOGS = """
## Logs
{logs}
"""

REPORT_SECTION_DATASET = """
## Dataset
- **Total size:** {ufs_total}
- **File count:** {file_num}
- **Bound runtimes:** {runtimes}
- **Mount points:**
{mount_points}
"""

REPORT_SECTION_RUNTIME = """
## Runtime {name} ({kind})
| Component | Phase | Ready | Scheduled | Available | Unavailable | Reason |
|---|---|---|---|---|---|---|
{rows}
"""

REPORT_SECTION_CONDITIONS = """
## Conditions
{conditions}
"""
