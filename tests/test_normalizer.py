from datetime import datetime, timezone

import pytest

from fluid_diagnose.context import CONTEXT_VERSION, normalize_logs, to_context
from fluid_diagnose.context.normalizer import REDACTED
from fluid_diagnose.diagnosis import Finding, HealthVerdict, Severity
from fluid_diagnose.observation.models import (
    DatasetInfo,
    DatasetPhase,
    DiagnosticResult,
    EventInfo,
    LogEntry,
    PodGroupStatus,
    PVCStatus,
    RuntimeInfo,
    RuntimeKind,
)

COLLECTED_AT = datetime(2026, 2, 7, 18, 30, tzinfo=timezone.utc)


@pytest.fixture
def result():
    r = DiagnosticResult(
        collected_at=COLLECTED_AT,
        dataset_name="demo",
        namespace="ns",
        dataset=DatasetInfo(name="demo", namespace="ns", phase=DatasetPhase.BOUND, yaml="kind: Dataset\n"),
        runtime=RuntimeInfo(name="demo", namespace="ns", kind=RuntimeKind.ALLUXIO, yaml="kind: AlluxioRuntime\n"),
        events=[
            EventInfo(type="Warning", reason="FailedScheduling", message="Insufficient memory", object_kind="Pod"),
            EventInfo(type="Normal", reason="Started", message="Started container"),
            EventInfo(type="Warning", reason="Unhealthy", message="Readiness probe failed"),
        ],
        findings=[Finding(severity=Severity.WARNING, component="worker", issue="Workers not healthy: 1/2 ready")],
        health=HealthVerdict.DEGRADED,
    )
    r.resources.master = PodGroupStatus(name="demo-master", kind="StatefulSet", desired=1, ready=1)
    r.resources.workers = PodGroupStatus(name="demo-worker", kind="StatefulSet", desired=2, ready=1)
    r.resources.pvc = PVCStatus(name="demo", phase="Bound")
    r.logs.master = LogEntry(role="master", pod_name="demo-master-0", container_name="alluxio-master", logs="m1\nm2")
    r.logs.workers = [
        LogEntry(role="worker", pod_name="demo-worker-0", container_name="alluxio-worker", logs="w0"),
        LogEntry(role="worker", pod_name="demo-worker-1", container_name="alluxio-worker", error="waiting"),
    ]
    r.logs.fuse = [LogEntry(role="fuse", pod_name="demo-fuse-a", container_name="alluxio-fuse", logs="DB_PASSWORD=x")]
    return r


def test_summary(result):
    summary = to_context(result).summary

    assert summary.dataset_name == "demo"
    assert summary.namespace == "ns"
    assert summary.dataset_phase == "Bound"
    assert summary.runtime_type == "alluxioruntimes"
    assert summary.health_status == HealthVerdict.DEGRADED
    assert summary.master_ready == "1/1"
    assert summary.workers_ready == "1/2"
    assert summary.fuse_ready == ""
    assert summary.pvc_status == "Bound"
    assert summary.error_count == 1
    assert summary.warning_count == 2


def test_payload_copies_snapshots_and_metadata(result):
    context = to_context(result)

    assert context.dataset_yaml == "kind: Dataset\n"
    assert context.runtime_yaml == "kind: AlluxioRuntime\n"
    assert context.events == result.events
    assert context.failure_hints == result.findings
    assert context.collected_at == COLLECTED_AT
    assert context.version == CONTEXT_VERSION


def test_log_keys_skip_empty_entries(result):
    logs = to_context(result).logs

    assert logs == {"master": "m1\nm2", "worker-0": "w0", "fuse-0": REDACTED}


def test_json_uses_stable_camel_case_fields(result):
    payload = to_context(result).model_dump(by_alias=True, mode="json")

    assert set(payload) == {
        "summary",
        "datasetYaml",
        "runtimeYaml",
        "events",
        "logs",
        "failureHints",
        "collectedAt",
        "version",
    }
    assert payload["summary"]["healthStatus"] == "Degraded"
    assert payload["summary"]["workersReady"] == "1/2"
    assert payload["events"][0]["objectKind"] == "Pod"
    assert payload["failureHints"][0]["severity"] == "warning"


def test_normalization_is_idempotent(result):
    first = to_context(result).to_json()
    second = to_context(result).to_json()

    assert first == second


def test_normalization_does_not_modify_result(result):
    before = result.model_dump()

    to_context(result)

    assert result.model_dump() == before


@pytest.mark.parametrize(
    "line",
    [
        "password=hunter2",
        "Using PASSWORD from env",
        "loaded Secret mysecret",
        "bearer token abc",
        "API_KEY: 123",
        "apiKey=abc",
        "set api key for client",
    ],
)
def test_sensitive_lines_are_redacted(line):
    assert normalize_logs(f"before\n{line}\nafter") == f"before\n{REDACTED}\nafter"


def test_clean_lines_pass_through_unchanged():
    logs = "  INFO starting\n\nWARN\tslow disk  \nERROR connect refused: 10.0.0.1:19998\n"

    assert normalize_logs(logs) == logs


def test_redaction_is_idempotent():
    logs = "a\ntoken=1\nb"

    assert normalize_logs(normalize_logs(logs)) == normalize_logs(logs)
