import pytest

from conftest import NAME, NAMESPACE
from fluid_diagnose.context import to_context
from fluid_diagnose.context.normalizer import REDACTED
from fluid_diagnose.diagnosis import HealthVerdict, Severity, analyze
from fluid_diagnose.mock import MOCK_NOW, MockGateway, mock_diagnostic_context, mock_diagnostic_result
from fluid_diagnose.observation import DatasetCollector


@pytest.fixture
def result():
    return mock_diagnostic_result("demo", "fluid-demo")


def test_mock_is_degraded_without_critical_findings(result):
    assert result.health == HealthVerdict.DEGRADED
    assert [f.severity for f in result.findings if f.severity == Severity.CRITICAL] == []
    assert [f.component for f in result.findings] == ["worker", "fuse", "Pod"]


def test_mock_resources(result):
    resources = result.resources

    assert resources.master.ratio == "1/1"
    assert resources.workers.ratio == "1/2"
    assert resources.fuse.ratio == "2/3"
    assert resources.pvc.phase == "Bound"
    assert resources.pv.name == "fluid-demo-demo"
    assert [p.name for p in resources.fuse.failing_pods] == ["demo-fuse-x7k2p"]


def test_mock_is_deterministic():
    first = mock_diagnostic_context("demo", "fluid-demo").to_json()
    second = mock_diagnostic_context("demo", "fluid-demo").to_json()

    assert first == second
    assert mock_diagnostic_context("demo", "fluid-demo").collected_at == MOCK_NOW


def test_mock_log_errors_are_inline(result):
    failing_worker = result.logs.workers[1]

    assert failing_worker.pod_name == "demo-worker-1"
    assert "waiting to start" in failing_worker.error
    assert [e.pod_name for e in result.logs.fuse] == ["demo-fuse-x7k2p"]
    assert result.logs.fuse[0].error


def test_mock_context_redacts_secret_lines():
    context = mock_diagnostic_context("demo", "fluid-demo")

    master = context.logs["master"].split("\n")
    assert REDACTED in master
    assert not any("secretKey" in line for line in master)
    assert set(context.logs) == {"master", "worker-0"}
    assert context.summary.warning_count == 2


def test_mock_has_the_shape_of_a_live_run(gateway):
    """
    The mock payload has exactly the same keys as one collected from a cluster.
    """
    live = to_context(analyze(DatasetCollector(gateway).collect(NAMESPACE, NAME))).model_dump(by_alias=True)
    mock = mock_diagnostic_context(NAME, NAMESPACE).model_dump(by_alias=True)

    assert set(mock) == set(live)
    assert set(mock["summary"]) == set(live["summary"])


def test_mock_gateway_only_serves_its_dataset():
    gateway = MockGateway("demo", "fluid-demo")

    assert gateway.get_runtime("fluid-demo", "demo", "jindoruntimes") is None
    assert gateway.get_statefulset("other", "demo-master") is None
    assert gateway.list_events("other", "demo") == []
