import pytest

from exceptions import CorbanError, NotFoundError
from services.proposals import registry
from services.proposals.registry import WorkflowStore, get_partner_bank
from services.proposals.workflow import ProposalWorkflow, WorkflowState


@pytest.fixture(autouse=True)
def clean_instances():
    registry._instances.clear()
    yield
    registry._instances.clear()


def test_unknown_bank():
    with pytest.raises(NotFoundError) as exc:
        get_partner_bank("banco-x")

    assert "c6-bank" in exc.value.details


def test_bank_without_credentials(monkeypatch):
    for var in ("C6_API_URL", "C6_USERNAME", "C6_PASSWORD"):
        monkeypatch.delenv(var, raising=False)

    with pytest.raises(CorbanError) as exc:
        get_partner_bank("c6-bank")

    assert exc.value.status_code == 503
    assert exc.value.title == "Configuração Ausente"
    assert registry.get_configured_banks().get("c6-bank") is None


def test_bank_instance_is_reused(monkeypatch):
    monkeypatch.setenv("SAFRA_API_URL", "https://safra.example/api")
    monkeypatch.setenv("SAFRA_USERNAME", "usuario")
    monkeypatch.setenv("SAFRA_PASSWORD", "senha")

    first = get_partner_bank("safra")

    assert first is get_partner_bank("safra")
    assert first.bank_name == "Safra"


def test_workflow_store(workflow):
    store = WorkflowStore(ttl=60)
    store.add(workflow)

    assert store.get(workflow.id, "fake-bank") is workflow
    with pytest.raises(NotFoundError):
        store.get(workflow.id, "c6-bank")

    store.remove(workflow.id)
    with pytest.raises(NotFoundError):
        store.get(workflow.id)
    assert workflow.state == WorkflowState.CONTRACT_SELECTION


class FakeClock:
    def __init__(self):
        self.now = 0

    def __call__(self):
        return self.now


def test_expired_workflow_is_cancelled(workflow):
    clock = FakeClock()
    store = WorkflowStore(ttl=60, timer=clock)
    store.add(workflow)

    clock.now = 61
    with pytest.raises(NotFoundError):
        store.get(workflow.id)

    assert workflow.state == WorkflowState.CANCELLED


def test_evicted_workflow_is_cancelled(workflow, fake_bank, recorder, beneficiary, contracts):
    store = WorkflowStore(ttl=60, maxsize=1)
    store.add(workflow)
    newer = ProposalWorkflow.start(fake_bank, recorder, beneficiary, contracts)

    store.add(newer)

    assert workflow.state == WorkflowState.CANCELLED
    assert newer.state == WorkflowState.CONTRACT_SELECTION
    assert store.get(newer.id) is newer
