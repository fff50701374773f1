import asyncio

import pytest

from exceptions import (
    DigitizationError,
    InvalidInputError,
    SelectionError,
    SimulationError,
    WorkflowStateError,
)
from models.digitization import DigitizationStatus, FormalizationLink
from models.simulation import SimulationMode
from services.proposals.polling import PollOutcome, TimeoutOutcome
from services.proposals.workflow import WorkflowState, default_form

READY = FormalizationLink(url="https://formaliza.example/xyz", status="ACTIVE")


def simulate(workflow, **kwargs):
    kwargs.setdefault("installment_quantity", 84)
    return asyncio.run(workflow.simulate(**kwargs))


def ready_to_digitize(workflow, insurance_code=None):
    workflow.select_contracts(["123456", "789012"])
    simulate(workflow)
    workflow.select_condition(1, insurance_code)
    workflow.confirm_condition()


def test_start_keeps_only_contracts_of_the_bank(workflow):
    numbers = [c.contract_number for c in workflow.context.contracts]

    assert numbers == ["123456", "789012", "555000"]
    assert workflow.state == WorkflowState.CONTRACT_SELECTION


def test_mixed_enrollments_keep_previous_selection(workflow):
    workflow.select_contracts(["123456"])

    with pytest.raises(SelectionError):
        workflow.select_contracts(["123456", "555000"])

    assert workflow.context.selected_contract_ids == ["123456"]
    assert workflow.context.last_error["title"] == "Seleção Inválida"


def test_contract_from_other_bank_cannot_be_selected(workflow):
    with pytest.raises(SelectionError):
        workflow.select_contracts(["626001"])

    assert workflow.context.selected_contract_ids == []


def test_toggle_contract(workflow):
    workflow.toggle_contract("123456")
    workflow.toggle_contract("789012")
    workflow.toggle_contract("123456")

    assert workflow.context.selected_contract_ids == ["789012"]


def test_simulation_requires_a_selected_contract(workflow, fake_bank):
    with pytest.raises(SelectionError):
        simulate(workflow)

    assert fake_bank.simulations == []


def test_simulation_by_term_without_quantity_is_invalid(workflow, fake_bank):
    workflow.select_contracts(["123456"])

    with pytest.raises(InvalidInputError):
        simulate(workflow, installment_quantity=None)

    assert workflow.state == WorkflowState.CONTRACT_SELECTION
    assert fake_bank.simulations == []


def test_amount_mode_defaults_to_current_installments(workflow, fake_bank):
    workflow.select_contracts(["123456", "789012"])

    simulate(workflow, mode=SimulationMode.BY_INSTALLMENT_AMOUNT, installment_quantity=None)

    assert fake_bank.simulations[0].installment_amount == 450.00


def test_conditions_keep_partner_order(workflow, conditions):
    workflow.select_contracts(["123456", "789012"])

    result = simulate(workflow)

    assert [c.installment_quantity for c in result] == [72, 84, 96]
    assert workflow.state == WorkflowState.CONDITION_SELECTION


def test_simulation_failure_keeps_selection(workflow, fake_bank):
    workflow.select_contracts(["123456", "789012"])
    fake_bank.simulate_error = SimulationError(
        "Contrato 123456 não elegível para refinanciamento"
    )

    with pytest.raises(SimulationError):
        simulate(workflow)

    assert workflow.state == WorkflowState.CONTRACT_SELECTION
    assert workflow.context.selected_contract_ids == ["123456", "789012"]
    assert workflow.context.last_error["error"] == "Contrato 123456 não elegível para refinanciamento"

    # o operador pode tentar de novo sem refazer a seleção
    simulate(workflow)
    assert workflow.state == WorkflowState.CONDITION_SELECTION
    assert workflow.context.last_error is None


def test_new_selection_discards_simulated_conditions(workflow):
    workflow.select_contracts(["123456", "789012"])
    simulate(workflow)

    workflow.select_contracts(["123456"])

    assert workflow.state == WorkflowState.CONTRACT_SELECTION
    assert workflow.context.conditions == []


def test_restart_simulation_keeps_contracts(workflow):
    ready_to_digitize(workflow)

    workflow.restart_simulation()

    assert workflow.state == WorkflowState.CONTRACT_SELECTION
    assert workflow.context.selected_contract_ids == ["123456", "789012"]
    assert workflow.context.conditions == []
    assert workflow.chosen_condition is None


def test_operations_out_of_order_are_rejected(workflow):
    with pytest.raises(WorkflowStateError):
        workflow.select_condition(0)
    with pytest.raises(WorkflowStateError):
        asyncio.run(workflow.digitize())
    with pytest.raises(WorkflowStateError):
        workflow.restart_simulation()


def test_invalid_condition_index(workflow):
    workflow.select_contracts(["123456"])
    simulate(workflow)

    with pytest.raises(SelectionError):
        workflow.select_condition(5)

    with pytest.raises(SelectionError):
        workflow.confirm_condition()


def test_example_refinancing_without_insurance(workflow, recorder, sleep):
    ready_to_digitize(workflow)

    record = asyncio.run(workflow.digitize())

    assert record.selected_contracts == ["123456", "789012"]
    assert record.status == DigitizationStatus.PENDING
    assert record.formalization_link is None
    assert record.installment_amount == 450.00
    assert record.selected_insurance == ""
    assert record.operator_id == "operador-1"
    assert workflow.state == WorkflowState.FORMALIZATION_POLLING
    assert workflow.context.proposal_number == "PROP-0001"

    result = asyncio.run(workflow.poll_formalization())

    assert isinstance(result, TimeoutOutcome)
    assert result.attempts == 15
    assert sleep.calls == [20] * 14
    assert workflow.state == WorkflowState.EXHAUSTED
    assert workflow.context.attempts == 15
    assert workflow.context.last_error["title"] == "Link Não Disponível"
    assert recorder.get("PROP-0001").formalization_link is None


def test_digitized_request_has_every_item_exempt_without_insurance(workflow, fake_bank):
    ready_to_digitize(workflow)

    asyncio.run(workflow.digitize())

    request = fake_bank.digitizations[0]
    assert request.credit_condition.charged_expenses == []
    assert request.contract_ids == ["123456", "789012"]
    assert request.enrollment == "9988776655"


def test_selected_insurance_is_sent_and_recorded(workflow, fake_bank):
    ready_to_digitize(workflow, insurance_code="SEG1")

    record = asyncio.run(workflow.digitize())

    request = fake_bank.digitizations[0]
    assert [e.code for e in request.credit_condition.charged_expenses] == ["SEG1"]
    assert record.selected_insurance == "Seguro Prestamista"


def test_retriable_rejection_allows_resubmission(workflow, fake_bank, recorder):
    ready_to_digitize(workflow)
    fake_bank.digitize_error = DigitizationError(
        "document_number: Número do documento inválido", retriable=True
    )

    with pytest.raises(DigitizationError):
        asyncio.run(workflow.digitize())

    assert workflow.state == WorkflowState.DIGITIZING
    assert workflow.context.last_error["retriable"] is True
    assert recorder.list() == []

    form = workflow.context.form.model_copy(deep=True)
    form.personal.document.number = "987654321"
    workflow.update_form(form)
    asyncio.run(workflow.digitize())

    assert fake_bank.digitizations[-1].personal.document.number == "987654321"
    assert workflow.state == WorkflowState.FORMALIZATION_POLLING
    assert len(recorder.list()) == 1


def test_digitize_is_not_repeated_after_success(workflow):
    ready_to_digitize(workflow)
    asyncio.run(workflow.digitize())

    with pytest.raises(WorkflowStateError):
        asyncio.run(workflow.digitize())


def test_background_polling_finds_link(workflow, fake_bank, recorder):
    fake_bank.links = [FormalizationLink(), READY]
    ready_to_digitize(workflow)

    async def scenario():
        await workflow.digitize()
        task = workflow.start_polling()
        assert workflow.polling_active
        return await task

    result = asyncio.run(scenario())

    assert result.outcome == PollOutcome.FOUND
    assert workflow.state == WorkflowState.FOUND
    assert workflow.context.formalization_link == READY.url
    assert recorder.get("PROP-0001").status == DigitizationStatus.APPROVED


def test_cancel_closes_the_workflow(workflow):
    workflow.select_contracts(["123456"])

    workflow.cancel()

    assert workflow.state == WorkflowState.CANCELLED
    with pytest.raises(WorkflowStateError):
        workflow.select_contracts(["789012"])


def test_default_form_uses_benefit_data(beneficiary):
    form = default_form(beneficiary)

    assert form.personal.name == "Maria da Silva"
    assert form.personal.gender == "Feminino"
    assert form.personal.phone_area_code == "11"
    assert form.personal.email == "naoinformado@gmail.com"
    assert form.personal.document.number == "123456789"
    assert form.address.zip_code == "01001-000"
    assert form.bank_data.bank_code == "104"
    assert form.benefit_state == "SP"


def test_snapshot_is_json_ready(workflow):
    ready_to_digitize(workflow)

    data = workflow.snapshot()

    assert data["state"] == "digitizing"
    assert data["chosen_condition"]["installment_quantity"] == 84
    assert data["polling_active"] is False
