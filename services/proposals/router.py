import asyncio
import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from models.digitization import DigitizationForm, DigitizationRecord, DigitizationRequest
from models.simulation import CreditCondition, SimulationRequest
from services.auth.router import get_current_user
from services.auth.schemas import UserResponse
from services.benefits.router import get_benefit_service
from services.benefits.service import BenefitService
from services.digitizations.router import get_recorder
from services.digitizations.service import DigitizationRecorder
from .banks.base import PartnerBank
from .polling import DEFAULT_INTERVAL_SECONDS, DEFAULT_MAX_ATTEMPTS, FormalizationPoller
from .registry import WorkflowStore, get_bank, workflow_store
from .schemas import (
    ConditionChoice,
    ContractSelection,
    ContractsQuery,
    ContractsResponse,
    FormalizationLinkResponse,
    IncludeProposalResponse,
    PollingStartedResponse,
    WorkflowSimulation,
    WorkflowStart,
)
from .workflow import ProposalWorkflow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["proposals"])

# referências às buscas de link em segundo plano
_background_polls = set()


def get_workflow_store() -> WorkflowStore:
    return workflow_store


def get_poller(
    partner: PartnerBank = Depends(get_bank),
    recorder: DigitizationRecorder = Depends(get_recorder),
) -> FormalizationPoller:
    return FormalizationPoller(partner, recorder)


@router.post("/{bank}/contracts", response_model=ContractsResponse)
async def list_contracts(
    query: ContractsQuery,
    partner: PartnerBank = Depends(get_bank),
    benefits: BenefitService = Depends(get_benefit_service),
    current_user: UserResponse = Depends(get_current_user),
):
    """Contratos do CPF que o banco pode refinanciar"""
    benefit = await benefits.load_benefit(query.cpf, query.enrollment)
    contracts = await partner.list_contracts(query.cpf, benefit.contracts)
    logger.info(f"{len(contracts)} contratos elegíveis no {partner.bank_name}")
    return ContractsResponse(bank=partner.slug, contracts=contracts)


@router.post("/{bank}/simulate", response_model=List[CreditCondition])
async def simulate(
    request: SimulationRequest,
    partner: PartnerBank = Depends(get_bank),
    current_user: UserResponse = Depends(get_current_user),
):
    """Condições de refinanciamento na ordem devolvida pelo banco"""
    return await partner.simulate(request)


@router.post("/{bank}/include-proposal", response_model=IncludeProposalResponse)
async def include_proposal(
    request: DigitizationRequest,
    partner: PartnerBank = Depends(get_bank),
    recorder: DigitizationRecorder = Depends(get_recorder),
    current_user: UserResponse = Depends(get_current_user),
):
    """Digitaliza a proposta e registra o histórico"""
    proposal_number = await partner.digitize_proposal(request)
    record = recorder.create(
        DigitizationRecord.from_request(partner.slug, proposal_number, request, current_user.id)
    )
    return IncludeProposalResponse(
        proposal_number=proposal_number, record=record.model_dump(mode="json")
    )


@router.get(
    "/{bank}/formalization-link/{proposal_number}",
    response_model=FormalizationLinkResponse,
)
async def formalization_link(
    proposal_number: str,
    partner: PartnerBank = Depends(get_bank),
    current_user: UserResponse = Depends(get_current_user),
):
    """Uma única consulta do link de formalização"""
    link = await partner.fetch_formalization_link(proposal_number)
    return FormalizationLinkResponse(
        proposal_number=proposal_number, url=link.url, status=link.status, ready=link.is_ready
    )


@router.post(
    "/{bank}/formalization-link-attempts/{proposal_number}",
    response_model=PollingStartedResponse,
    status_code=202,
)
async def formalization_link_attempts(
    proposal_number: str,
    poller: FormalizationPoller = Depends(get_poller),
    current_user: UserResponse = Depends(get_current_user),
):
    """Inicia a busca do link em segundo plano; o histórico é atualizado quando ele aparecer"""
    poller.recorder.get(proposal_number)
    task = asyncio.create_task(poller.run(proposal_number))
    _background_polls.add(task)
    task.add_done_callback(_background_polls.discard)
    return PollingStartedResponse(
        proposal_number=proposal_number,
        max_attempts=poller.max_attempts,
        interval_seconds=poller.interval,
    )


@router.post("/{bank}/workflows", response_model=Dict[str, Any], status_code=201)
async def start_workflow(
    data: WorkflowStart,
    partner: PartnerBank = Depends(get_bank),
    benefits: BenefitService = Depends(get_benefit_service),
    recorder: DigitizationRecorder = Depends(get_recorder),
    store: WorkflowStore = Depends(get_workflow_store),
    current_user: UserResponse = Depends(get_current_user),
):
    """Inicia um fluxo de proposta com os contratos do benefício"""
    benefit = await benefits.load_benefit(data.cpf, data.enrollment)
    workflow = ProposalWorkflow.start(
        partner,
        recorder,
        benefit.beneficiary,
        benefit.contracts,
        operator_id=current_user.id,
        max_attempts=DEFAULT_MAX_ATTEMPTS,
        interval=DEFAULT_INTERVAL_SECONDS,
    )
    store.add(workflow)
    return workflow.snapshot()


@router.get("/{bank}/workflows/{workflow_id}", response_model=Dict[str, Any])
async def get_workflow(
    bank: str,
    workflow_id: str,
    store: WorkflowStore = Depends(get_workflow_store),
    current_user: UserResponse = Depends(get_current_user),
):
    return store.get(workflow_id, bank).snapshot()


@router.delete("/{bank}/workflows/{workflow_id}", response_model=Dict[str, Any])
async def cancel_workflow(
    bank: str,
    workflow_id: str,
    store: WorkflowStore = Depends(get_workflow_store),
    current_user: UserResponse = Depends(get_current_user),
):
    """Fecha o fluxo e interrompe a busca do link"""
    workflow = store.get(workflow_id, bank)
    workflow.cancel()
    return workflow.snapshot()


@router.put("/{bank}/workflows/{workflow_id}/contracts", response_model=Dict[str, Any])
async def select_contracts(
    bank: str,
    workflow_id: str,
    selection: ContractSelection,
    store: WorkflowStore = Depends(get_workflow_store),
    current_user: UserResponse = Depends(get_current_user),
):
    workflow = store.get(workflow_id, bank)
    workflow.select_contracts(selection.contract_ids)
    return workflow.snapshot()


@router.post("/{bank}/workflows/{workflow_id}/simulate", response_model=Dict[str, Any])
async def simulate_workflow(
    bank: str,
    workflow_id: str,
    data: WorkflowSimulation,
    store: WorkflowStore = Depends(get_workflow_store),
    current_user: UserResponse = Depends(get_current_user),
):
    workflow = store.get(workflow_id, bank)
    await workflow.simulate(
        data.mode, data.installment_quantity, data.installment_amount, data.with_insurance
    )
    return workflow.snapshot()


@router.post("/{bank}/workflows/{workflow_id}/restart", response_model=Dict[str, Any])
async def restart_simulation(
    bank: str,
    workflow_id: str,
    store: WorkflowStore = Depends(get_workflow_store),
    current_user: UserResponse = Depends(get_current_user),
):
    workflow = store.get(workflow_id, bank)
    workflow.restart_simulation()
    return workflow.snapshot()


@router.post("/{bank}/workflows/{workflow_id}/condition", response_model=Dict[str, Any])
async def choose_condition(
    bank: str,
    workflow_id: str,
    choice: ConditionChoice,
    store: WorkflowStore = Depends(get_workflow_store),
    current_user: UserResponse = Depends(get_current_user),
):
    """Escolhe a condição e o seguro (ou nenhum) e segue para a digitalização"""
    workflow = store.get(workflow_id, bank)
    workflow.select_condition(choice.index, choice.insurance_code)
    workflow.confirm_condition()
    return workflow.snapshot()


@router.put("/{bank}/workflows/{workflow_id}/form", response_model=Dict[str, Any])
async def update_form(
    bank: str,
    workflow_id: str,
    form: DigitizationForm,
    store: WorkflowStore = Depends(get_workflow_store),
    current_user: UserResponse = Depends(get_current_user),
):
    workflow = store.get(workflow_id, bank)
    workflow.update_form(form)
    return workflow.snapshot()


@router.post("/{bank}/workflows/{workflow_id}/digitize", response_model=Dict[str, Any])
async def digitize(
    bank: str,
    workflow_id: str,
    store: WorkflowStore = Depends(get_workflow_store),
    current_user: UserResponse = Depends(get_current_user),
):
    """Envia a proposta e inicia a busca do link de formalização"""
    workflow = store.get(workflow_id, bank)
    await workflow.digitize()
    workflow.start_polling()
    return workflow.snapshot()
