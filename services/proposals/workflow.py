import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, ValidationError

from exceptions import CorbanError, InvalidInputError, SelectionError, WorkflowStateError
from models.benefit import Beneficiary
from models.contract import Contract
from models.digitization import (
    Address,
    BankData,
    DigitizationForm,
    DigitizationRecord,
    DigitizationRequest,
    IdentityDocument,
    PersonalData,
)
from models.simulation import CreditCondition, SimulationMode, SimulationRequest
from .insurance import apply_insurance_selection
from .polling import (
    DEFAULT_INTERVAL_SECONDS,
    DEFAULT_MAX_ATTEMPTS,
    CancellationToken,
    FormalizationPoller,
    PollingResult,
    PollOutcome,
)

logger = logging.getLogger(__name__)

GENDERS = {"M": "Masculino", "F": "Feminino"}


class WorkflowState(str, Enum):
    CONTRACT_SELECTION = "contract_selection"
    SIMULATING = "simulating"
    CONDITION_SELECTION = "condition_selection"
    DIGITIZING = "digitizing"
    FORMALIZATION_POLLING = "formalization_polling"
    FOUND = "found"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


FINAL_STATES = {WorkflowState.FOUND, WorkflowState.EXHAUSTED, WorkflowState.CANCELLED}
EDITABLE_STATES = (
    WorkflowState.CONTRACT_SELECTION,
    WorkflowState.CONDITION_SELECTION,
    WorkflowState.DIGITIZING,
)


class WorkflowContext(BaseModel):
    """Estado de uma negociação, do contrato escolhido ao link de formalização"""

    id: str = Field(default_factory=lambda: uuid4().hex)
    bank: str
    operator_id: Optional[str] = None
    state: WorkflowState = WorkflowState.CONTRACT_SELECTION
    beneficiary: Beneficiary
    contracts: List[Contract] = []
    selected_contract_ids: List[str] = []
    simulation_request: Optional[SimulationRequest] = None
    conditions: List[CreditCondition] = []
    selected_condition_index: Optional[int] = None
    selected_insurance: Optional[str] = None
    form: DigitizationForm
    proposal_number: Optional[str] = None
    attempts: int = 0
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    formalization_link: Optional[str] = None
    last_error: Optional[Dict[str, Any]] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


def default_form(beneficiary: Beneficiary) -> DigitizationForm:
    """Formulário de digitalização pré-preenchido com os dados do benefício"""
    document = {
        "number": beneficiary.rg,
        "issuing_state": beneficiary.state,
        "issuing_authority": beneficiary.issuing_authority,
        "issue_date": beneficiary.rg_issue_date,
    }
    personal = {
        "mother_name": beneficiary.mother_name,
        "gender": GENDERS.get(beneficiary.gender.upper(), beneficiary.gender),
        "marital_status": beneficiary.marital_status,
        "email": beneficiary.email,
        "phone": beneficiary.phone,
    }
    address = {
        "street": beneficiary.street,
        "number": beneficiary.number,
        "complement": beneficiary.complement,
        "neighborhood": beneficiary.neighborhood,
        "city": beneficiary.city,
        "state": beneficiary.state,
        "zip_code": beneficiary.zip_code,
    }
    bank_data = {
        "bank_code": beneficiary.payment_bank,
        "agency": beneficiary.payment_agency,
        "account": beneficiary.payment_account,
    }

    # campos vazios ficam com os valores padrão dos modelos
    def filled(values: Dict[str, Any]) -> Dict[str, Any]:
        return {key: value for key, value in values.items() if value}

    return DigitizationForm(
        personal=PersonalData(
            name=beneficiary.name,
            cpf=beneficiary.cpf,
            birth_date=beneficiary.birth_date,
            document=IdentityDocument(**filled(document)),
            **filled(personal),
        ),
        address=Address(**filled(address)),
        bank_data=BankData(**filled(bank_data)),
        benefit_state=beneficiary.benefit_state,
    )


def validation_message(error: ValidationError) -> str:
    return "; ".join(item["msg"].replace("Value error, ", "") for item in error.errors())


class ProposalWorkflow:
    """Fluxo de refinanciamento de um cliente em um banco parceiro.

    Etapas, sempre em frente: seleção de contratos, simulação, escolha da condição,
    digitalização e busca do link de formalização. A única volta permitida é refazer
    a simulação. Erros de parceiro ficam em `last_error` e são repassados ao chamador
    sem perder as seleções e o formulário já preenchidos.
    """

    def __init__(
        self,
        context: WorkflowContext,
        bank,
        recorder,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ):
        self.context = context
        self.bank = bank
        self.recorder = recorder
        self.interval = interval
        self.sleep = sleep
        self._submitting = False
        self._token: Optional[CancellationToken] = None
        self._task: Optional[asyncio.Task] = None

    @classmethod
    def start(
        cls,
        bank,
        recorder,
        beneficiary: Beneficiary,
        contracts: List[Contract],
        operator_id: Optional[str] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        **options,
    ) -> "ProposalWorkflow":
        context = WorkflowContext(
            bank=bank.slug,
            operator_id=operator_id,
            beneficiary=beneficiary,
            contracts=bank.filter_contracts(contracts),
            form=default_form(beneficiary),
            max_attempts=max_attempts,
        )
        logger.info(
            f"Fluxo {context.id} iniciado no {bank.bank_name} com {len(context.contracts)} contratos elegíveis"
        )
        return cls(context, bank, recorder, **options)

    @property
    def id(self) -> str:
        return self.context.id

    @property
    def state(self) -> WorkflowState:
        return self.context.state

    def _set_state(self, state: WorkflowState):
        self.context.state = state
        self.context.updated_at = datetime.utcnow()

    def _require(self, *states: WorkflowState):
        if self.context.state not in states:
            raise WorkflowStateError(
                f"Operação não permitida na etapa {self.context.state.value}",
                details=f"Etapas permitidas: {', '.join(s.value for s in states)}",
            )

    def _fail(self, error: CorbanError):
        self.context.last_error = error.to_dict()
        self.context.updated_at = datetime.utcnow()

    def _discard_simulation(self):
        self.context.simulation_request = None
        self.context.conditions = []
        self.context.selected_condition_index = None
        self.context.selected_insurance = None

    # seleção de contratos

    def _lookup_contracts(self, contract_ids: List[str]) -> List[Contract]:
        available = {c.contract_number: c for c in self.context.contracts}
        unknown = [cid for cid in contract_ids if cid not in available]
        if unknown:
            raise SelectionError(
                f"Contrato(s) não disponível(is) para este banco: {', '.join(unknown)}"
            )
        return [available[cid] for cid in contract_ids]

    def select_contracts(self, contract_ids: List[str]) -> List[str]:
        """Substitui a seleção. Seleção inválida é recusada e a anterior permanece."""
        self._require(WorkflowState.CONTRACT_SELECTION, WorkflowState.CONDITION_SELECTION)
        contract_ids = list(dict.fromkeys(contract_ids))

        try:
            contracts = self._lookup_contracts(contract_ids)
            enrollments = {c.enrollment for c in contracts}
            if len(enrollments) > 1:
                raise SelectionError(
                    "Os contratos selecionados pertencem a matrículas diferentes",
                    details="Selecione apenas contratos da mesma matrícula "
                    f"({', '.join(sorted(enrollments))})",
                )
        except SelectionError as e:
            self._fail(e)
            raise

        if set(contract_ids) != set(self.context.selected_contract_ids):
            if self.context.state == WorkflowState.CONDITION_SELECTION:
                # condições simuladas valem só para o conjunto anterior
                self._discard_simulation()
                self._set_state(WorkflowState.CONTRACT_SELECTION)

        self.context.selected_contract_ids = contract_ids
        self.context.last_error = None
        self.context.updated_at = datetime.utcnow()
        return contract_ids

    def toggle_contract(self, contract_id: str) -> List[str]:
        selected = list(self.context.selected_contract_ids)
        if contract_id in selected:
            selected.remove(contract_id)
        else:
            selected.append(contract_id)
        return self.select_contracts(selected)

    # simulação

    async def simulate(
        self,
        mode: SimulationMode = SimulationMode.BY_TERM,
        installment_quantity: Optional[int] = None,
        installment_amount: Optional[float] = None,
        with_insurance: bool = False,
    ) -> List[CreditCondition]:
        self._require(WorkflowState.CONTRACT_SELECTION)
        if not self.context.selected_contract_ids:
            error = SelectionError("Selecione pelo menos um contrato para simular")
            self._fail(error)
            raise error

        contracts = self._lookup_contracts(self.context.selected_contract_ids)
        if mode == SimulationMode.BY_INSTALLMENT_AMOUNT and not installment_amount:
            # sem valor informado, mantém a soma das parcelas atuais
            installment_amount = round(sum(c.installment_amount for c in contracts), 2)

        try:
            request = SimulationRequest(
                cpf=self.context.beneficiary.cpf,
                birth_date=self.context.beneficiary.birth_date,
                contracts=contracts,
                mode=mode,
                installment_quantity=installment_quantity,
                installment_amount=installment_amount,
                with_insurance=with_insurance,
            )
        except ValidationError as e:
            error = InvalidInputError(validation_message(e), title="Simulação Inválida")
            self._fail(error)
            raise error

        self._set_state(WorkflowState.SIMULATING)
        try:
            conditions = await self.bank.simulate(request)
        except CorbanError as e:
            self._fail(e)
            raise
        finally:
            self._set_state(WorkflowState.CONTRACT_SELECTION)

        self.context.simulation_request = request
        self.context.conditions = conditions
        self.context.selected_condition_index = None
        self.context.selected_insurance = None
        self.context.last_error = None
        self._set_state(WorkflowState.CONDITION_SELECTION)
        return conditions

    def restart_simulation(self):
        """Volta à seleção de contratos mantendo a seleção e o formulário"""
        self._require(WorkflowState.CONDITION_SELECTION, WorkflowState.DIGITIZING)
        self._discard_simulation()
        self._set_state(WorkflowState.CONTRACT_SELECTION)

    # escolha da condição

    def select_condition(self, index: int, insurance_code: Optional[str] = None) -> CreditCondition:
        self._require(WorkflowState.CONDITION_SELECTION)
        if not 0 <= index < len(self.context.conditions):
            error = SelectionError(f"Condição {index} não existe nesta simulação")
            self._fail(error)
            raise error

        try:
            chosen = apply_insurance_selection(self.context.conditions[index], insurance_code)
        except SelectionError as e:
            self._fail(e)
            raise

        self.context.selected_condition_index = index
        self.context.selected_insurance = insurance_code
        self.context.last_error = None
        return chosen

    @property
    def chosen_condition(self) -> Optional[CreditCondition]:
        index = self.context.selected_condition_index
        if index is None:
            return None
        return apply_insurance_selection(
            self.context.conditions[index], self.context.selected_insurance
        )

    def confirm_condition(self) -> CreditCondition:
        self._require(WorkflowState.CONDITION_SELECTION)
        if self.context.selected_condition_index is None:
            error = SelectionError("Escolha uma condição antes de continuar")
            self._fail(error)
            raise error
        self._set_state(WorkflowState.DIGITIZING)
        return self.chosen_condition

    # digitalização

    def update_form(self, form: DigitizationForm) -> DigitizationForm:
        self._require(*EDITABLE_STATES)
        self.context.form = form
        self.context.updated_at = datetime.utcnow()
        return form

    def build_digitization_request(self) -> DigitizationRequest:
        self._require(WorkflowState.DIGITIZING)
        form = self.context.form
        simulation = self.context.simulation_request
        try:
            return DigitizationRequest(
                personal=form.personal,
                address=form.address,
                bank_data=form.bank_data,
                enrollment=simulation.enrollment,
                benefit_state=form.benefit_state,
                receives_benefit_card=form.receives_benefit_card,
                credit_condition=self.chosen_condition,
                contract_ids=simulation.contract_ids,
                selected_insurance=self.context.selected_insurance,
            )
        except ValidationError as e:
            error = InvalidInputError(validation_message(e), title="Formulário Inválido")
            self._fail(error)
            raise error

    async def digitize(self) -> DigitizationRecord:
        """Envia a proposta uma única vez e registra o histórico"""
        self._require(WorkflowState.DIGITIZING)
        if self._submitting:
            raise WorkflowStateError("A proposta já está sendo enviada")

        request = self.build_digitization_request()
        self._submitting = True
        try:
            proposal_number = await self.bank.digitize_proposal(request)
        except CorbanError as e:
            # continua em digitização; se retriable, basta corrigir o formulário
            self._fail(e)
            raise
        finally:
            self._submitting = False

        self.context.proposal_number = proposal_number
        self.context.last_error = None
        self._set_state(WorkflowState.FORMALIZATION_POLLING)

        record = DigitizationRecord.from_request(
            self.bank.slug, proposal_number, request, self.context.operator_id
        )
        return self.recorder.create(record)

    # formalização

    def _on_attempt(self, attempt: int, value: Any):
        self.context.attempts = attempt
        self.context.updated_at = datetime.utcnow()

    async def poll_formalization(self) -> PollingResult:
        self._require(WorkflowState.FORMALIZATION_POLLING)
        self._token = CancellationToken()
        poller = FormalizationPoller(
            self.bank,
            self.recorder,
            max_attempts=self.context.max_attempts,
            interval=self.interval,
            sleep=self.sleep,
        )
        result = await poller.run(self.context.proposal_number, self._token, self._on_attempt)

        if result.outcome == PollOutcome.CANCELLED or self._token.cancelled:
            self._set_state(WorkflowState.CANCELLED)
        elif result.outcome == PollOutcome.FOUND:
            self.context.formalization_link = result.value.url
            self._set_state(WorkflowState.FOUND)
        else:
            self.context.last_error = {
                "error": result.message,
                "title": "Link Não Disponível",
                "details": result.last_error,
                "status": None,
            }
            self._set_state(WorkflowState.EXHAUSTED)
        return result

    def start_polling(self) -> asyncio.Task:
        """Executa a busca do link em segundo plano"""
        self._require(WorkflowState.FORMALIZATION_POLLING)
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.poll_formalization())
        return self._task

    @property
    def polling_active(self) -> bool:
        return self._task is not None and not self._task.done()

    def cancel(self):
        """Encerra o fluxo; resultados que chegarem depois são descartados"""
        if self._token:
            self._token.cancel()
        if self.context.state not in FINAL_STATES:
            self._set_state(WorkflowState.CANCELLED)
            logger.info(f"Fluxo {self.context.id} cancelado")

    def snapshot(self) -> Dict[str, Any]:
        data = self.context.model_dump(mode="json")
        chosen = self.chosen_condition
        data["chosen_condition"] = chosen.model_dump(mode="json") if chosen else None
        data["polling_active"] = self.polling_active
        return data
