import logging
from abc import ABC, abstractmethod
from typing import List, Tuple

from apis.partner_api_client import PartnerAPIClient, PartnerResponse
from exceptions import (
    CommunicationError,
    DigitizationError,
    NotFoundError,
    SimulationError,
)
from models.contract import Contract
from models.digitization import (
    DigitizationRequest,
    FormalizationLink,
    ProposalStatusUpdate,
)
from models.simulation import CreditCondition, SimulationRequest
from utils.http_errors import describe_status
from services.proposals.adapters.base import BankAdapter

logger = logging.getLogger(__name__)

COMMUNICATION_STATUSES = {401, 403, 429}


class PartnerBank(ABC):
    """Interface base dos bancos parceiros de refinanciamento INSS"""

    slug: str = ""
    bank_codes: Tuple[str, ...] = ()
    name_hints: Tuple[str, ...] = ()

    def __init__(self, client: PartnerAPIClient, adapter: BankAdapter):
        self.client = client
        self.adapter = adapter

    @property
    def bank_name(self) -> str:
        """Nome identificador do banco"""
        return self.adapter.bank_name

    def accepts_contract(self, contract: Contract) -> bool:
        if contract.bank_code in self.bank_codes:
            return True
        name = (contract.bank_name or "").lower()
        return any(hint in name for hint in self.name_hints)

    def filter_contracts(self, contracts: List[Contract]) -> List[Contract]:
        """Mantém apenas os contratos que este parceiro pode refinanciar"""
        return [c for c in contracts if self.accepts_contract(c)]

    async def list_contracts(self, cpf: str, contracts: List[Contract]) -> List[Contract]:
        return self.filter_contracts(contracts)

    async def close(self):
        await self.client.close_session()

    # chamadas ao parceiro, implementadas por banco

    @abstractmethod
    async def _call_simulation(self, request: SimulationRequest) -> PartnerResponse:
        pass

    @abstractmethod
    async def _call_include_proposal(self, payload: dict) -> PartnerResponse:
        pass

    @abstractmethod
    async def _call_formalization_link(self, proposal_number: str) -> PartnerResponse:
        pass

    @abstractmethod
    async def _call_proposal_status(self, proposal_number: str) -> PartnerResponse:
        pass

    def _partner_message(self, response: PartnerResponse) -> str:
        messages = [m for m in self.adapter.extract_errors(response.data) if m]
        if messages:
            return ", ".join(messages)
        return describe_status(response.status, self.bank_name)["message"]

    def _raise_communication(self, response: PartnerResponse):
        info = describe_status(response.status, self.bank_name, response.text)
        raise CommunicationError(
            info["message"],
            title=info["title"],
            details=info["details"],
            status_code=502 if response.status >= 500 else response.status,
        )

    def _is_communication_failure(self, response: PartnerResponse) -> bool:
        return response.status >= 500 or response.status in COMMUNICATION_STATUSES

    async def simulate(self, request: SimulationRequest) -> List[CreditCondition]:
        logger.info(
            f"Simulando refinanciamento {self.bank_name} para contratos: {request.contract_ids}"
        )
        response = await self._call_simulation(request)

        if not response.ok:
            if self._is_communication_failure(response):
                self._raise_communication(response)
            message = self._partner_message(response)
            logger.warning(f"Simulação recusada pelo {self.bank_name}: {message}")
            raise SimulationError(message, details=response.text)

        conditions = self.adapter.parse_conditions(response.data, request)
        if not conditions:
            errors = self.adapter.extract_errors(response.data)
            raise SimulationError(
                "Nenhuma simulação viável encontrada",
                title="Simulação Indisponível",
                details=", ".join(errors)
                or "Não foi possível encontrar opções de refinanciamento para os dados fornecidos",
            )

        logger.info(f"{len(conditions)} condições retornadas pelo {self.bank_name}")
        return conditions

    async def digitize_proposal(self, request: DigitizationRequest) -> str:
        payload = self.adapter.build_proposal_payload(request)
        response = await self._call_include_proposal(payload)

        if not response.ok:
            if self._is_communication_failure(response):
                self._raise_communication(response)
            message = self._partner_message(response)
            retriable = response.status in (400, 422) and self.adapter.has_field_errors(
                response.data
            )
            logger.warning(
                f"Proposta recusada pelo {self.bank_name} (corrigível: {retriable}): {message}"
            )
            raise DigitizationError(message, retriable=retriable, details=response.text)

        proposal_number = self.adapter.parse_proposal_number(response.data)
        if not proposal_number:
            raise DigitizationError(
                f"{self.bank_name} não retornou o número da proposta",
                details=response.text,
            )

        logger.info(f"Proposta {proposal_number} incluída no {self.bank_name}")
        return proposal_number

    async def fetch_formalization_link(self, proposal_number: str) -> FormalizationLink:
        response = await self._call_formalization_link(proposal_number)
        if response.status == 404:
            # link ainda não gerado
            return FormalizationLink()
        if not response.ok:
            self._raise_communication(response)
        return self.adapter.parse_formalization_link(response.data)

    async def fetch_proposal_status(self, proposal_number: str) -> ProposalStatusUpdate:
        response = await self._call_proposal_status(proposal_number)
        if response.status == 404:
            raise NotFoundError(
                f"Proposta {proposal_number} não encontrada no {self.bank_name}"
            )
        if not response.ok:
            self._raise_communication(response)
        return self.adapter.parse_proposal_status(response.data)
