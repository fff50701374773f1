"""Banco parceiro em memória para os testes do fluxo de proposta e do polling."""

import asyncio
from typing import Any, Dict, List, Optional

from exceptions import NotFoundError
from models.contract import Contract
from models.digitization import FormalizationLink, ProposalStatusUpdate
from models.simulation import CreditCondition, SimulationRequest


class FakePartnerBank:
    """Responde com dados programados e guarda as chamadas recebidas"""

    slug = "fake-bank"
    bank_name = "Banco Fake"
    bank_codes = ("999",)

    def __init__(
        self,
        conditions: Optional[List[CreditCondition]] = None,
        proposal_number: str = "PROP-0001",
        links: Optional[List[Any]] = None,
        statuses: Optional[Dict[str, ProposalStatusUpdate]] = None,
    ):
        self.conditions = conditions or []
        self.proposal_number = proposal_number
        # cada item é um FormalizationLink ou uma exceção a ser levantada
        self.links = list(links or [])
        self.statuses = dict(statuses or {})
        self.simulate_error: Optional[Exception] = None
        self.digitize_error: Optional[Exception] = None
        self.simulations: List[SimulationRequest] = []
        self.digitizations: List[Any] = []
        self.link_calls: List[str] = []
        self.status_calls: List[str] = []
        self.closed = False

    def filter_contracts(self, contracts: List[Contract]) -> List[Contract]:
        return [c for c in contracts if c.bank_code in self.bank_codes]

    async def list_contracts(self, cpf: str, contracts: List[Contract]) -> List[Contract]:
        return self.filter_contracts(contracts)

    async def simulate(self, request: SimulationRequest) -> List[CreditCondition]:
        self.simulations.append(request)
        if self.simulate_error:
            error, self.simulate_error = self.simulate_error, None
            raise error
        return list(self.conditions)

    async def digitize_proposal(self, request) -> str:
        self.digitizations.append(request)
        if self.digitize_error:
            error, self.digitize_error = self.digitize_error, None
            raise error
        return self.proposal_number

    async def fetch_formalization_link(self, proposal_number: str) -> FormalizationLink:
        self.link_calls.append(proposal_number)
        item = self.links.pop(0) if self.links else FormalizationLink()
        if isinstance(item, Exception):
            raise item
        return item

    async def fetch_proposal_status(self, proposal_number: str) -> ProposalStatusUpdate:
        self.status_calls.append(proposal_number)
        item = self.statuses.get(proposal_number)
        if item is None:
            raise NotFoundError(f"Proposta {proposal_number} não encontrada")
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self):
        self.closed = True


class BlockingLinkBank(FakePartnerBank):
    """A consulta do link fica presa até o teste liberar, para simular uma chamada em voo"""

    def __init__(self, link: FormalizationLink, **kwargs):
        super().__init__(**kwargs)
        self.link = link
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def fetch_formalization_link(self, proposal_number: str) -> FormalizationLink:
        self.link_calls.append(proposal_number)
        self.started.set()
        await self.release.wait()
        return self.link


class RecordingSleep:
    """Substitui o intervalo entre tentativas sem esperar de verdade"""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float):
        self.calls.append(seconds)
