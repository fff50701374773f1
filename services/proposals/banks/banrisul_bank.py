import logging
from typing import Any, Dict, List, Optional

from apis.bempromotora_api_client import BemPromotoraAPIClient
from apis.partner_api_client import PartnerResponse
from exceptions import CorbanError
from models.contract import Contract
from models.simulation import SimulationRequest
from services.proposals.adapters.banrisul_adapter import BanrisulAdapter, only_digits
from services.proposals.adapters.base import to_float
from .base import PartnerBank

logger = logging.getLogger(__name__)


def same_contract(partner_number: Any, contract_number: str) -> bool:
    """Compara números de contrato ignorando pontuação e zeros à esquerda"""
    left = only_digits(partner_number).lstrip("0")
    right = only_digits(contract_number).lstrip("0")
    return bool(left) and left == right


class BanrisulBank(PartnerBank):
    """Refinanciamento Banrisul pela integração corban da Bem Promotora"""

    slug = "banrisul"
    bank_codes = ("041",)
    name_hints = ("banrisul",)

    def __init__(self, client: Optional[BemPromotoraAPIClient] = None):
        super().__init__(client or BemPromotoraAPIClient(), BanrisulAdapter())

    async def resolve_covenant(self, request: SimulationRequest) -> str:
        """Usa a conveniada do contrato na Bem Promotora; sem correspondência, a informada"""
        fallback = request.contracts[0].covenant
        try:
            partner_contracts = await self.client.get_contracts(request.cpf)
        except CorbanError as e:
            logger.warning(
                f"Erro ao buscar contratos, usando conveniada fornecida: {e.message}"
            )
            return fallback

        for contract in request.contracts:
            for item in partner_contracts:
                if same_contract(item.get("contrato"), contract.contract_number):
                    logger.info(
                        f"Conveniada {item.get('conveniada')} encontrada para o contrato {contract.contract_number}"
                    )
                    return str(item.get("conveniada") or fallback)
        return fallback

    async def list_contracts(self, cpf: str, contracts: List[Contract]) -> List[Contract]:
        """Contratos refinanciáveis segundo a Bem Promotora, completados com os dados do benefício"""
        partner_contracts = await self.client.get_contracts(cpf)
        known = self.filter_contracts(contracts)

        result = []
        for item in partner_contracts:
            if not item.get("refinanciavel"):
                continue
            match = next(
                (c for c in known if same_contract(item.get("contrato"), c.contract_number)),
                None,
            )
            data: Dict[str, Any] = match.model_dump() if match else {
                "contract_number": str(item.get("contrato", "")),
                "bank_code": self.bank_codes[0],
                "bank_name": self.bank_name,
                "enrollment": str(item.get("matricula", "")),
                "installment_amount": to_float(item.get("pmtOriginal")),
            }
            data["covenant"] = str(item.get("conveniada") or "")
            data["contract_date"] = data.get("contract_date") or item.get("dataContrato")
            result.append(Contract(**data))
        return result

    async def _call_simulation(self, request: SimulationRequest) -> PartnerResponse:
        covenant = await self.resolve_covenant(request)
        payload = self.adapter.build_simulation_payload(request, covenant)
        return await self.client.simulate_refinancing(payload)

    async def _call_include_proposal(self, payload: dict) -> PartnerResponse:
        return await self.client.include_proposal(payload)

    async def _call_formalization_link(self, proposal_number: str) -> PartnerResponse:
        return await self.client.formalization_link(proposal_number)

    async def _call_proposal_status(self, proposal_number: str) -> PartnerResponse:
        return await self.client.proposal_status(proposal_number)
