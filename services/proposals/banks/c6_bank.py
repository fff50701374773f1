from typing import Optional
from apis.c6_api_client import C6APIClient
from apis.partner_api_client import PartnerResponse
from models.simulation import SimulationRequest
from services.proposals.adapters.c6_adapter import C6BankAdapter
from .base import PartnerBank


class C6Bank(PartnerBank):
    slug = "c6-bank"
    bank_codes = ("626",)
    name_hints = ("c6", "ficsa")

    def __init__(self, client: Optional[C6APIClient] = None):
        client = client or C6APIClient()
        super().__init__(client, C6BankAdapter(client.promoter_code))

    async def _call_simulation(self, request: SimulationRequest) -> PartnerResponse:
        payload = self.adapter.build_simulation_payload(request)
        return await self.client.simulate(payload)

    async def _call_include_proposal(self, payload: dict) -> PartnerResponse:
        return await self.client.include_proposal(payload)

    async def _call_formalization_link(self, proposal_number: str) -> PartnerResponse:
        return await self.client.formalization_link(proposal_number)

    async def _call_proposal_status(self, proposal_number: str) -> PartnerResponse:
        return await self.client.proposal_movement(proposal_number)
