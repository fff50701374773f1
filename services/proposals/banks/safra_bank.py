from typing import Optional
from apis.partner_api_client import PartnerResponse
from apis.safra_api_client import SafraAPIClient
from models.simulation import SimulationRequest
from services.proposals.adapters.safra_adapter import SafraAdapter
from .base import PartnerBank


class SafraBank(PartnerBank):
    slug = "safra"
    bank_codes = ("422",)
    name_hints = ("safra",)

    def __init__(self, client: Optional[SafraAPIClient] = None):
        super().__init__(client or SafraAPIClient(), SafraAdapter())

    async def _call_simulation(self, request: SimulationRequest) -> PartnerResponse:
        covenant_id = await self.client.get_covenant_id()
        payload = self.adapter.build_simulation_payload(request, covenant_id)
        return await self.client.simulate(payload)

    async def _call_include_proposal(self, payload: dict) -> PartnerResponse:
        return await self.client.include_proposal(payload)

    async def _call_formalization_link(self, proposal_number: str) -> PartnerResponse:
        return await self.client.formalization_link(proposal_number)

    async def _call_proposal_status(self, proposal_number: str) -> PartnerResponse:
        return await self.client.proposal_status(proposal_number)
