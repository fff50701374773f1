import os
from typing import Any, Dict, Tuple

from apis.partner_api_client import PartnerAPIClient, PartnerResponse


class C6APIClient(PartnerAPIClient):
    """Cliente da API de consignado do C6 Bank"""

    provider_name = "C6 Bank"
    required_env_vars = ("C6_API_URL", "C6_USERNAME", "C6_PASSWORD")

    def __init__(self):
        super().__init__(os.getenv("C6_API_URL"))
        self.username = os.getenv("C6_USERNAME")
        self.password = os.getenv("C6_PASSWORD")
        self.promoter_code = os.getenv("C6_PROMOTER_CODE", "")

    async def _fetch_token(self) -> Tuple[str, int]:
        response = await self._request(
            "POST",
            "auth/token",
            {"username": self.username, "password": self.password},
            authenticated=False,
        )
        self.raise_for_status(response)
        data = response.data or {}
        return data.get("access_token"), int(data.get("expires_in", 3600)) // 60

    async def simulate(self, payload: Dict[str, Any]) -> PartnerResponse:
        return await self._request(
            "POST", "marketplace/proposal/simulation", payload
        )

    async def include_proposal(self, payload: Dict[str, Any]) -> PartnerResponse:
        return await self._request(
            "POST", "marketplace/proposal/refinancing/include", payload
        )

    async def formalization_link(self, proposal_number: str) -> PartnerResponse:
        return await self._request(
            "GET",
            "marketplace/proposal/formalization-url",
            params={"proposalNumber": proposal_number},
        )

    async def proposal_movement(self, proposal_number: str) -> PartnerResponse:
        return await self._request(
            "GET", f"marketplace/proposal/{proposal_number}/movement"
        )
