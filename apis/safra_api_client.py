import os
from typing import Any, Dict, Optional, Tuple

from apis.partner_api_client import PartnerAPIClient, PartnerResponse


class SafraAPIClient(PartnerAPIClient):
    """Cliente da API de consignado INSS do Safra"""

    provider_name = "Safra"
    required_env_vars = ("SAFRA_API_URL", "SAFRA_USERNAME", "SAFRA_PASSWORD")

    def __init__(self):
        super().__init__(os.getenv("SAFRA_API_URL"))
        self.username = os.getenv("SAFRA_USERNAME")
        self.password = os.getenv("SAFRA_PASSWORD")
        self.covenant_id: Optional[int] = None

    async def _fetch_token(self) -> Tuple[str, int]:
        response = await self._request(
            "POST",
            "api/v1/Token",
            {"username": self.username, "password": self.password},
            authenticated=False,
        )
        self.raise_for_status(response)
        return (response.data or {}).get("token"), 30

    async def get_covenant_id(self) -> int:
        """Busca o id do convênio INSS uma única vez por instância"""
        if self.covenant_id is None:
            response = await self._request(
                "GET", "api/v1/Convenio", params={"nome": "INSS"}
            )
            self.raise_for_status(response)
            data = response.data
            if isinstance(data, list):
                data = data[0] if data else {}
            self.covenant_id = int((data or {}).get("idConvenio", 0))
        return self.covenant_id

    async def simulate(self, payload: Dict[str, Any]) -> PartnerResponse:
        return await self._request("POST", "api/v1/Calculo/Refin", payload)

    async def include_proposal(self, payload: Dict[str, Any]) -> PartnerResponse:
        return await self._request("POST", "api/v1/Propostas", payload)

    async def formalization_link(self, proposal_number: str) -> PartnerResponse:
        return await self._request(
            "GET", f"api/v1/Propostas/{proposal_number}/Formalizacao"
        )

    async def proposal_status(self, proposal_number: str) -> PartnerResponse:
        return await self._request("GET", f"api/v1/Propostas/{proposal_number}")
