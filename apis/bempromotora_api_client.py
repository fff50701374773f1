import os
from typing import Any, Dict, List, Tuple

from apis.partner_api_client import PartnerAPIClient, PartnerResponse, logger
from utils.cpf import clean_cpf


class BemPromotoraAPIClient(PartnerAPIClient):
    """Integração corban da Bem Promotora, canal de refinanciamento Banrisul"""

    provider_name = "Banrisul"
    required_env_vars = ("BEMPROMOTORA_USERNAME", "BEMPROMOTORA_PASSWORD")

    def __init__(self):
        super().__init__(
            os.getenv(
                "BEMPROMOTORA_API_URL",
                "https://api.techbem.com.br/integracao-corban",
            )
        )
        self.username = os.getenv("BEMPROMOTORA_USERNAME")
        self.password = os.getenv("BEMPROMOTORA_PASSWORD")

    async def _fetch_token(self) -> Tuple[str, int]:
        response = await self._request(
            "POST",
            "Autenticacao/Autenticar",
            {"usuario": self.username, "senha": self.password},
            authenticated=False,
        )
        self.raise_for_status(response)
        retorno = (response.data or {}).get("retorno") or {}
        # token válido por 1 hora
        return retorno.get("jwtToken"), 60

    async def get_contracts(self, cpf: str) -> List[Dict[str, Any]]:
        response = await self._request(
            "GET", "contratos", params={"CpfCliente": clean_cpf(cpf)}
        )
        self.raise_for_status(response)
        contracts = (response.data or {}).get("retorno") or []
        logger.info("contracts_found", provider=self.provider_name, total=len(contracts))
        return contracts

    async def simulate_refinancing(self, payload: Dict[str, Any]) -> PartnerResponse:
        return await self._request("POST", "v2/refinanciamentos", payload)

    async def include_proposal(self, payload: Dict[str, Any]) -> PartnerResponse:
        return await self._request("POST", "v2/propostas/refinanciamento", payload)

    async def formalization_link(self, proposal_number: str) -> PartnerResponse:
        return await self._request(
            "GET", f"v2/propostas/{proposal_number}/link-formalizacao"
        )

    async def proposal_status(self, proposal_number: str) -> PartnerResponse:
        return await self._request("GET", f"v2/propostas/{proposal_number}")
