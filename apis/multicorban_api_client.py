import os
from typing import Any, Dict, List, Tuple

from apis.partner_api_client import PartnerAPIClient, PartnerResponse, logger
from exceptions import CommunicationError, NotFoundError
from utils.cpf import mask_cpf
from utils.http_errors import describe_status


class MultiCorbanAPIClient(PartnerAPIClient):
    """Consulta de benefícios INSS (MULTI CORBAN) por CPF ou número de benefício"""

    provider_name = "MULTI CORBAN"
    required_env_vars = ("MULTICORBAN_API_KEY",)

    def __init__(self):
        super().__init__(os.getenv("MULTICORBAN_API_URL", "https://api.multicorban.com"))
        self.api_key = os.getenv("MULTICORBAN_API_KEY")

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": self.api_key}

    async def _fetch_token(self) -> Tuple[str, int]:
        # a chave de API é fixa, não há troca de token
        return self.api_key, 24 * 60

    def _raise_for_status(self, response: PartnerResponse):
        if response.ok:
            return
        info = describe_status(response.status, self.provider_name, response.text)
        if response.status == 404:
            raise NotFoundError(
                info["message"], title=info["title"], details=info["details"]
            )
        raise CommunicationError(
            info["message"],
            title=info["title"],
            details=info["details"],
            status_code=response.status,
        )

    async def consult_cpf(self, cpf: str) -> List[Dict[str, Any]]:
        """Retorna a lista de benefícios vinculados ao CPF"""
        logger.info("consult_cpf", cpf=mask_cpf(cpf))
        response = await self._request("POST", "cpf", {"cpf": cpf})
        self._raise_for_status(response)
        return response.data

    async def consult_benefit(self, benefit_number: str) -> List[Dict[str, Any]]:
        """Consulta offline pelo número do benefício"""
        logger.info("consult_benefit", benefit_number=benefit_number)
        response = await self._request(
            "POST", "offline", {"beneficio": benefit_number}
        )
        self._raise_for_status(response)
        return response.data
