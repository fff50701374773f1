import logging
from typing import List, Optional

from apis.multicorban_api_client import MultiCorbanAPIClient
from exceptions import InvalidInputError, NotFoundError
from models.benefit import Beneficiary, contracts_from_benefit, parse_benefits
from services.consultations.schemas import ConsultationCreate
from services.consultations.service import ConsultationService
from utils.cpf import clean_cpf, format_cpf, is_valid_cpf, mask_cpf
from .schemas import BenefitResult

logger = logging.getLogger(__name__)


class BenefitService:
    def __init__(
        self,
        client: Optional[MultiCorbanAPIClient] = None,
        consultations: Optional[ConsultationService] = None,
    ):
        self.client = client or MultiCorbanAPIClient()
        self.consultations = consultations

    def _to_results(self, payload) -> List[BenefitResult]:
        return [
            BenefitResult(
                beneficiary=Beneficiary.from_provider(item),
                contracts=contracts_from_benefit(item),
                raw=item,
            )
            for item in parse_benefits(payload)
        ]

    def _record(self, operator_id: Optional[str], results: List[BenefitResult], cpf: str):
        if not self.consultations or not operator_id:
            return
        first = results[0].beneficiary if results else None
        self.consultations.create(
            operator_id,
            ConsultationCreate(
                cpf=first.cpf if first and first.cpf else cpf,
                beneficiary_name=first.name if first else "",
                benefit_number=first.benefit_number if first else "",
            ),
        )

    async def consult_by_cpf(
        self, cpf: str, operator_id: Optional[str] = None
    ) -> List[BenefitResult]:
        if not is_valid_cpf(cpf):
            raise InvalidInputError(
                f"CPF {format_cpf(cpf)} inválido",
                details="Verifique os dígitos informados",
            )

        cleaned = clean_cpf(cpf)
        logger.info(f"Consultando CPF: {mask_cpf(cleaned)}")
        try:
            payload = await self.client.consult_cpf(cleaned)
        finally:
            await self.client.close_session()

        results = self._to_results(payload)
        logger.info(f"{len(results)} benefícios encontrados")
        self._record(operator_id, results, cleaned)
        return results

    async def consult_by_benefit(
        self, benefit_number: str, operator_id: Optional[str] = None
    ) -> List[BenefitResult]:
        number = "".join(c for c in benefit_number if c.isdigit())
        if not number:
            raise InvalidInputError("Número do benefício inválido")

        logger.info(f"Consultando benefício: {number}")
        try:
            payload = await self.client.consult_benefit(number)
        finally:
            await self.client.close_session()

        results = self._to_results(payload)
        self._record(operator_id, results, results[0].beneficiary.cpf if results else "")
        return results

    async def load_benefit(
        self, cpf: str, enrollment: Optional[str] = None
    ) -> BenefitResult:
        """Benefício usado no fluxo de proposta; sem matrícula, o primeiro do CPF"""
        results = await self.consult_by_cpf(cpf)
        for result in results:
            if not enrollment or result.beneficiary.benefit_number == enrollment:
                return result
        if enrollment:
            raise NotFoundError(
                f"Benefício {enrollment} não encontrado para o CPF {format_cpf(cpf)}"
            )
        raise NotFoundError(f"Nenhum benefício encontrado para o CPF {format_cpf(cpf)}")
