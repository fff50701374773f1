from fastapi import APIRouter, Depends
from typing import List
from services.auth.router import get_current_user
from services.auth.schemas import UserResponse
from services.consultations.service import ConsultationService
from .schemas import BenefitQuery, BenefitResult, CpfQuery
from .service import BenefitService

router = APIRouter(prefix="/api/multicorban", tags=["benefits"])


def get_benefit_service() -> BenefitService:
    return BenefitService(consultations=ConsultationService())


@router.post("/cpf", response_model=List[BenefitResult])
async def consult_cpf(
    query: CpfQuery,
    current_user: UserResponse = Depends(get_current_user),
    service: BenefitService = Depends(get_benefit_service),
):
    """Benefícios e empréstimos vinculados ao CPF"""
    return await service.consult_by_cpf(query.cpf, current_user.id)


@router.post("/offline", response_model=List[BenefitResult])
async def consult_offline(
    query: BenefitQuery,
    current_user: UserResponse = Depends(get_current_user),
    service: BenefitService = Depends(get_benefit_service),
):
    """Consulta offline pelo número do benefício"""
    return await service.consult_by_benefit(query.beneficio, current_user.id)
