from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List, Optional
from services.auth.roles.utils import has_permission
from services.auth.router import get_current_user
from services.auth.schemas import UserResponse
from .schemas import ConsultationCheck, ConsultationCreate, ConsultationRecord
from .service import ConsultationService

router = APIRouter(prefix="/api/consultations", tags=["consultations"])


def get_consultation_service() -> ConsultationService:
    return ConsultationService()


@router.get("", response_model=List[ConsultationRecord])
async def list_consultations(
    limit: int = Query(50, ge=1, le=500),
    all_operators: bool = Query(False, description="Todas as consultas (gestão)"),
    current_user: UserResponse = Depends(get_current_user),
    service: ConsultationService = Depends(get_consultation_service),
):
    """Histórico de consultas do operador logado"""
    operator_id = current_user.id
    if all_operators and has_permission(current_user.role, "view_all_digitizations"):
        operator_id = None
    return service.list_by_operator(operator_id, limit)


@router.post("", response_model=ConsultationRecord, status_code=201)
async def create_consultation(
    data: ConsultationCreate,
    current_user: UserResponse = Depends(get_current_user),
    service: ConsultationService = Depends(get_consultation_service),
):
    return service.create(current_user.id, data)


@router.get("/check", response_model=ConsultationCheck)
async def check_consultation(
    cpf: Optional[str] = None,
    benefit_number: Optional[str] = None,
    current_user: UserResponse = Depends(get_current_user),
    service: ConsultationService = Depends(get_consultation_service),
):
    """Verifica se o operador já consultou o CPF ou benefício"""
    try:
        consultation = service.check(current_user.id, cpf, benefit_number)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ConsultationCheck(exists=consultation is not None, consultation=consultation)
