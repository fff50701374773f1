from fastapi import APIRouter, Depends, Query
from typing import Dict, List, Optional
from models.digitization import DigitizationRecord
from services.auth.roles.utils import has_permission
from services.auth.router import get_current_user
from services.auth.schemas import UserResponse
from services.proposals.banks.base import PartnerBank
from services.proposals.registry import get_configured_banks, get_supported_bank
from .schemas import RefreshSummary, StatusUpdate
from .service import DATE_BUCKETS, DigitizationRecorder

# a rota só responde para bancos suportados
router = APIRouter(
    prefix="/api", tags=["digitizations"], dependencies=[Depends(get_supported_bank)]
)


def get_recorder() -> DigitizationRecorder:
    return DigitizationRecorder()


def get_banks() -> Dict[str, PartnerBank]:
    return get_configured_banks()


@router.get("/{bank}-digitizations", response_model=List[DigitizationRecord])
async def list_digitizations(
    bank: str,
    search: Optional[str] = Query(None, description="Nome, CPF ou número da proposta"),
    status: Optional[str] = Query(None),
    date_filter: str = Query("all", pattern=f"^({'|'.join(DATE_BUCKETS)})$"),
    recorder: DigitizationRecorder = Depends(get_recorder),
    current_user: UserResponse = Depends(get_current_user),
):
    """Histórico de digitalizações do banco; operadores veem apenas as próprias"""
    operator_id = None
    if not has_permission(current_user.role, "view_all_digitizations"):
        operator_id = current_user.id
    return recorder.list(
        bank=bank,
        search=search,
        status=status,
        date_bucket=date_filter,
        operator_id=operator_id,
    )


@router.post("/{bank}-digitizations", response_model=DigitizationRecord, status_code=201)
async def create_digitization(
    bank: str,
    record: DigitizationRecord,
    recorder: DigitizationRecorder = Depends(get_recorder),
    current_user: UserResponse = Depends(get_current_user),
):
    record = record.model_copy(
        update={"bank": bank, "operator_id": record.operator_id or current_user.id}
    )
    return recorder.create(record)


@router.put(
    "/{bank}-digitizations/{proposal_number}/status",
    response_model=DigitizationRecord,
)
async def update_digitization_status(
    bank: str,
    proposal_number: str,
    update: StatusUpdate,
    recorder: DigitizationRecorder = Depends(get_recorder),
    current_user: UserResponse = Depends(get_current_user),
):
    return recorder.update_status(
        proposal_number,
        update.status,
        formalization_link=update.formalization_link,
        bank=bank,
    )


@router.post("/{bank}-digitizations/refresh-status", response_model=RefreshSummary)
async def refresh_digitizations(
    bank: str,
    recorder: DigitizationRecorder = Depends(get_recorder),
    banks: Dict[str, PartnerBank] = Depends(get_banks),
    current_user: UserResponse = Depends(get_current_user),
):
    """Reconsulta no banco as propostas ainda não finalizadas"""
    return await recorder.refresh_all(banks, bank=bank)
