from fastapi import APIRouter, Depends, Query
from typing import List, Optional
from exceptions import AccessDeniedError
from services.auth.roles.utils import has_permission
from services.auth.router import get_current_user
from services.auth.schemas import UserResponse
from services.notifications.router import get_notification_service
from services.notifications.service import NotificationService
from .schemas import (
    ActiveNegotiation,
    ClientMarker,
    ClientMarkerCreate,
    ClientMarkerUpdate,
    MarkerHistoryEntry,
    UnmarkedClient,
)
from .service import ClientMarkerService

router = APIRouter(prefix="/api/client-markers", tags=["client-markers"])
admin_router = APIRouter(prefix="/api/admin", tags=["client-markers"])


def get_client_marker_service(
    notifications: NotificationService = Depends(get_notification_service),
) -> ClientMarkerService:
    return ClientMarkerService(notifications=notifications)


@router.get("", response_model=List[ClientMarker])
async def list_markers(
    search: Optional[str] = Query(None, description="CPF, operador, cliente ou observações"),
    current_user: UserResponse = Depends(get_current_user),
    service: ClientMarkerService = Depends(get_client_marker_service),
):
    return service.list(search)


@router.post("", response_model=ClientMarker, status_code=201)
async def mark_client(
    data: ClientMarkerCreate,
    current_user: UserResponse = Depends(get_current_user),
    service: ClientMarkerService = Depends(get_client_marker_service),
):
    """Marca o cliente consultado, ou assume a marcação de outro operador já vencida"""
    return service.mark(data, current_user)


@router.get("/unmarked", response_model=List[UnmarkedClient])
async def list_unmarked(
    current_user: UserResponse = Depends(get_current_user),
    service: ClientMarkerService = Depends(get_client_marker_service),
):
    """Clientes consultados pelo operador logado que ainda não foram marcados"""
    return service.unmarked(current_user.id)


@router.get("/{cpf}", response_model=ClientMarker)
async def get_marker(
    cpf: str,
    current_user: UserResponse = Depends(get_current_user),
    service: ClientMarkerService = Depends(get_client_marker_service),
):
    return service.get(cpf)


@router.put("/{cpf}", response_model=ClientMarker)
async def update_marker(
    cpf: str,
    data: ClientMarkerUpdate,
    current_user: UserResponse = Depends(get_current_user),
    service: ClientMarkerService = Depends(get_client_marker_service),
):
    return service.update(cpf, data, current_user)


@router.delete("/{cpf}")
async def remove_marker(
    cpf: str,
    current_user: UserResponse = Depends(get_current_user),
    service: ClientMarkerService = Depends(get_client_marker_service),
):
    service.remove(cpf, current_user)
    return {"message": "Marcação removida com sucesso"}


@router.get("/{cpf}/history", response_model=List[MarkerHistoryEntry])
async def marker_history(
    cpf: str,
    current_user: UserResponse = Depends(get_current_user),
    service: ClientMarkerService = Depends(get_client_marker_service),
):
    return service.get_history(cpf)


@admin_router.get("/negotiations-control", response_model=List[ActiveNegotiation])
async def negotiations_control(
    current_user: UserResponse = Depends(get_current_user),
    service: ClientMarkerService = Depends(get_client_marker_service),
):
    """Todas as negociações em andamento (supervisores e administradores)"""
    if not has_permission(current_user.role, "view_negotiations_control"):
        raise AccessDeniedError(
            "Apenas supervisores e administradores podem acessar o controle de negociações"
        )
    return service.negotiations_control()
