from fastapi import APIRouter, Depends, Query
from typing import List, Optional
from services.auth.router import get_current_user
from services.auth.schemas import UserResponse
from .schemas import FavoriteClient, FavoriteClientCreate, FavoriteClientUpdate
from .service import FavoriteClientService

router = APIRouter(prefix="/api/favorite-clients", tags=["favorite-clients"])


def get_favorite_service() -> FavoriteClientService:
    return FavoriteClientService()


@router.get("", response_model=List[FavoriteClient])
async def list_favorites(
    status: Optional[str] = Query(None),
    current_user: UserResponse = Depends(get_current_user),
    service: FavoriteClientService = Depends(get_favorite_service),
):
    return service.list_by_user(current_user.id, status)


@router.post("", response_model=FavoriteClient, status_code=201)
async def add_favorite(
    data: FavoriteClientCreate,
    current_user: UserResponse = Depends(get_current_user),
    service: FavoriteClientService = Depends(get_favorite_service),
):
    return service.create(current_user.id, data)


@router.put("/{client_id}", response_model=FavoriteClient)
async def update_favorite(
    client_id: str,
    data: FavoriteClientUpdate,
    current_user: UserResponse = Depends(get_current_user),
    service: FavoriteClientService = Depends(get_favorite_service),
):
    return service.update(client_id, current_user.id, data)


@router.delete("/{client_id}")
async def remove_favorite(
    client_id: str,
    current_user: UserResponse = Depends(get_current_user),
    service: FavoriteClientService = Depends(get_favorite_service),
):
    service.delete(client_id, current_user.id)
    return {"message": "Cliente removido dos favoritos"}
