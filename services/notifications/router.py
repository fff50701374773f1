from fastapi import APIRouter, Depends, Query
from typing import List
from services.auth.router import get_current_user
from services.auth.schemas import UserResponse
from .schemas import Notification, UnreadCount
from .service import NotificationService

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def get_notification_service() -> NotificationService:
    return NotificationService()


@router.get("", response_model=List[Notification])
async def list_notifications(
    limit: int = Query(50, ge=1, le=500),
    current_user: UserResponse = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    """Notificações do usuário logado, mais recentes primeiro"""
    return service.list_by_user(current_user.id, limit)


@router.get("/unread-count", response_model=UnreadCount)
async def unread_count(
    current_user: UserResponse = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return UnreadCount(count=service.unread_count(current_user.id))


@router.post("/read-all")
async def mark_all_as_read(
    current_user: UserResponse = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    updated = service.mark_all_as_read(current_user.id)
    return {"message": "Notificações marcadas como lidas", "updated": updated}


@router.post("/{notification_id}/read", response_model=Notification)
async def mark_as_read(
    notification_id: str,
    current_user: UserResponse = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return service.mark_as_read(notification_id, current_user.id)
