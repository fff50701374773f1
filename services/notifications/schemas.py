from datetime import datetime
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional


class NotificationCreate(BaseModel):
    user_id: str
    type: str = "info"
    title: str
    message: str
    cpf: Optional[str] = None
    benefit_number: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class Notification(NotificationCreate):
    id: Optional[str] = None
    is_read: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)
    read_at: Optional[datetime] = None


class UnreadCount(BaseModel):
    count: int
