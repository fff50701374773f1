from enum import Enum
from datetime import datetime
from pydantic import BaseModel, Field
from typing import Optional


class FavoriteStatus(str, Enum):
    CONTACTED = "contactado"
    NEGOTIATING = "negociacao"
    FINISHED = "finalizado"


class FavoriteClientCreate(BaseModel):
    cpf: str
    name: str
    benefit_number: str = ""
    phone: Optional[str] = None
    email: Optional[str] = None
    notes: Optional[str] = None
    status: FavoriteStatus = FavoriteStatus.CONTACTED


class FavoriteClientUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[FavoriteStatus] = None
    last_consultation: Optional[datetime] = None


class FavoriteClient(FavoriteClientCreate):
    id: Optional[str] = None
    user_id: str
    last_consultation: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
