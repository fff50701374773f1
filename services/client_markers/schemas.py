from enum import Enum
from datetime import datetime
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional


class ClientMarkerStatus(str, Enum):
    IN_NEGOTIATION = "em_negociacao"
    FINISHED = "finalizada"
    ZEROED = "zerado"
    NOT_INTERESTED = "tem_coisa_mas_nao_quer"
    CONSULTATION_ONLY = "apenas_consulta"


class MarkerAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    ASSUMED = "assumed"
    REMOVED = "removed"


class ClientMarkerCreate(BaseModel):
    cpf: str
    client_name: Optional[str] = None
    status: ClientMarkerStatus = ClientMarkerStatus.IN_NEGOTIATION
    notes: str = ""
    negotiation_duration_hours: int = Field(2, ge=1, le=72)


class ClientMarkerUpdate(BaseModel):
    status: Optional[ClientMarkerStatus] = None
    notes: Optional[str] = None
    negotiation_duration_hours: Optional[int] = Field(None, ge=1, le=72)


class ClientMarker(BaseModel):
    """Marcação do andamento da negociação com um cliente (uma por CPF)"""

    id: Optional[str] = None
    cpf: str
    client_name: Optional[str] = None
    status: ClientMarkerStatus
    notes: str = ""
    user_id: str
    user_name: str
    assumed_by_id: Optional[str] = None
    assumed_by_name: Optional[str] = None
    negotiation_duration_hours: int = 2
    negotiation_expires_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def owner_id(self) -> str:
        return self.assumed_by_id or self.user_id

    @property
    def owner_name(self) -> str:
        return self.assumed_by_name or self.user_name

    def to_document(self) -> Dict[str, Any]:
        doc = self.model_dump(exclude={"id"})
        doc["status"] = self.status.value
        return doc

    def negotiation_active(self, now: datetime) -> bool:
        return (
            self.status == ClientMarkerStatus.IN_NEGOTIATION
            and self.negotiation_expires_at is not None
            and self.negotiation_expires_at > now
        )


class MarkerHistoryEntry(BaseModel):
    id: Optional[str] = None
    cpf: str
    action: MarkerAction
    status: ClientMarkerStatus
    previous_status: Optional[ClientMarkerStatus] = None
    user_id: str
    user_name: str
    previous_user_name: Optional[str] = None
    notes: str = ""
    created_at: datetime = Field(default_factory=datetime.utcnow)

    def to_document(self) -> Dict[str, Any]:
        doc = self.model_dump(exclude={"id"})
        doc["action"] = self.action.value
        doc["status"] = self.status.value
        if self.previous_status:
            doc["previous_status"] = self.previous_status.value
        return doc


class UnmarkedClient(BaseModel):
    cpf: str
    beneficiary_name: str = ""
    benefit_number: str = ""
    consulted_at: datetime


class ActiveNegotiation(BaseModel):
    cpf: str
    client_name: Optional[str] = None
    operator_name: str
    assumed_by_name: Optional[str] = None
    created_at: datetime
    negotiation_expires_at: Optional[datetime] = None
    negotiation_duration_hours: int
    notes: str = ""
    time_remaining: Optional[str] = None
    is_expired: bool
