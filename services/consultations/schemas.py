from datetime import datetime
from pydantic import BaseModel, Field
from typing import Optional


class ConsultationCreate(BaseModel):
    cpf: str
    beneficiary_name: str = ""
    benefit_number: str = ""


class ConsultationRecord(ConsultationCreate):
    id: Optional[str] = None
    operator_id: str
    created_at: datetime = Field(default_factory=datetime.utcnow)


class ConsultationCheck(BaseModel):
    exists: bool
    consultation: Optional[ConsultationRecord] = None
