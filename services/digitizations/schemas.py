from pydantic import BaseModel
from typing import Optional
from models.digitization import DigitizationStatus


class StatusUpdate(BaseModel):
    status: DigitizationStatus
    formalization_link: Optional[str] = None


class RefreshSummary(BaseModel):
    checked: int
    updated_count: int
    errors: int
