from pydantic import BaseModel, Field
from typing import Any, Dict, List
from models.benefit import Beneficiary
from models.contract import Contract


class CpfQuery(BaseModel):
    cpf: str


class BenefitQuery(BaseModel):
    beneficio: str = Field(..., min_length=1, description="Número do benefício")


class BenefitResult(BaseModel):
    """Um benefício do CPF consultado, com os empréstimos já normalizados"""

    beneficiary: Beneficiary
    contracts: List[Contract] = []
    raw: Dict[str, Any] = {}
