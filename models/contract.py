from pydantic import BaseModel, Field
from typing import Optional


class Contract(BaseModel):
    """Contrato de empréstimo já averbado em um benefício, candidato a refinanciamento"""

    contract_number: str
    bank_code: str
    bank_name: str = ""
    enrollment: str = Field(..., description="Número do benefício (matrícula) do contrato")
    installment_amount: float = 0.0
    outstanding_balance: float = 0.0
    term: Optional[int] = None
    remaining_installments: Optional[int] = None
    contract_date: Optional[str] = None
    refinanceable: bool = True
    covenant: str = ""

    class Config:
        frozen = True
