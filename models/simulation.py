from enum import Enum
from pydantic import BaseModel, Field, model_validator
from typing import Any, Dict, List, Optional
from models.contract import Contract


class SimulationMode(str, Enum):
    BY_TERM = "by_term"
    BY_INSTALLMENT_AMOUNT = "by_installment_amount"


class SimulationRequest(BaseModel):
    """Entrada de uma simulação de refinanciamento para um conjunto de contratos"""

    cpf: str
    birth_date: str
    contracts: List[Contract] = Field(..., min_length=1)
    mode: SimulationMode = SimulationMode.BY_TERM
    installment_quantity: Optional[int] = Field(default=None, gt=0)
    installment_amount: Optional[float] = Field(default=None, gt=0)
    with_insurance: bool = False

    @model_validator(mode="after")
    def check_mode(self) -> "SimulationRequest":
        if self.mode == SimulationMode.BY_TERM:
            if not self.installment_quantity:
                raise ValueError("Informe o prazo desejado (quantidade de parcelas)")
            if self.installment_amount is not None:
                raise ValueError(
                    "Simulação por prazo não aceita valor de parcela desejado"
                )
        elif not self.installment_amount:
            raise ValueError("Informe o valor de parcela desejado")

        enrollments = {contract.enrollment for contract in self.contracts}
        if len(enrollments) > 1:
            raise ValueError("Os contratos devem pertencer à mesma matrícula")
        return self

    @property
    def contract_ids(self) -> List[str]:
        return [contract.contract_number for contract in self.contracts]

    @property
    def enrollment(self) -> str:
        return self.contracts[0].enrollment

    @property
    def current_installment_total(self) -> float:
        return round(sum(c.installment_amount for c in self.contracts), 2)


class Expense(BaseModel):
    """Tarifa ou seguro que acompanha uma condição de crédito"""

    code: str
    description: str = ""
    amount: float = 0.0
    exempt: bool = True
    type_description: str = ""
    raw: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        frozen = True

    @property
    def is_insurance(self) -> bool:
        return "seguro" in f"{self.type_description} {self.description}".lower()


class CreditCondition(BaseModel):
    """Uma oferta de refinanciamento devolvida pelo parceiro"""

    covenant_code: str = ""
    covenant_description: str = ""
    product_code: str = ""
    product_description: str = ""
    client_amount: float = 0.0
    requested_amount: float = 0.0
    installment_amount: float = 0.0
    installment_quantity: int = 0
    interest_rate: float = 0.0
    total_amount: float = 0.0
    expenses: List[Expense] = Field(default_factory=list)
    raw: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        frozen = True

    def expense(self, code: str) -> Optional[Expense]:
        for item in self.expenses:
            if item.code == code:
                return item
        return None

    @property
    def charged_expenses(self) -> List[Expense]:
        return [item for item in self.expenses if not item.exempt]
