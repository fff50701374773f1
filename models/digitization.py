from enum import Enum
from datetime import datetime
from pydantic import BaseModel, Field, model_validator
from typing import Any, Dict, List, Optional
from models.simulation import CreditCondition


class DigitizationStatus(str, Enum):
    PENDING = "pending"
    IN_ANALYSIS = "EM_ANALISE"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "CANCELADA"


TERMINAL_STATUSES = frozenset(
    {
        DigitizationStatus.APPROVED,
        DigitizationStatus.REJECTED,
        DigitizationStatus.CANCELLED,
    }
)


class IdentityDocument(BaseModel):
    type: str = "RG"
    number: str = ""
    issuing_state: str = "SP"
    issuing_authority: str = "SSP"
    issue_date: str = "2010-01-01"


class PersonalData(BaseModel):
    name: str
    cpf: str
    birth_date: str
    mother_name: str = ""
    gender: str = "Masculino"
    marital_status: str = "Solteiro"
    spouse_name: str = ""
    politically_exposed: bool = False
    email: str = "naoinformado@gmail.com"
    phone: str = ""
    income_amount: float = 0.0
    document: IdentityDocument = Field(default_factory=IdentityDocument)

    @property
    def phone_area_code(self) -> str:
        return "".join(c for c in self.phone if c.isdigit())[:2]

    @property
    def phone_number(self) -> str:
        return "".join(c for c in self.phone if c.isdigit())[2:]


class Address(BaseModel):
    street: str = ""
    number: str = "S/N"
    complement: str = ""
    neighborhood: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""


class BankData(BaseModel):
    """Conta de crédito do valor liberado ao cliente"""

    bank_code: str = ""
    agency: str = ""
    agency_digit: str = "0"
    account: str = ""
    account_digit: str = ""
    account_type: str = "ContaCorrenteIndividual"


class DigitizationForm(BaseModel):
    """Dados editáveis pelo operador antes do envio da proposta"""

    personal: PersonalData
    address: Address = Field(default_factory=Address)
    bank_data: BankData = Field(default_factory=BankData)
    benefit_state: str = ""
    receives_benefit_card: bool = False


class DigitizationRequest(BaseModel):
    personal: PersonalData
    address: Address
    bank_data: BankData
    enrollment: str
    benefit_state: str = ""
    receives_benefit_card: bool = False
    credit_condition: CreditCondition
    contract_ids: List[str] = Field(..., min_length=1)
    selected_insurance: Optional[str] = None

    @model_validator(mode="after")
    def check_single_insurance(self) -> "DigitizationRequest":
        charged = self.credit_condition.charged_expenses
        if len(charged) > 1:
            raise ValueError("Apenas um seguro pode ser contratado por proposta")
        if self.selected_insurance and [e.code for e in charged] != [
            self.selected_insurance
        ]:
            raise ValueError("O seguro selecionado deve ser o único item não isento")
        if not self.selected_insurance and charged:
            raise ValueError("Nenhum seguro selecionado, todos os itens devem ser isentos")
        return self


class FormalizationLink(BaseModel):
    url: Optional[str] = None
    status: Optional[str] = None

    @property
    def is_ready(self) -> bool:
        return bool(self.url) and (self.status or "").upper() == "ACTIVE"


class ProposalStatusUpdate(BaseModel):
    # None quando o parceiro devolve uma situação desconhecida
    status: Optional[DigitizationStatus] = None
    formalization_link: Optional[str] = None
    raw: Dict[str, Any] = Field(default_factory=dict)


class DigitizationRecord(BaseModel):
    """Registro persistido de uma proposta digitalizada"""

    id: Optional[str] = None
    bank: str
    proposal_number: str
    cpf: str
    client_name: str
    operator_id: Optional[str] = None
    selected_contracts: List[str]
    credit_condition: Dict[str, Any] = Field(default_factory=dict)
    selected_insurance: str = ""
    requested_amount: float = 0.0
    installment_amount: float = 0.0
    client_amount: float = 0.0
    status: DigitizationStatus = DigitizationStatus.PENDING
    formalization_link: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @classmethod
    def from_request(
        cls,
        bank: str,
        proposal_number: str,
        request: DigitizationRequest,
        operator_id: Optional[str] = None,
    ) -> "DigitizationRecord":
        condition = request.credit_condition
        insurance = (
            condition.expense(request.selected_insurance)
            if request.selected_insurance
            else None
        )

        return cls(
            bank=bank,
            proposal_number=proposal_number,
            cpf=request.personal.cpf,
            client_name=request.personal.name,
            operator_id=operator_id,
            selected_contracts=list(request.contract_ids),
            credit_condition=condition.model_dump(
                exclude={"raw": True, "expenses": {"__all__": {"raw"}}}
            ),
            selected_insurance=insurance.description if insurance else "",
            requested_amount=condition.requested_amount or condition.client_amount,
            installment_amount=condition.installment_amount,
            client_amount=condition.client_amount,
        )
