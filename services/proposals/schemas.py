from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from models.contract import Contract
from models.simulation import SimulationMode


class ContractsQuery(BaseModel):
    cpf: str
    enrollment: Optional[str] = Field(None, description="Número do benefício")


class ContractsResponse(BaseModel):
    bank: str
    contracts: List[Contract]


class IncludeProposalResponse(BaseModel):
    proposal_number: str
    record: Dict[str, Any]


class FormalizationLinkResponse(BaseModel):
    proposal_number: str
    url: Optional[str] = None
    status: Optional[str] = None
    ready: bool = False


class PollingStartedResponse(BaseModel):
    proposal_number: str
    max_attempts: int
    interval_seconds: float


class WorkflowStart(BaseModel):
    cpf: str
    enrollment: Optional[str] = Field(None, description="Número do benefício")


class ContractSelection(BaseModel):
    contract_ids: List[str]


class WorkflowSimulation(BaseModel):
    mode: SimulationMode = SimulationMode.BY_TERM
    installment_quantity: Optional[int] = None
    installment_amount: Optional[float] = None
    with_insurance: bool = False


class ConditionChoice(BaseModel):
    index: int = Field(..., ge=0)
    insurance_code: Optional[str] = None
