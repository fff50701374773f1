import unicodedata
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from models.digitization import (
    DigitizationRequest,
    DigitizationStatus,
    FormalizationLink,
    ProposalStatusUpdate,
)
from models.simulation import CreditCondition, SimulationRequest


STATUS_ALIASES = {
    "APROVADA": DigitizationStatus.APPROVED,
    "APROVADO": DigitizationStatus.APPROVED,
    "PAGA": DigitizationStatus.APPROVED,
    "PAGO": DigitizationStatus.APPROVED,
    "INTEGRADA": DigitizationStatus.APPROVED,
    "APPROVED": DigitizationStatus.APPROVED,
    "REPROVADA": DigitizationStatus.REJECTED,
    "REPROVADO": DigitizationStatus.REJECTED,
    "RECUSADA": DigitizationStatus.REJECTED,
    "REJEITADA": DigitizationStatus.REJECTED,
    "NEGADA": DigitizationStatus.REJECTED,
    "REJECTED": DigitizationStatus.REJECTED,
    "CANCELADA": DigitizationStatus.CANCELLED,
    "CANCELADO": DigitizationStatus.CANCELLED,
    "EM_ANALISE": DigitizationStatus.IN_ANALYSIS,
    "ANALISE": DigitizationStatus.IN_ANALYSIS,
    "EM_AVALIACAO": DigitizationStatus.IN_ANALYSIS,
    "AGUARDANDO_ANALISE": DigitizationStatus.IN_ANALYSIS,
    "PENDENTE": DigitizationStatus.PENDING,
    "PENDING": DigitizationStatus.PENDING,
}


def map_partner_status(value: Any) -> Optional[DigitizationStatus]:
    """Normaliza a situação textual do parceiro (com acentos, espaços etc.) para o status interno.

    Situações vazias ou desconhecidas retornam None: o último status conhecido é mantido.
    """
    if not value:
        return None
    normalized = unicodedata.normalize("NFKD", str(value))
    normalized = "".join(c for c in normalized if not unicodedata.combining(c))
    normalized = normalized.strip().upper().replace(" ", "_").replace("-", "_")
    return STATUS_ALIASES.get(normalized)


def to_float(value: Any) -> float:
    if value is None or value == "":
        return 0.0
    if isinstance(value, str) and "," in value:
        value = value.replace(".", "").replace(",", ".")
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def to_int(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


class BankAdapter(ABC):
    """Converte os modelos normalizados para o formato de cada parceiro e vice-versa"""

    @property
    @abstractmethod
    def bank_name(self) -> str:
        pass

    @abstractmethod
    def build_simulation_payload(self, request: SimulationRequest) -> Dict[str, Any]:
        pass

    @abstractmethod
    def parse_conditions(
        self, data: Any, request: SimulationRequest
    ) -> List[CreditCondition]:
        """Converte a resposta da simulação, mantendo a ordem devolvida pelo parceiro"""
        pass

    @abstractmethod
    def build_proposal_payload(self, request: DigitizationRequest) -> Dict[str, Any]:
        pass

    @abstractmethod
    def parse_proposal_number(self, data: Any) -> str:
        pass

    @abstractmethod
    def parse_formalization_link(self, data: Any) -> FormalizationLink:
        pass

    @abstractmethod
    def parse_proposal_status(self, data: Any) -> ProposalStatusUpdate:
        pass

    @abstractmethod
    def extract_errors(self, data: Any) -> List[str]:
        """Mensagens de erro do parceiro, na íntegra"""
        pass

    def has_field_errors(self, data: Any) -> bool:
        return False
