from typing import Any, Dict, Optional


class CorbanError(Exception):
    """Erro base da aplicação. Sempre carrega um título curto e uma descrição para o operador."""

    title = "Erro"
    status_code = 500

    def __init__(
        self,
        message: str,
        title: Optional[str] = None,
        details: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        if title:
            self.title = title
        if status_code:
            self.status_code = status_code
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.message,
            "title": self.title,
            "details": self.details,
            "status": self.status_code,
        }


class CommunicationError(CorbanError):
    """Falha de rede, timeout ou resposta não-2xx do parceiro. O operador pode repetir a etapa."""

    title = "Erro de Comunicação"
    status_code = 502
    retriable = True


class SimulationError(CorbanError):
    """O parceiro recusou os dados da simulação (ex: contrato inelegível)."""

    title = "Erro na Simulação"
    status_code = 422


class DigitizationError(CorbanError):
    """O parceiro recusou a proposta. Quando retriable, basta corrigir o formulário e reenviar."""

    title = "Erro na Digitalização"
    status_code = 422

    def __init__(self, message: str, retriable: bool = False, **kwargs):
        super().__init__(message, **kwargs)
        self.retriable = retriable

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["retriable"] = self.retriable
        return data


class NotFoundError(CorbanError):
    title = "Não Encontrado"
    status_code = 404


class SelectionError(CorbanError):
    """Seleção inválida de contratos, condição ou seguro. O estado anterior é mantido."""

    title = "Seleção Inválida"
    status_code = 422


class WorkflowStateError(CorbanError):
    """Operação não permitida na etapa atual do fluxo de proposta."""

    title = "Etapa Inválida"
    status_code = 409


class DuplicateProposalError(CorbanError):
    title = "Proposta Duplicada"
    status_code = 409


class InvalidInputError(CorbanError):
    title = "Dados Inválidos"
    status_code = 400


class ConflictError(CorbanError):
    """Registro já existente ou em uso por outro operador."""

    title = "Conflito"
    status_code = 409


class AccessDeniedError(CorbanError):
    title = "Acesso Negado"
    status_code = 403
