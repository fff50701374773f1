from typing import Dict, Optional


STATUS_MESSAGES = {
    400: (
        "Dados Inválidos",
        "Os dados informados são inválidos. Verifique se o CPF ou número do benefício estão corretos.",
    ),
    401: (
        "Acesso Negado",
        "Chave de API inválida ou expirada. Entre em contato com o administrador.",
    ),
    403: (
        "Acesso Proibido",
        "Sem permissão para acessar este recurso. Verifique suas credenciais.",
    ),
    404: (
        "Dados Não Encontrados",
        "Nenhum registro encontrado para os dados informados.",
    ),
    422: (
        "Formato Inválido",
        "Os dados estão em formato incorreto. Verifique se o CPF tem 11 dígitos.",
    ),
    429: (
        "Muitas Tentativas",
        "Limite de consultas excedido. Aguarde alguns minutos antes de tentar novamente.",
    ),
    500: (
        "Erro Interno do Servidor",
        "Erro interno na API {provider}. Tente novamente em alguns minutos.",
    ),
    502: (
        "Gateway Indisponível",
        "O servidor da API {provider} está temporariamente indisponível.",
    ),
    503: (
        "Serviço Indisponível",
        "O sistema {provider} está temporariamente em manutenção ou sobrecarregado.",
    ),
    504: (
        "Tempo Esgotado",
        "A consulta demorou muito para responder. Tente novamente.",
    ),
}


def describe_status(
    status: int, provider: str, details: Optional[str] = None
) -> Dict[str, Optional[str]]:
    """
    Traduz um status HTTP do parceiro em título e mensagem para o operador

    Args:
        status: Código HTTP retornado pelo parceiro
        provider: Nome do parceiro exibido na mensagem
        details: Corpo bruto da resposta, repassado como detalhe

    Returns:
        Dicionário com title, message e details
    """
    title, message = STATUS_MESSAGES.get(
        status,
        (
            "Erro Desconhecido",
            f"Erro inesperado (código {status}). Entre em contato com o suporte.",
        ),
    )
    return {
        "title": title,
        "message": message.format(provider=provider),
        "details": details,
    }
