import re


def clean_cpf(cpf: str) -> str:
    """Remove todos os caracteres não numéricos do CPF"""
    return re.sub(r"\D", "", cpf or "")


def format_cpf(cpf: str) -> str:
    """Formata o CPF no padrão XXX.XXX.XXX-XX, completando com zeros à esquerda"""
    padded = clean_cpf(cpf).zfill(11)
    return f"{padded[:3]}.{padded[3:6]}.{padded[6:9]}-{padded[9:]}"


def is_valid_cpf(cpf: str) -> bool:
    """Valida tamanho, sequências repetidas e os dois dígitos verificadores"""
    cleaned = clean_cpf(cpf)

    if len(cleaned) != 11:
        return False

    if cleaned == cleaned[0] * 11:
        return False

    for position in (9, 10):
        total = sum(
            int(digit) * weight
            for digit, weight in zip(cleaned[:position], range(position + 1, 1, -1))
        )
        remainder = (total * 10) % 11
        if remainder == 10:
            remainder = 0
        if remainder != int(cleaned[position]):
            return False

    return True


def mask_cpf(cpf: str) -> str:
    """CPF para logs: mantém apenas os dígitos centrais (***.982.247-**)"""
    formatted = format_cpf(cpf)
    return f"***{formatted[3:11]}-**"
