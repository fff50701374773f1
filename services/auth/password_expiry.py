from datetime import datetime, timedelta
from typing import Optional

PASSWORD_VALIDITY_DAYS = 30
# Dias antes da expiração em que o operador é alertado
WARNING_DAYS = (3, 2, 1)

WARNING_MESSAGES = {
    3: "Sua senha expirará em 3 dias. Altere sua senha para continuar usando o sistema.",
    2: "Sua senha expirará em 2 dias. Altere sua senha urgentemente!",
    1: "Sua senha expirará amanhã! Altere sua senha agora para evitar bloqueio.",
    0: "Sua senha expirou hoje. Você deve alterar sua senha para continuar.",
}


def calculate_expiry_date(now: Optional[datetime] = None) -> datetime:
    """Data de expiração de uma senha definida agora"""
    return (now or datetime.utcnow()) + timedelta(days=PASSWORD_VALIDITY_DAYS)


def is_password_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    if not expires_at:
        return False
    return (now or datetime.utcnow()) > expires_at


def days_until_expiry(expires_at: Optional[datetime], now: Optional[datetime] = None) -> int:
    """Dias inteiros restantes (truncados); -1 quando não há data de expiração"""
    if not expires_at:
        return -1
    remaining = (expires_at - (now or datetime.utcnow())).total_seconds()
    return int(remaining / 86400)


def should_show_expiry_warning(
    expires_at: Optional[datetime], now: Optional[datetime] = None
) -> bool:
    if not expires_at:
        return False
    return days_until_expiry(expires_at, now) in WARNING_DAYS


def expiry_warning_message(
    expires_at: Optional[datetime], now: Optional[datetime] = None
) -> str:
    if not expires_at:
        return ""
    return WARNING_MESSAGES.get(days_until_expiry(expires_at, now), "")
