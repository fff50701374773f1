"""Funções de acesso (administrador, supervisor e operador) e suas permissões"""

from .constants import UserRole, ROLE_PERMISSIONS, ROLE_NAMES
from .utils import has_permission, validate_role_access

__all__ = [
    "UserRole",
    "ROLE_PERMISSIONS",
    "ROLE_NAMES",
    "has_permission",
    "validate_role_access",
]
