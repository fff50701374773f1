from typing import List
from fastapi import HTTPException, status
from .constants import UserRole, ROLE_PERMISSIONS, ROLE_NAMES


def get_user_permissions(role: UserRole) -> List[str]:
    """Retorna a lista de permissões para uma role específica"""
    return ROLE_PERMISSIONS.get(role, [])


def get_role_name(role: UserRole) -> str:
    """Retorna o nome amigável da role"""
    return ROLE_NAMES.get(role, "Operador")


def has_permission(role: UserRole, permission: str) -> bool:
    return permission in ROLE_PERMISSIONS.get(role, [])


def validate_role_access(current_role: UserRole, target_role: UserRole) -> None:
    """
    Valida se um usuário com current_role pode criar um usuário com target_role
    Admin pode criar qualquer role
    Supervisor só pode criar operadores
    Operadores não podem criar usuários
    """
    if current_role == UserRole.ADMIN:
        return

    if current_role == UserRole.SUPERVISOR and target_role == UserRole.OPERATOR:
        return

    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Você não tem permissão para criar usuários com esta função",
    )
