from enum import IntEnum


class UserRole(IntEnum):
    ADMIN = 1
    SUPERVISOR = 2
    OPERATOR = 3


ROLE_PERMISSIONS = {
    UserRole.ADMIN: [
        "create_user",
        "update_user",
        "list_users",
        "deactivate_user",
        "manage_client_markers",
        "view_negotiations_control",
        "consult_benefits",
        "simulate_refinancing",
        "digitize_proposals",
        "view_all_digitizations",
        "refresh_digitizations",
    ],
    UserRole.SUPERVISOR: [
        "create_user",
        "list_users",
        "manage_client_markers",
        "view_negotiations_control",
        "consult_benefits",
        "simulate_refinancing",
        "digitize_proposals",
        "view_all_digitizations",
        "refresh_digitizations",
    ],
    UserRole.OPERATOR: [
        "consult_benefits",
        "simulate_refinancing",
        "digitize_proposals",
        "view_own_digitizations",
    ],
}

ROLE_NAMES = {
    UserRole.ADMIN: "Administrador",
    UserRole.SUPERVISOR: "Supervisor",
    UserRole.OPERATOR: "Operador",
}
