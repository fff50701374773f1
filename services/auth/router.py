from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from datetime import timedelta
from typing import List
from .service import AuthService, ACCESS_TOKEN_EXPIRE_MINUTES
from .schemas import PasswordUpdate, Token, UserCreate, UserResponse, UserUpdate
from .roles.utils import has_permission, validate_role_access

router = APIRouter(prefix="/api/auth", tags=["auth"])
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/auth/login")


def get_auth_service() -> AuthService:
    return AuthService()


async def get_authenticated_user(
    token: str = Depends(oauth2_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    return auth_service.get_authenticated_user(token)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    return auth_service.get_current_user(token)


@router.post("/login", response_model=Token)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Autentica um operador e retorna o token com suas permissões e a situação da senha"""
    user = await auth_service.authenticate_user(form_data.username, form_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Usuário ou senha incorretos",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token = auth_service.create_access_token(
        data={"sub": str(user["_id"])},
        expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    current = auth_service.to_response(user)

    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": {
            "role": current.role,
            "permissions": current.permissions,
            "role_name": current.role_name,
        },
        "password": current.password,
    }


@router.get("/me", response_model=UserResponse)
async def read_users_me(current_user: UserResponse = Depends(get_authenticated_user)):
    """Retorna informações do usuário logado"""
    return current_user


@router.post("/change-password", response_model=UserResponse)
async def change_password(
    data: PasswordUpdate,
    current_user: UserResponse = Depends(get_authenticated_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Troca a senha e renova a validade por mais 30 dias"""
    return await auth_service.change_password(
        current_user.id, data.current_password, data.new_password
    )


@router.post("/users", response_model=UserResponse)
async def create_user(
    user: UserCreate,
    current_user: UserResponse = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Cadastra um novo operador (administradores e supervisores)"""
    if not has_permission(current_user.role, "create_user"):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Você não tem permissão para criar usuários",
        )
    validate_role_access(current_user.role, user.role)
    return await auth_service.create_user(user)


def require_permission(current_user: UserResponse, permission: str, detail: str):
    if not has_permission(current_user.role, permission):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


@router.get("/users", response_model=List[UserResponse])
async def list_users(
    include_inactive: bool = True,
    current_user: UserResponse = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    require_permission(current_user, "list_users", "Você não tem permissão para listar usuários")
    return auth_service.list_users(include_inactive)


@router.put("/users/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    data: UserUpdate,
    current_user: UserResponse = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Altera nome, função, situação ou define uma senha provisória (administradores)"""
    require_permission(current_user, "update_user", "Você não tem permissão para alterar usuários")
    if data.role is not None:
        validate_role_access(current_user.role, data.role)
    return await auth_service.update_user(user_id, data)


@router.delete("/users/{user_id}", response_model=UserResponse)
async def deactivate_user(
    user_id: str,
    current_user: UserResponse = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    require_permission(current_user, "deactivate_user", "Você não tem permissão para desativar usuários")
    return await auth_service.deactivate_user(user_id, current_user.id)
