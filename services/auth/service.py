import logging
import os
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from bson import ObjectId
from fastapi import HTTPException, status
from jose import JWTError, jwt
from passlib.context import CryptContext
from pymongo.database import Database

from utils.mongo import get_database
from .password_expiry import (
    calculate_expiry_date,
    days_until_expiry,
    expiry_warning_message,
    is_password_expired,
)
from .roles.constants import UserRole
from .roles.utils import get_role_name, get_user_permissions
from .schemas import PasswordStatus, UserCreate, UserResponse, UserUpdate

logger = logging.getLogger(__name__)

SECRET_KEY = os.getenv("JWT_SECRET_KEY", "your-secret-key")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "720"))

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class AuthService:
    def __init__(self, db: Optional[Database] = None):
        self.db = db if db is not None else get_database()
        self.users = self.db["users"]

        # Criar índices únicos
        self.users.create_index("username", unique=True)

        # Criar usuário admin se não existir
        self._create_default_admin()

    def _create_default_admin(self):
        """Cria um usuário admin padrão se não existir nenhum admin"""
        admin_exists = self.users.find_one({"role": int(UserRole.ADMIN)})
        if not admin_exists:
            now = datetime.utcnow()
            self.users.insert_one(
                {
                    "username": os.getenv("DEFAULT_ADMIN_USERNAME", "admin"),
                    "name": "Administrador",
                    "hashed_password": self.get_password_hash(
                        os.getenv("DEFAULT_ADMIN_PASSWORD", "admin123")
                    ),
                    "role": int(UserRole.ADMIN),
                    "is_active": True,
                    "must_change_password": True,
                    "password_expires_at": now,
                    "created_at": now,
                }
            )
            logger.info("Usuário administrador padrão criado")

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        return pwd_context.verify(plain_password, hashed_password)

    def get_password_hash(self, password: str) -> str:
        return pwd_context.hash(password)

    def create_access_token(
        self, data: dict, expires_delta: Optional[timedelta] = None
    ) -> str:
        to_encode = data.copy()
        if expires_delta:
            expire = datetime.utcnow() + expires_delta
        else:
            expire = datetime.utcnow() + timedelta(minutes=15)

        to_encode.update({"exp": expire})
        return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

    def password_status(self, user: Dict[str, Any]) -> PasswordStatus:
        expires_at = user.get("password_expires_at")
        return PasswordStatus(
            expires_at=expires_at,
            days_until_expiry=days_until_expiry(expires_at),
            expired=is_password_expired(expires_at),
            must_change_password=user.get("must_change_password", False),
            warning=expiry_warning_message(expires_at),
        )

    def to_response(self, user: Dict[str, Any]) -> UserResponse:
        # Pegar a role do usuário ou definir como OPERATOR por padrão
        user_role = UserRole(user.get("role", UserRole.OPERATOR))
        return UserResponse(
            id=str(user["_id"]),
            username=user["username"],
            name=user["name"],
            role=user_role,
            is_active=user.get("is_active", True),
            role_name=get_role_name(user_role),
            permissions=get_user_permissions(user_role),
            password=self.password_status(user),
        )

    async def create_user(self, user: UserCreate) -> UserResponse:
        if self.users.find_one({"username": user.username}):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Nome de usuário já cadastrado",
            )

        now = datetime.utcnow()
        user_data = {
            "username": user.username,
            "name": user.name,
            "hashed_password": self.get_password_hash(user.password),
            "role": int(user.role),
            "is_active": True,
            "must_change_password": False,
            "password_expires_at": calculate_expiry_date(now),
            "last_password_change": now,
            "created_at": now,
        }
        result = self.users.insert_one(user_data)
        user_data["_id"] = result.inserted_id
        logger.info(f"Usuário {user.username} criado com a função {get_role_name(user.role)}")
        return self.to_response(user_data)

    async def authenticate_user(self, username: str, password: str):
        user = self.users.find_one({"username": username})
        if not user or not user.get("is_active", True):
            return False
        if not self.verify_password(password, user["hashed_password"]):
            return False
        self.users.update_one(
            {"_id": user["_id"]}, {"$set": {"last_login": datetime.utcnow()}}
        )
        return user

    def _user_from_token(self, token: str) -> Dict[str, Any]:
        credentials_exception = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Não foi possível validar as credenciais",
            headers={"WWW-Authenticate": "Bearer"},
        )
        try:
            payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
            user_id: str = payload.get("sub")
            if user_id is None or not ObjectId.is_valid(user_id):
                raise credentials_exception
        except JWTError:
            raise credentials_exception

        user = self.users.find_one({"_id": ObjectId(user_id)})
        if user is None or not user.get("is_active", True):
            raise credentials_exception
        return user

    def get_authenticated_user(self, token: str) -> UserResponse:
        """Usuário do token, mesmo com a senha expirada"""
        return self.to_response(self._user_from_token(token))

    def get_current_user(self, token: str) -> UserResponse:
        """Usuário do token; senha expirada bloqueia o acesso até a troca"""
        current = self.get_authenticated_user(token)
        if current.password.expired or current.password.must_change_password:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Senha expirada. Altere sua senha para continuar.",
            )
        return current

    async def change_password(
        self, user_id: str, current_password: str, new_password: str
    ) -> UserResponse:
        user = self.users.find_one({"_id": ObjectId(user_id)})
        if not user or not self.verify_password(current_password, user["hashed_password"]):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Senha atual incorreta",
            )
        if self.verify_password(new_password, user["hashed_password"]):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="A nova senha deve ser diferente da atual",
            )

        now = datetime.utcnow()
        changes = {
            "hashed_password": self.get_password_hash(new_password),
            "password_expires_at": calculate_expiry_date(now),
            "last_password_change": now,
            "must_change_password": False,
        }
        self.users.update_one({"_id": user["_id"]}, {"$set": changes})
        user.update(changes)
        logger.info(f"Senha alterada para o usuário {user['username']}")
        return self.to_response(user)

    def _find_user(self, user_id: str) -> Dict[str, Any]:
        user = None
        if ObjectId.is_valid(user_id):
            user = self.users.find_one({"_id": ObjectId(user_id)})
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Usuário não encontrado",
            )
        return user

    def list_users(self, include_inactive: bool = True) -> List[UserResponse]:
        query = {} if include_inactive else {"is_active": True}
        return [self.to_response(user) for user in self.users.find(query).sort("name")]

    async def update_user(self, user_id: str, data: UserUpdate) -> UserResponse:
        user = self._find_user(user_id)

        changes: Dict[str, Any] = {}
        if data.name is not None:
            changes["name"] = data.name
        if data.role is not None:
            changes["role"] = int(data.role)
        if data.is_active is not None:
            changes["is_active"] = data.is_active
        if data.password:
            changes.update(
                {
                    "hashed_password": self.get_password_hash(data.password),
                    "must_change_password": True,
                    "password_expires_at": datetime.utcnow(),
                }
            )

        if changes:
            self.users.update_one({"_id": user["_id"]}, {"$set": changes})
            user.update(changes)
            logger.info(f"Usuário {user['username']} atualizado: {', '.join(changes)}")
        return self.to_response(user)

    async def deactivate_user(self, user_id: str, current_user_id: str) -> UserResponse:
        """Desativa o usuário; o histórico dele (consultas, propostas) é mantido"""
        if user_id == current_user_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Não é possível desativar seu próprio usuário",
            )
        user = self._find_user(user_id)
        self.users.update_one({"_id": user["_id"]}, {"$set": {"is_active": False}})
        user["is_active"] = False
        logger.info(f"Usuário {user['username']} desativado")
        return self.to_response(user)
