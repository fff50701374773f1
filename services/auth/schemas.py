from datetime import datetime
from pydantic import BaseModel, Field
from typing import Optional, List
from .roles.constants import UserRole
from .roles.models import UserPermissions


class UserBase(BaseModel):
    username: str = Field(..., min_length=3)
    name: str


class UserCreate(UserBase):
    password: str = Field(..., min_length=6)
    role: UserRole = Field(default=UserRole.OPERATOR)


class PasswordStatus(BaseModel):
    expires_at: Optional[datetime] = None
    days_until_expiry: int = -1
    expired: bool = False
    must_change_password: bool = False
    warning: str = ""


class Token(BaseModel):
    access_token: str
    token_type: str
    user: UserPermissions
    password: PasswordStatus


class UserResponse(UserBase):
    id: str
    role: UserRole
    is_active: bool = True
    permissions: List[str] = []
    role_name: str
    password: PasswordStatus = Field(default_factory=PasswordStatus)


class UserUpdate(BaseModel):
    name: Optional[str] = None
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None
    # senha provisória definida pelo administrador; exige troca no próximo acesso
    password: Optional[str] = Field(None, min_length=6)


class PasswordUpdate(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6)
