from pydantic import BaseModel
from typing import List
from .constants import UserRole


class UserPermissions(BaseModel):
    role: UserRole
    permissions: List[str]
    role_name: str
