from datetime import datetime

from pydantic import BaseModel, EmailStr

from hearinghope.auth.permissions import UserRole
from hearinghope.schemas.common import APIResponse


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserOut(BaseModel):
    id: str
    name: str
    email: str
    role: UserRole
    phone: str
    position: str
    is_active: bool
    last_login: datetime | None = None

    model_config = {"from_attributes": True}


class LoginResponse(APIResponse):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class MeResponse(APIResponse):
    user: UserOut
    permissions: list[str]
