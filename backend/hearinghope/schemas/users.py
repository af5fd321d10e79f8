from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from hearinghope.auth.permissions import UserRole
from hearinghope.auth.password import MIN_PASSWORD_LENGTH
from hearinghope.schemas.common import APIResponse, Pagination
from hearinghope.schemas.validators import normalize_email


class UserCreate(BaseModel):
    """Super admin creates a new account."""
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)
    role: UserRole
    phone: str = Field(min_length=1)
    position: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return normalize_email(v)


class UserUpdate(BaseModel):
    """Partial update; omitted fields are left untouched."""
    name: str | None = Field(default=None, min_length=1)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, min_length=1)
    position: str | None = Field(default=None, min_length=1)
    role: UserRole | None = None
    is_active: bool | None = None
    password: str | None = Field(default=None, min_length=MIN_PASSWORD_LENGTH)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str | None) -> str | None:
        return normalize_email(v) if v else v


class UserSummary(BaseModel):
    id: str
    name: str
    email: str
    role: UserRole
    phone: str
    position: str
    is_active: bool
    last_login: datetime | None = None
    custom_permissions: list[str] = []
    permission_group_ids: list[str] = []
    created_at: datetime

    model_config = {"from_attributes": True}


class UserListResponse(APIResponse):
    users: list[UserSummary]
    pagination: Pagination


class UserDetailResponse(APIResponse):
    user: UserSummary


class UserCreatedResponse(APIResponse):
    user_id: str
