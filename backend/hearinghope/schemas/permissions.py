from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from hearinghope.auth.bootstrap import BootstrapOutcome
from hearinghope.auth.permissions import UserRole
from hearinghope.schemas.common import APIResponse
from hearinghope.schemas.validators import validate_permission_list


# ── Catalog ──────────────────────────────────────────────────

class CatalogResponse(APIResponse):
    resources: list[str]
    actions: list[str]
    role_permissions: dict[str, list[str]]


# ── Permission check ─────────────────────────────────────────

class PermissionCheckRequest(BaseModel):
    """Ask whether the caller may do something.

    `roles` is an explicit opt-in fallback: when given, a matching role grants
    access even without the permission. Without it only permissions count.
    """
    permission: str | None = None
    permissions: list[str] | None = None
    require: Literal["any", "all"] = "any"
    roles: list[UserRole] | None = None


class PermissionCheckResponse(APIResponse):
    allowed: bool


# ── User permissions ─────────────────────────────────────────

class UserPermissionsResponse(APIResponse):
    user_id: str
    permissions: list[str]


class UserPermissionsUpdate(BaseModel):
    """Administrative edit. Replaces whichever lists are supplied."""
    custom_permissions: list[str] | None = None
    permission_groups: list[str] | None = None

    @field_validator("custom_permissions")
    @classmethod
    def check_permissions(cls, v: list[str] | None) -> list[str] | None:
        return validate_permission_list(v)


# ── Permission groups ────────────────────────────────────────

class PermissionGroupCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    permissions: list[str]

    @field_validator("permissions")
    @classmethod
    def check_permissions(cls, v: list[str] | None) -> list[str] | None:
        return validate_permission_list(v)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v


class PermissionGroupUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    permissions: list[str] | None = None

    @field_validator("permissions")
    @classmethod
    def check_permissions(cls, v: list[str] | None) -> list[str] | None:
        return validate_permission_list(v)


class PermissionGroupOut(BaseModel):
    id: str
    name: str
    description: str | None = None
    permissions: list[str]
    created_by: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PermissionGroupListResponse(APIResponse):
    groups: list[PermissionGroupOut]


class PermissionGroupResponse(APIResponse):
    group: PermissionGroupOut


class PermissionGroupCreatedResponse(APIResponse):
    group_id: str


# ── Bootstrap ────────────────────────────────────────────────

class BootstrapRequest(BaseModel):
    user_id: str | None = None


class UserBootstrapOut(BaseModel):
    user_id: str
    outcome: BootstrapOutcome
    added: list[str] = []
    error: str | None = None

    model_config = {"from_attributes": True}


class UserBootstrapResponse(APIResponse):
    user_id: str
    outcome: BootstrapOutcome
    added: list[str]
    permissions: list[str]


class BatchBootstrapResponse(APIResponse):
    processed: int
    repaired: int
    already_compliant: int
    failed: int
    results: list[UserBootstrapOut]
