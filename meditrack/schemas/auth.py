# =====================================================================
# AUTHENTICATION SCHEMAS
# =====================================================================

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from .base import ApiModel
from .enums import Role, Shift

# Roles offered by the self-registration form
REGISTRABLE_ROLES = (Role.DOCTOR, Role.NURSE, Role.ADMIN)

# =========================================================
# LOGIN
# =========================================================

class LoginRequest(ApiModel):
    """
    Credentials posted to `/auth/login`.

    Attributes:
        email (str): Account email
        password (str): Plain-text password
    """
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class LoginResponse(ApiModel):
    """
    Backend answer to a successful login.

    Attributes:
        token (str): Bearer token for later calls
        name (str): Display name
        role (str): Role of the account
        id (Optional[int]): Numeric user id, when the backend sends it
    """
    token: str
    name: Optional[str] = None
    role: Optional[str] = None
    id: Optional[int] = None
    user_id: Optional[int] = None
    email: Optional[str] = None


class Identity(BaseModel):
    """
    The authenticated user as held by the session store.

    Attributes:
        id (Optional[int]): Numeric user id
        name (str): Display name
        email (str): Login email
        role (Optional[Role]): Role, None when the backend sent an unknown one
    """
    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    name: str = ""
    email: str = ""
    role: Optional[Role] = None

    @field_validator("role", mode="before")
    @classmethod
    def _parse_role(cls, value):
        return Role.parse(value) if value is not None else None


# =========================================================
# REGISTRATION
# =========================================================

class RegisterRequest(ApiModel):
    """
    Staff self-registration posted to `/auth/register`.

    Attributes:
        name (str): Full name
        email (EmailStr): Login email
        password (str): Password
        role (Role): One of REGISTRABLE_ROLES
        phone (str): Contact phone
        department_id (int): Department the user belongs to
        shift (Shift): Working shift
    """
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=1)
    role: Role = Role.DOCTOR
    phone: str = Field(min_length=1)
    department_id: int
    shift: Shift = Shift.MORNING

    @field_validator("role")
    @classmethod
    def _registrable(cls, value: Role) -> Role:
        if value not in REGISTRABLE_ROLES:
            raise ValueError(f"role {value.value} cannot self-register")
        return value
