# =====================================================================
# USER AND DEPARTMENT SCHEMAS
# =====================================================================

from __future__ import annotations

from typing import Optional

from .base import ApiModel, Ref
from .enums import Shift


class Department(ApiModel):
    id: int
    name: str


class UserOut(ApiModel):
    """Staff member as listed by `/users`."""
    id: int
    name: str
    email: Optional[str] = None
    role: Optional[str] = None
    phone: Optional[str] = None
    department: Optional[Ref] = None
    shift: Optional[Shift] = None
