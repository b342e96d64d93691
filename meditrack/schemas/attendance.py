# =====================================================================
# ATTENDANCE SCHEMAS
# =====================================================================

from __future__ import annotations

from typing import Optional

from .base import ApiModel, Ref
from .enums import AttendanceStatus


class AttendanceOut(ApiModel):
    id: int
    user: Optional[Ref] = None
    date: Optional[str] = None
    check_in_time: Optional[str] = None
    check_out_time: Optional[str] = None
    status: AttendanceStatus = AttendanceStatus.PRESENT
