# =====================================================================
# APPOINTMENT SCHEMAS
# =====================================================================

from __future__ import annotations

from typing import Optional

from pydantic import Field

from .base import ApiModel, Ref
from .enums import AppointmentStatus


class AppointmentCreate(ApiModel):
    """
    Booking form posted to `/appointments`.

    Date and time stay as the strings the form collected
    (`YYYY-MM-DD` and `HH:MM`).
    """
    patient_id: int = Field(gt=0)
    doctor_id: int = Field(gt=0)
    appointment_date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")
    appointment_time: str = Field(pattern=r"^\d{2}:\d{2}(:\d{2})?$")
    reason: Optional[str] = None


class AppointmentOut(ApiModel):
    id: int
    patient: Optional[Ref] = None
    doctor: Optional[Ref] = None
    appointment_date: Optional[str] = None
    appointment_time: Optional[str] = None
    reason: Optional[str] = None
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
