# =====================================================================
# PRESCRIPTION SCHEMAS
# =====================================================================

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import Field, field_validator

from .base import ApiModel, Ref
from .enums import PrescriptionStatus


class PrescriptionCreate(ApiModel):
    """
    Medication order created by a doctor.

    Attributes:
        patient_id (int): Patient the order is for
        doctor_id (int): Prescribing doctor (the session user)
        nurse_id (Optional[int]): Nurse assigned to administer it
        medication_name (str): Medication, required
        dosage / frequency / route / instructions: free text
        start_date / end_date (Optional[date]): Validity window
    """
    patient_id: int = Field(gt=0)
    doctor_id: int = Field(gt=0)
    nurse_id: Optional[int] = None
    medication_name: str
    dosage: Optional[str] = None
    frequency: Optional[str] = None
    route: Optional[str] = None
    instructions: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @field_validator("medication_name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("medication name is required")
        return value


class PrescriptionOut(ApiModel):
    id: int
    patient: Optional[Ref] = None
    prescribed_by_doctor: Optional[Ref] = None
    assigned_nurse: Optional[Ref] = None
    medication_name: str
    dosage: Optional[str] = None
    frequency: Optional[str] = None
    status: PrescriptionStatus = PrescriptionStatus.ACTIVE
