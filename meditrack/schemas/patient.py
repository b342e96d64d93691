# =====================================================================
# PATIENT AND PATIENT REQUEST SCHEMAS
# =====================================================================

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import Field

from .base import ApiModel, Ref
from .enums import Gender, PatientStatus, PatientRequestStatus

# =========================================================
# PATIENTS
# =========================================================

class PatientCreate(ApiModel):
    """
    Direct patient registration (ADMIN/RECEPTIONIST).

    Attributes:
        name (str): Patient name
        age (Optional[int]): Age in years
        gender (Gender): MALE, FEMALE or OTHER
        phone (Optional[str]): Contact phone
        email (Optional[str]): Contact email
        blood_group (Optional[str]): Blood group, free text
        condition_summary (Optional[str]): Short clinical summary
        admission_date (Optional[date]): Admission date
    """
    name: str = Field(min_length=1)
    age: Optional[int] = Field(None, ge=0)
    gender: Gender = Gender.MALE
    phone: Optional[str] = None
    email: Optional[str] = None
    blood_group: Optional[str] = None
    condition_summary: Optional[str] = None
    admission_date: Optional[date] = None


class PatientOut(ApiModel):
    id: int
    name: str
    age: Optional[int] = None
    gender: Optional[str] = None
    condition_summary: Optional[str] = None
    status: PatientStatus = PatientStatus.ADMITTED


# =========================================================
# PATIENT REQUESTS
# =========================================================

class PatientRequestCreate(ApiModel):
    """Registration request filed by a doctor for reception/admin."""
    patient_name: str = Field(min_length=1)
    age: Optional[int] = Field(None, ge=0)
    gender: Gender = Gender.MALE
    phone: Optional[str] = None
    email: Optional[str] = None
    blood_group: Optional[str] = None
    condition_summary: Optional[str] = None
    requested_by_doctor_id: Optional[int] = None


class PatientRequestDecision(ApiModel):
    """Body of the approve/reject calls."""
    processed_by_user_id: Optional[int] = None
    remarks: str = ""


class PatientRequestOut(ApiModel):
    id: int
    patient_name: str
    condition_summary: Optional[str] = None
    requested_by_doctor: Optional[Ref] = None
    status: PatientRequestStatus = PatientRequestStatus.PENDING
    remarks: Optional[str] = None
    created_at: Optional[datetime] = None
