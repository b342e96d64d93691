# =====================================================================
# PYDANTIC SCHEMAS
# =====================================================================

"""
Pydantic schemas for the payloads the console exchanges with the hospital
backend. One module per entity.
"""

from .enums import (
    Role,
    Shift,
    Gender,
    ScreenKey,
    EntityType,
    Action,
    PatientStatus,
    PatientRequestStatus,
    AppointmentStatus,
    BedStatus,
    PrescriptionStatus,
    AttendanceStatus,
    AlertStatus,
    AlertType,
    AlertSeverity,
)

from .base import ApiModel, Ref
from .auth import LoginRequest, LoginResponse, Identity, RegisterRequest, REGISTRABLE_ROLES
from .user import Department, UserOut
from .patient import PatientCreate, PatientOut, PatientRequestCreate, PatientRequestDecision, PatientRequestOut
from .appointment import AppointmentCreate, AppointmentOut
from .bed import BedCreate, BedOut
from .prescription import PrescriptionCreate, PrescriptionOut
from .attendance import AttendanceOut
from .alert import AlertCreate, AlertOut
from .forms import StatusChange, Remarks
