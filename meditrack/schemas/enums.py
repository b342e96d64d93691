# =====================================================================
# SYSTEM ENUMERATIONS
# =====================================================================

"""
Closed enumerations shared by the policy table, the workflow machines and
the screens. Values match the strings exchanged with the backend.
"""

from __future__ import annotations

from enum import Enum

# =========================================================
# USERS
# =========================================================

class Role(str, Enum):
    ADMIN = "ADMIN"
    DOCTOR = "DOCTOR"
    NURSE = "NURSE"
    RECEPTIONIST = "RECEPTIONIST"
    LAB_TECHNICIAN = "LAB_TECHNICIAN"

    @classmethod
    def parse(cls, value) -> Role | None:
        """Return the matching role, or None for anything unknown."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return None


class Shift(str, Enum):
    MORNING = "MORNING"
    AFTERNOON = "AFTERNOON"
    NIGHT = "NIGHT"


class Gender(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"


# =========================================================
# SCREENS AND ENTITIES
# =========================================================

class ScreenKey(str, Enum):
    HOME = "home"
    PATIENTS = "patients"
    BEDS = "beds"
    APPOINTMENTS = "appointments"
    ATTENDANCE = "attendance"
    ALERTS = "alerts"
    PRESCRIPTIONS = "prescriptions"


class EntityType(str, Enum):
    PATIENT = "patient"
    PATIENT_REQUEST = "patient_request"
    APPOINTMENT = "appointment"
    BED = "bed"
    PRESCRIPTION = "prescription"
    ATTENDANCE = "attendance"
    ALERT = "alert"


class Action(str, Enum):
    CREATE = "create"
    APPROVE = "approve"
    REJECT = "reject"
    MARK_REGISTERED = "mark_registered"
    DISCHARGE = "discharge"
    CHANGE_STATUS = "change_status"
    COMPLETE = "complete"
    STOP = "stop"
    RESOLVE = "resolve"
    SEARCH = "search"
    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"


# =========================================================
# ENTITY STATUSES
# =========================================================

class PatientStatus(str, Enum):
    ADMITTED = "ADMITTED"
    CRITICAL = "CRITICAL"
    DISCHARGED = "DISCHARGED"


class PatientRequestStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    REGISTERED = "REGISTERED"


class AppointmentStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class BedStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    OCCUPIED = "OCCUPIED"
    MAINTENANCE = "MAINTENANCE"


class PrescriptionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    STOPPED = "STOPPED"


class AttendanceStatus(str, Enum):
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    LATE = "LATE"
    HALF_DAY = "HALF_DAY"


class AlertStatus(str, Enum):
    OPEN = "OPEN"
    RESOLVED = "RESOLVED"


class AlertType(str, Enum):
    STAFF_SHORTAGE = "STAFF_SHORTAGE"
    BED_FULL = "BED_FULL"
    NO_SHOW_RISK = "NO_SHOW_RISK"
    CRITICAL_PATIENT = "CRITICAL_PATIENT"


class AlertSeverity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"
