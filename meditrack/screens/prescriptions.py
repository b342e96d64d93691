"""
Prescriptions screen: doctors see and manage their own orders, nurses see
the orders assigned to them, admins look orders up by patient.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from meditrack.exceptions import FormValidationError
from meditrack.schemas import (
    Action,
    EntityType,
    PrescriptionCreate,
    PrescriptionOut,
    PrescriptionStatus,
    Role,
    ScreenKey,
    UserOut,
)
from meditrack.services.permission_service import ListScope

from .base import Screen, parse_form, rows

REQUIRED_FIELDS_MESSAGE = "Patient ID and medication name are required"


def _positive_int(value) -> Optional[int]:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


class PrescriptionsScreen(Screen):
    key = ScreenKey.PRESCRIPTIONS

    def __init__(self, *args, preset_patient: Optional[Dict[str, Any]] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.preset_patient = preset_patient or None
        self.prescriptions: List[PrescriptionOut] = []
        self.nurses: List[UserOut] = []
        self.search_patient_id: Optional[int] = None

    @property
    def preset_patient_id(self) -> Optional[int]:
        if not self.preset_patient:
            return None
        return _positive_int(self.preset_patient.get("patientId"))

    async def mount(self) -> None:
        await super().mount()
        if self.can(EntityType.PRESCRIPTION, Action.CREATE):
            await self.fetch(self._load_nurses, self._set_nurses, clear_error=False)

    async def refresh(self) -> None:
        scope = self.scope(EntityType.PRESCRIPTION)
        if scope in (ListScope.DOCTOR, ListScope.NURSE) or self.search_patient_id is not None:
            await self.fetch(self._load_prescriptions, self._set_prescriptions)
        else:
            self.prescriptions = []
            await super().refresh()

    async def _load_prescriptions(self) -> List[PrescriptionOut]:
        scope = self.scope(EntityType.PRESCRIPTION)
        if scope == ListScope.SEARCH and self.search_patient_id is not None:
            return rows(PrescriptionOut, await self.gateway.get(f"/prescriptions/patient/{self.search_patient_id}"))
        if self.user_id is None:
            return []
        if scope == ListScope.DOCTOR:
            return rows(PrescriptionOut, await self.gateway.get(f"/prescriptions/doctor/{self.user_id}"))
        if scope == ListScope.NURSE:
            return rows(PrescriptionOut, await self.gateway.get(f"/prescriptions/nurse/{self.user_id}"))
        return []

    async def _load_nurses(self) -> List[UserOut]:
        return rows(UserOut, await self.gateway.get("/users", role=Role.NURSE.value))

    def _set_prescriptions(self, prescriptions) -> None:
        self.prescriptions = list(prescriptions)

    def _set_nurses(self, nurses) -> None:
        self.nurses = list(nurses)

    def _prescription(self, prescription_id: int) -> PrescriptionOut:
        for prescription in self.prescriptions:
            if prescription.id == prescription_id:
                return prescription
        raise FormValidationError(f"Prescription {prescription_id} is not on this screen")

    async def search(self, patient_id) -> bool:
        """Admin lookup of every prescription for one patient"""
        self.require(EntityType.PRESCRIPTION, Action.SEARCH)
        self.error = None
        pid = _positive_int(patient_id)
        if pid is None:
            self.error = "Enter valid patient ID"
            raise FormValidationError(self.error)
        self.search_patient_id = pid
        return await self.fetch(self._load_prescriptions, self._set_prescriptions)

    async def create(self, form: Dict[str, Any]) -> Any:
        self.require(EntityType.PRESCRIPTION, Action.CREATE)
        self.error = None
        data = dict(form)
        if self.preset_patient_id is not None:
            data["patientId"] = self.preset_patient_id

        patient_id = _positive_int(data.get("patientId", data.get("patient_id")))
        medication = (data.get("medicationName") or data.get("medication_name") or "").strip()
        if patient_id is None or self.user_id is None or not medication:
            self.error = REQUIRED_FIELDS_MESSAGE
            raise FormValidationError(REQUIRED_FIELDS_MESSAGE)

        data.update({"patientId": patient_id, "doctorId": self.user_id, "medicationName": medication})
        data.pop("patient_id", None)
        data.pop("medication_name", None)
        if not data.get("nurseId"):
            data["nurseId"] = None
        # Blank optional fields go out as nulls
        prescription = parse_form(PrescriptionCreate, {key: (value if value != "" else None) for key, value in data.items()})

        return await self.mutate(
            ("create", patient_id, medication),
            lambda: self.gateway.post("/prescriptions", json=prescription.to_payload()),
        )

    async def stop(self, prescription_id: int) -> Any:
        return await self._finish(prescription_id, Action.STOP, PrescriptionStatus.STOPPED, "stop")

    async def complete(self, prescription_id: int) -> Any:
        return await self._finish(prescription_id, Action.COMPLETE, PrescriptionStatus.COMPLETED, "complete")

    async def _finish(self, prescription_id: int, action: Action, target: PrescriptionStatus, verb: str) -> Any:
        prescription = self._prescription(prescription_id)
        edge = self.check_transition(EntityType.PRESCRIPTION, action, prescription.status, target)

        async def call():
            result = await self.gateway.put(f"/prescriptions/{prescription_id}/{verb}")
            self.machine(EntityType.PRESCRIPTION).fire(edge.source, edge.target, prescription)
            return result

        return await self.mutate((verb, prescription_id), call)

    def view(self) -> Dict[str, Any]:
        data = super().view()
        data.update({
            "can_create": self.can(EntityType.PRESCRIPTION, Action.CREATE),
            "can_search": self.can(EntityType.PRESCRIPTION, Action.SEARCH),
            "preset_patient": self.preset_patient,
            "search_patient_id": self.search_patient_id,
            "nurses": [nurse.model_dump(mode="json", by_alias=True) for nurse in self.nurses],
            "prescriptions": [
                {
                    "record": prescription.model_dump(mode="json", by_alias=True),
                    "controls": [
                        c.as_dict() for c in self.controls_for(EntityType.PRESCRIPTION, prescription.status)
                    ],
                }
                for prescription in self.prescriptions
            ],
        })
        return data
