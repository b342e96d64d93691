"""
Patients screen: the patient list plus the doctor -> reception registration
request workflow.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

from meditrack.exceptions import FormValidationError
from meditrack.schemas import (
    Action,
    EntityType,
    PatientCreate,
    PatientOut,
    PatientRequestCreate,
    PatientRequestDecision,
    PatientRequestOut,
    PatientRequestStatus,
    PatientStatus,
    ScreenKey,
)
from meditrack.services.permission_service import ListScope

from .base import Control, Screen, parse_form, rows

logger = logging.getLogger(__name__)

NavigateHandler = Callable[[ScreenKey, Optional[Dict[str, Any]]], None]

# Requests reception still has to act on
OPEN_REQUEST_STATUSES = (PatientRequestStatus.PENDING, PatientRequestStatus.APPROVED)


class PatientsScreen(Screen):
    key = ScreenKey.PATIENTS

    def __init__(self, *args, on_navigate: Optional[NavigateHandler] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.on_navigate = on_navigate
        self.patients: List[PatientOut] = []
        self.requests: List[PatientRequestOut] = []
        self._patients_stale = False

    # ---------- Role checks ----------

    @property
    def is_doctor(self) -> bool:
        return self.can(EntityType.PATIENT_REQUEST, Action.CREATE)

    @property
    def processes_requests(self) -> bool:
        return self.can(EntityType.PATIENT_REQUEST, Action.APPROVE)

    # ---------- Lifecycle ----------

    async def mount(self) -> None:
        self.machine(EntityType.PATIENT_REQUEST).on_enter(PatientRequestStatus.REGISTERED, self._on_registered)
        await super().mount()

    def unmount(self) -> None:
        self.machine(EntityType.PATIENT_REQUEST).remove_hook(PatientRequestStatus.REGISTERED, self._on_registered)
        super().unmount()

    def _on_registered(self, source, target, record) -> None:
        # A registered request has produced a new patient server side
        logger.info("Patient request registered, patient list is stale")
        self._patients_stale = True

    async def refresh(self) -> None:
        await asyncio.gather(self.fetch_patients(), self.fetch_requests())

    async def fetch_patients(self) -> bool:
        self._patients_stale = False
        return await self.fetch(self._load_patients, self._set_patients)

    async def fetch_requests(self) -> bool:
        if self.scope(EntityType.PATIENT_REQUEST) == ListScope.NONE:
            self.requests = []
            return False
        return await self.fetch(self._load_requests, self._set_requests)

    async def _load_patients(self) -> List[PatientOut]:
        if self.scope(EntityType.PATIENT) == ListScope.DOCTOR and self.user_id is not None:
            payload = await self.gateway.get(f"/patients/doctor/{self.user_id}")
        else:
            payload = await self.gateway.get("/patients")
        return rows(PatientOut, payload)

    async def _load_requests(self) -> List[PatientRequestOut]:
        if self.scope(EntityType.PATIENT_REQUEST) == ListScope.DOCTOR:
            if self.user_id is None:
                return []
            return rows(PatientRequestOut, await self.gateway.get("/patient-requests", doctorId=self.user_id))

        found: List[PatientRequestOut] = []
        for status in OPEN_REQUEST_STATUSES:
            found.extend(rows(PatientRequestOut, await self.gateway.get("/patient-requests", status=status.value)))
        return found

    def _set_patients(self, patients) -> None:
        self.patients = list(patients)

    def _set_requests(self, requests) -> None:
        self.requests = list(requests)

    async def _refresh_after_request(self) -> None:
        if self._patients_stale:
            await asyncio.gather(self.fetch_requests(), self.fetch_patients())
        else:
            await self.fetch_requests()

    # ---------- Lookups ----------

    def _patient(self, patient_id: int) -> PatientOut:
        for patient in self.patients:
            if patient.id == patient_id:
                return patient
        raise FormValidationError(f"Patient {patient_id} is not on this screen")

    def _request(self, request_id: int) -> PatientRequestOut:
        for request in self.requests:
            if request.id == request_id:
                return request
        raise FormValidationError(f"Patient request {request_id} is not on this screen")

    # ---------- Patients ----------

    async def register_patient(self, form: Dict[str, Any]) -> Any:
        """Direct registration (ADMIN/RECEPTIONIST)"""
        self.require(EntityType.PATIENT, Action.CREATE)
        patient = parse_form(PatientCreate, form)
        return await self.mutate(
            ("register", patient.name),
            lambda: self.gateway.post("/patients", json=patient.to_payload()),
            refetch=self.fetch_patients,
        )

    async def discharge(self, patient_id: int) -> Any:
        patient = self._patient(patient_id)
        edge = self.check_transition(EntityType.PATIENT, Action.DISCHARGE, patient.status, PatientStatus.DISCHARGED)

        async def call():
            result = await self.gateway.put(f"/patients/{patient_id}/discharge")
            self.machine(EntityType.PATIENT).fire(edge.source, edge.target, patient)
            return result

        return await self.mutate(("discharge", patient_id), call, refetch=self.fetch_patients)

    def open_prescriptions(self, patient_id: int) -> Dict[str, Any]:
        """Jump to the prescriptions screen preset to one patient (DOCTOR)"""
        self.require(EntityType.PRESCRIPTION, Action.CREATE)
        patient = self._patient(patient_id)
        context = {"patientId": patient.id, "patientName": patient.name}
        if self.on_navigate is not None:
            self.on_navigate(ScreenKey.PRESCRIPTIONS, context)
        return context

    # ---------- Requests ----------

    async def file_request(self, form: Dict[str, Any]) -> Any:
        """Doctor asks reception/admin to register a patient"""
        self.require(EntityType.PATIENT_REQUEST, Action.CREATE)
        request = parse_form(PatientRequestCreate, {**form, "requestedByDoctorId": self.user_id})
        return await self.mutate(
            ("file_request", request.patient_name),
            lambda: self.gateway.post("/patient-requests", json=request.to_payload()),
            refetch=self.fetch_requests,
        )

    async def approve(self, request_id: int, remarks: str = "") -> Any:
        return await self._decide(request_id, Action.APPROVE, PatientRequestStatus.APPROVED, "approve", remarks)

    async def reject(self, request_id: int, remarks: str) -> Any:
        if not (remarks or "").strip():
            raise FormValidationError("Rejection reason is required")
        return await self._decide(request_id, Action.REJECT, PatientRequestStatus.REJECTED, "reject", remarks)

    async def mark_registered(self, request_id: int) -> Any:
        request = self._request(request_id)
        edge = self.check_transition(
            EntityType.PATIENT_REQUEST, Action.MARK_REGISTERED, request.status, PatientRequestStatus.REGISTERED
        )

        async def call():
            result = await self.gateway.put(
                f"/patient-requests/{request_id}/registered",
                params={"processedByUserId": self.user_id},
            )
            self.machine(EntityType.PATIENT_REQUEST).fire(edge.source, edge.target, request)
            return result

        return await self.mutate(("registered", request_id), call, refetch=self._refresh_after_request)

    async def _decide(self, request_id: int, action: Action, target: PatientRequestStatus, verb: str, remarks: str) -> Any:
        request = self._request(request_id)
        edge = self.check_transition(EntityType.PATIENT_REQUEST, action, request.status, target)
        decision = PatientRequestDecision(processed_by_user_id=self.user_id, remarks=remarks or "")

        async def call():
            result = await self.gateway.put(f"/patient-requests/{request_id}/{verb}", json=decision.to_payload())
            self.machine(EntityType.PATIENT_REQUEST).fire(edge.source, edge.target, request)
            return result

        return await self.mutate((verb, request_id), call, refetch=self._refresh_after_request)

    # ---------- View ----------

    def patient_controls(self, patient: PatientOut) -> List[Control]:
        controls = self.controls_for(EntityType.PATIENT, patient.status)
        if self.can(EntityType.PRESCRIPTION, Action.CREATE):
            controls.append(Control(Action.CREATE, "Prescribe"))
        return controls

    def view(self) -> Dict[str, Any]:
        data = super().view()
        data.update({
            "can_register_patient": self.can(EntityType.PATIENT, Action.CREATE),
            "can_file_request": self.is_doctor,
            "requests_title": "Pending Patient Requests" if self.processes_requests else "My Patient Requests",
            "patients": [
                {
                    "record": patient.model_dump(mode="json", by_alias=True),
                    "controls": [c.as_dict() for c in self.patient_controls(patient)],
                }
                for patient in self.patients
            ],
            "requests": [
                {
                    "record": request.model_dump(mode="json", by_alias=True),
                    "controls": [
                        c.as_dict() for c in self.controls_for(EntityType.PATIENT_REQUEST, request.status)
                    ],
                }
                for request in self.requests
            ],
        })
        return data
