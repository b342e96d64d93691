from __future__ import annotations

from typing import Any, Dict, List

from meditrack.exceptions import FormValidationError
from meditrack.schemas import (
    Action,
    AppointmentCreate,
    AppointmentOut,
    AppointmentStatus,
    EntityType,
    Role,
    ScreenKey,
    UserOut,
)
from meditrack.services.permission_service import ListScope

from .base import Screen, parse_form, parse_status, rows


class AppointmentsScreen(Screen):
    """Booking form (reception/admin) and per-appointment status changes."""

    key = ScreenKey.APPOINTMENTS

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.appointments: List[AppointmentOut] = []
        self.doctors: List[UserOut] = []

    @property
    def can_book(self) -> bool:
        return self.can(EntityType.APPOINTMENT, Action.CREATE)

    async def refresh(self) -> None:
        await self.fetch(self._load_appointments, self._set_appointments)

    async def mount(self) -> None:
        await super().mount()
        if self.can_book:
            await self.fetch(self._load_doctors, self._set_doctors, clear_error=False)

    async def _load_appointments(self) -> List[AppointmentOut]:
        if self.scope(EntityType.APPOINTMENT) == ListScope.DOCTOR and self.user_id is not None:
            return rows(AppointmentOut, await self.gateway.get(f"/appointments/doctor/{self.user_id}"))
        return rows(AppointmentOut, await self.gateway.get("/appointments"))

    async def _load_doctors(self) -> List[UserOut]:
        return rows(UserOut, await self.gateway.get("/users", role=Role.DOCTOR.value))

    def _set_appointments(self, appointments) -> None:
        self.appointments = list(appointments)

    def _set_doctors(self, doctors) -> None:
        self.doctors = list(doctors)

    def _appointment(self, appointment_id: int) -> AppointmentOut:
        for appointment in self.appointments:
            if appointment.id == appointment_id:
                return appointment
        raise FormValidationError(f"Appointment {appointment_id} is not on this screen")

    async def book(self, form: Dict[str, Any]) -> AppointmentOut:
        """
        Book an appointment. The new record starts in the machine's initial
        state (SCHEDULED) unless the backend reports otherwise.
        """
        self.require(EntityType.APPOINTMENT, Action.CREATE)
        booking = parse_form(AppointmentCreate, form)
        initial = self.machine(EntityType.APPOINTMENT).initial

        async def call():
            created = await self.gateway.post("/appointments", json=booking.to_payload())
            record = {**booking.to_payload(), **(created if isinstance(created, dict) else {})}
            record.setdefault("id", 0)
            record.setdefault("patient", {"id": booking.patient_id})
            record.setdefault("doctor", {"id": booking.doctor_id})
            record["status"] = record.get("status") or initial.value
            return AppointmentOut.model_validate(record)

        key = ("book", booking.patient_id, booking.doctor_id, booking.appointment_date, booking.appointment_time)
        return await self.mutate(key, call)

    async def change_status(self, appointment_id: int, status) -> Any:
        appointment = self._appointment(appointment_id)
        target = parse_status(AppointmentStatus, status)
        edge = self.check_transition(EntityType.APPOINTMENT, Action.CHANGE_STATUS, appointment.status, target)

        async def call():
            result = await self.gateway.put(f"/appointments/{appointment_id}/status", params={"status": target.value})
            self.machine(EntityType.APPOINTMENT).fire(edge.source, edge.target, appointment)
            return result

        return await self.mutate(("status", appointment_id), call)

    def view(self) -> Dict[str, Any]:
        data = super().view()
        data.update({
            "can_book": self.can_book,
            "doctors": [doctor.model_dump(mode="json", by_alias=True) for doctor in self.doctors],
            "appointments": [
                {
                    "record": appointment.model_dump(mode="json", by_alias=True),
                    "controls": [
                        c.as_dict() for c in self.controls_for(EntityType.APPOINTMENT, appointment.status)
                    ],
                }
                for appointment in self.appointments
            ],
        })
        return data
