import asyncio

import pytest

from meditrack.exceptions import (
    ApiError,
    AuthenticationFailed,
    FormValidationError,
    PolicyViolation,
    SessionExpired,
    TransitionRejected,
)
from meditrack.schemas import AppointmentStatus, ScreenKey
from meditrack.screens import AlertsScreen, BedsScreen, PrescriptionsScreen, ScreenState


def test_login_and_home_cards(console_for):
    async def scenario():
        console = await console_for("doctor@hospital.com")
        await console.open(ScreenKey.HOME)
        return console

    console = asyncio.run(scenario())
    assert console.route == "dashboard"
    view = console.view()
    assert view["user"]["role"] == "DOCTOR"
    assert [item["key"] for item in view["menu"]] == ["home", "patients", "appointments", "attendance", "prescriptions"]
    assert view["screen"]["welcome"] == "Welcome, Dr. Dan!"
    assert [card["key"] for card in view["screen"]["cards"]] == ["patients", "appointments", "attendance", "prescriptions"]


def test_bad_credentials_stay_on_login(console_for, backend):
    async def scenario():
        console = await console_for()
        with pytest.raises(AuthenticationFailed) as excinfo:
            await console.login("doctor@hospital.com", "wrong")
        return console, excinfo.value

    console, error = asyncio.run(scenario())
    assert error.message == "Invalid email or password!"
    assert console.route == "login"
    assert not console.session.is_authenticated


def test_screen_outside_menu_falls_back_to_home(console_for):
    async def scenario():
        console = await console_for("lab@hospital.com")
        screen = await console.open(ScreenKey.BEDS)
        with pytest.raises(PolicyViolation):
            await console.open(ScreenKey.BEDS, strict=True)
        return screen

    screen = asyncio.run(scenario())
    assert screen.key == ScreenKey.HOME


# ---------- Appointments ----------

def test_doctor_gets_no_booking_control(console_for, backend):
    async def scenario():
        console = await console_for("doctor@hospital.com")
        screen = await console.open(ScreenKey.APPOINTMENTS)
        with pytest.raises(PolicyViolation):
            await screen.book({"patientId": 1, "doctorId": 2, "appointmentDate": "2024-05-01", "appointmentTime": "10:00"})
        return screen

    screen = asyncio.run(scenario())
    view = screen.view()
    assert view["can_book"] is False
    assert view["doctors"] == []
    # Only the doctor's own schedule is fetched
    assert [row["record"]["id"] for row in view["appointments"]] == [1]
    assert backend.calls_to("GET", "/appointments/doctor/2")
    assert not backend.calls_to("POST", "/appointments")


def test_reception_booking_starts_scheduled(console_for, backend):
    async def scenario():
        console = await console_for("reception@hospital.com")
        screen = await console.open(ScreenKey.APPOINTMENTS)
        booked = await screen.book({
            "patientId": 5, "doctorId": 2, "appointmentDate": "2024-05-01", "appointmentTime": "10:00",
        })
        return screen, booked

    screen, booked = asyncio.run(scenario())
    assert booked.status == AppointmentStatus.SCHEDULED
    assert booked.patient.id == 5
    assert booked.doctor.id == 2
    assert len(screen.appointments) == 3
    assert [d.name for d in screen.doctors] == ["Dr. Dan", "Dr. Eve"]
    sent = backend.calls_to("POST", "/appointments")[0]
    assert b'"appointmentDate":"2024-05-01"' in sent.content.replace(b" ", b"")


def test_booking_form_is_validated_before_sending(console_for, backend):
    async def scenario():
        console = await console_for("reception@hospital.com")
        screen = await console.open(ScreenKey.APPOINTMENTS)
        with pytest.raises(FormValidationError):
            await screen.book({"patientId": 5, "doctorId": 2, "appointmentDate": "01/05/2024", "appointmentTime": "10:00"})

    asyncio.run(scenario())
    assert not backend.calls_to("POST", "/appointments")


def test_no_show_is_final(console_for, backend):
    async def scenario():
        console = await console_for("admin@hospital.com")
        screen = await console.open(ScreenKey.APPOINTMENTS)
        await screen.change_status(1, "NO_SHOW")
        with pytest.raises(TransitionRejected):
            await screen.change_status(1, "SCHEDULED")
        return screen

    screen = asyncio.run(scenario())
    appointment = next(a for a in screen.appointments if a.id == 1)
    assert appointment.status == AppointmentStatus.NO_SHOW
    row = next(r for r in screen.view()["appointments"] if r["record"]["id"] == 1)
    assert row["controls"] == []
    assert len(backend.calls_to("PUT", "/appointments/1/status")) == 1


# ---------- Attendance ----------

def test_nurse_checks_in_only_for_self(console_for, backend):
    async def scenario():
        console = await console_for("nurse@hospital.com")
        screen = await console.open(ScreenKey.ATTENDANCE)
        await screen.check_in()
        with pytest.raises(PolicyViolation):
            await screen.check_in(8)
        return screen

    screen = asyncio.run(scenario())
    assert screen.message == "Checked in successfully"
    assert backend.calls_to("POST", "/attendance/checkin/7")
    assert not backend.calls_to("POST", "/attendance/checkin/8")
    # Self scope: the report is filtered on the nurse's id
    assert {record.user.id for record in screen.records} == {7}


def test_second_check_in_surfaces_server_message(console_for):
    async def scenario():
        console = await console_for("nurse@hospital.com")
        screen = await console.open(ScreenKey.ATTENDANCE)
        await screen.check_in()
        with pytest.raises(ApiError):
            await screen.check_in()
        return screen

    screen = asyncio.run(scenario())
    assert screen.error == "Already checked in today"


def test_admin_sees_full_report_but_cannot_mark(console_for):
    async def scenario():
        console = await console_for("admin@hospital.com")
        screen = await console.open(ScreenKey.ATTENDANCE)
        with pytest.raises(PolicyViolation):
            await screen.check_in()
        return screen

    screen = asyncio.run(scenario())
    assert len(screen.records) == 2
    assert screen.view()["can_mark"] is False
    assert screen.summary()["LATE"] == 1


# ---------- Session end ----------

def test_cleared_token_routes_back_to_login(console_for, backend):
    async def scenario():
        console = await console_for("doctor@hospital.com")
        screen = await console.open(ScreenKey.APPOINTMENTS)
        await console.store.logout()
        with pytest.raises(SessionExpired):
            await console.run(screen.refresh)
        return console

    console = asyncio.run(scenario())
    last = backend.calls[-1]
    assert "Authorization" not in last.headers
    assert console.route == "login"
    assert console.screen is None
    assert not console.session.is_authenticated


def test_logout_then_open_requires_login(console_for):
    async def scenario():
        console = await console_for("nurse@hospital.com")
        await console.open(ScreenKey.BEDS)
        await console.logout()
        with pytest.raises(SessionExpired):
            await console.open(ScreenKey.BEDS)
        return console

    console = asyncio.run(scenario())
    assert console.route == "login"
    assert console.view()["menu"] == []


def test_session_is_restored_for_the_same_browser(console_for):
    async def scenario():
        first = await console_for("nurse@hospital.com", key="browser-1")
        second = await console_for(key="browser-1")
        return first, second

    first, second = asyncio.run(scenario())
    assert second.route == "dashboard"
    assert second.session.identity == first.session.identity


# ---------- Patients and registration requests ----------

def test_request_round_trip_adds_exactly_one_patient(console_for, backend):
    async def scenario():
        doctor = await console_for("doctor@hospital.com")
        doctor_screen = await doctor.open(ScreenKey.PATIENTS)
        await doctor_screen.file_request({"patientName": "Paul Newman", "age": 40, "gender": "MALE"})
        filed = list(doctor_screen.requests)

        desk = await console_for("reception@hospital.com")
        screen = await desk.open(ScreenKey.PATIENTS)
        before = len(screen.patients)
        request_id = screen.requests[0].id
        await screen.approve(request_id)
        approved = [r.status.value for r in screen.requests]
        await screen.mark_registered(request_id)
        return filed, before, approved, screen

    filed, before, approved, screen = asyncio.run(scenario())
    assert [r.patient_name for r in filed] == ["Paul Newman"]
    assert approved == ["APPROVED"]
    assert len(screen.patients) == before + 1
    assert [p.name for p in screen.patients].count("Paul Newman") == 1
    # Registered requests leave the reception queue
    assert screen.requests == []
    put = backend.calls_to("PUT", f"/patient-requests/{filed[0].id}/registered")[0]
    assert put.url.params["processedByUserId"] == "4"


def test_request_cannot_be_registered_while_pending(console_for, backend):
    async def scenario():
        doctor = await console_for("doctor@hospital.com")
        screen = await doctor.open(ScreenKey.PATIENTS)
        await screen.file_request({"patientName": "Pat Pending"})

        desk = await console_for("reception@hospital.com")
        screen = await desk.open(ScreenKey.PATIENTS)
        with pytest.raises(TransitionRejected):
            await screen.mark_registered(screen.requests[0].id)
        return screen

    screen = asyncio.run(scenario())
    controls = screen.view()["requests"][0]["controls"]
    assert [c["action"] for c in controls] == ["approve", "reject"]


def test_reject_needs_a_reason(console_for, backend):
    async def scenario():
        doctor = await console_for("doctor@hospital.com")
        await (await doctor.open(ScreenKey.PATIENTS)).file_request({"patientName": "Ray Ject"})
        desk = await console_for("admin@hospital.com")
        screen = await desk.open(ScreenKey.PATIENTS)
        request_id = screen.requests[0].id
        with pytest.raises(FormValidationError):
            await screen.reject(request_id, "  ")
        await screen.reject(request_id, "Duplicate record")
        return request_id

    request_id = asyncio.run(scenario())
    assert backend.requests[0]["status"] == "REJECTED"
    assert backend.requests[0]["remarks"] == "Duplicate record"
    assert len(backend.calls_to("PUT", f"/patient-requests/{request_id}/reject")) == 1


def test_doctor_sees_own_patients_and_discharges(console_for, backend):
    async def scenario():
        console = await console_for("doctor@hospital.com")
        screen = await console.open(ScreenKey.PATIENTS)
        names = [p.name for p in screen.patients]
        await screen.discharge(1)
        return names, screen

    names, screen = asyncio.run(scenario())
    assert names == ["John Doe"]
    assert screen.patients[0].status.value == "DISCHARGED"
    view = screen.view()
    assert view["requests_title"] == "My Patient Requests"
    assert view["can_register_patient"] is False
    assert [c["action"] for c in view["patients"][0]["controls"]] == ["create"]


def test_nurse_cannot_discharge(console_for):
    async def scenario():
        console = await console_for("nurse@hospital.com")
        screen = await console.open(ScreenKey.PATIENTS)
        with pytest.raises(PolicyViolation):
            await screen.discharge(1)
        return screen

    screen = asyncio.run(scenario())
    assert screen.requests == []
    assert all(row["controls"] == [] for row in screen.view()["patients"])


def test_reception_registers_patient_directly(console_for, backend):
    async def scenario():
        console = await console_for("reception@hospital.com")
        screen = await console.open(ScreenKey.PATIENTS)
        await screen.register_patient({"name": "Walk In", "age": 22, "gender": "FEMALE"})
        return screen

    screen = asyncio.run(scenario())
    assert "Walk In" in [p.name for p in screen.patients]
    assert screen.view()["requests_title"] == "Pending Patient Requests"


# ---------- Prescriptions ----------

def test_prescribe_from_patient_row_presets_the_patient(console_for, backend):
    async def scenario():
        console = await console_for("doctor@hospital.com")
        patients = await console.open(ScreenKey.PATIENTS)
        patients.open_prescriptions(1)
        screen = await console.open(console.active)
        await screen.create({"patientId": 999, "medicationName": "Ibuprofen", "dosage": "200mg", "nurseId": ""})
        return console, screen

    console, screen = asyncio.run(scenario())
    assert console.active == ScreenKey.PRESCRIPTIONS
    assert screen.preset_patient == {"patientId": 1, "patientName": "John Doe"}
    created = backend.prescriptions[-1]
    assert created["patient"] == {"id": 1}
    assert created["prescribedByDoctor"]["id"] == 2
    assert created["assignedNurse"] is None
    assert [p.medication_name for p in screen.prescriptions] == ["Amoxicillin", "Ibuprofen"]


def test_prescription_needs_patient_and_medication(console_for, backend):
    async def scenario():
        console = await console_for("doctor@hospital.com")
        screen = await console.open(ScreenKey.PRESCRIPTIONS)
        with pytest.raises(FormValidationError) as excinfo:
            await screen.create({"patientId": 1, "medicationName": "   "})
        return screen, excinfo.value

    screen, error = asyncio.run(scenario())
    assert error.message == "Patient ID and medication name are required"
    assert screen.nurses and screen.nurses[0].name == "Nina Nurse"
    assert not backend.calls_to("POST", "/prescriptions")


def test_stopped_prescription_offers_no_controls(console_for):
    async def scenario():
        console = await console_for("doctor@hospital.com")
        screen = await console.open(ScreenKey.PRESCRIPTIONS)
        await screen.stop(1)
        with pytest.raises(TransitionRejected):
            await screen.complete(1)
        return screen

    screen = asyncio.run(scenario())
    assert screen.prescriptions[0].status.value == "STOPPED"
    assert screen.view()["prescriptions"][0]["controls"] == []


def test_nurse_sees_assigned_prescriptions_read_only(console_for):
    async def scenario():
        console = await console_for("nurse@hospital.com")
        screen = PrescriptionsScreen(console.session, console.gateway)
        await screen.mount()
        return screen

    screen = asyncio.run(scenario())
    assert [p.id for p in screen.prescriptions] == [1]
    assert screen.view()["prescriptions"][0]["controls"] == []
    assert screen.view()["can_create"] is False


def test_admin_searches_prescriptions_by_patient(console_for, backend):
    async def scenario():
        console = await console_for("admin@hospital.com")
        screen = PrescriptionsScreen(console.session, console.gateway)
        await screen.mount()
        empty = list(screen.prescriptions)
        with pytest.raises(FormValidationError):
            await screen.search("abc")
        await screen.search("1")
        return empty, screen

    empty, screen = asyncio.run(scenario())
    assert empty == []
    assert [p.id for p in screen.prescriptions] == [1]
    assert backend.calls_to("GET", "/prescriptions/patient/1")


# ---------- Beds and alerts ----------

def test_bed_status_and_summary(console_for):
    async def scenario():
        console = await console_for("nurse@hospital.com")
        screen = await console.open(ScreenKey.BEDS)
        await screen.change_status(1, "maintenance")
        with pytest.raises(PolicyViolation):
            await screen.create_bed({"bedNumber": "B-1"})
        return screen

    screen = asyncio.run(scenario())
    assert screen.summary() == {"AVAILABLE": 0, "OCCUPIED": 1, "MAINTENANCE": 1}
    targets = [c["target"] for c in screen.view()["beds"][0]["controls"]]
    assert targets == ["AVAILABLE", "OCCUPIED"]


def test_duplicate_bed_number_keeps_the_form_open(console_for):
    async def scenario():
        console = await console_for("admin@hospital.com")
        screen = await console.open(ScreenKey.BEDS)
        with pytest.raises(ApiError):
            await screen.create_bed({"bedNumber": "A-101"})
        return screen

    screen = asyncio.run(scenario())
    assert screen.error == "Bed number already exists"
    assert len(screen.beds) == 2


def test_resolved_alert_has_no_controls(console_for, backend):
    async def scenario():
        console = await console_for("admin@hospital.com")
        screen = await console.open(ScreenKey.ALERTS)
        await screen.create({"type": "STAFF_SHORTAGE", "severity": "CRITICAL", "message": "Night shift short"})
        await screen.resolve(1)
        with pytest.raises(TransitionRejected):
            await screen.resolve(1)
        return screen

    screen = asyncio.run(scenario())
    rows = {row["record"]["id"]: row for row in screen.view()["alerts"]}
    assert rows[1]["record"]["status"] == "RESOLVED"
    assert rows[1]["controls"] == []
    assert len(rows) == 2
    assert len(backend.calls_to("PUT", "/alerts/1/resolve")) == 1


# ---------- Fetch lifecycle ----------

def test_failed_fetch_empties_the_list_and_shows_banner(console_for, backend):
    async def scenario():
        console = await console_for("admin@hospital.com")
        backend.fail("/beds", 500, {"message": "Database down"})
        screen = await console.open(ScreenKey.BEDS)
        failed = (screen.state, screen.error, list(screen.beds))
        backend.failures.clear()
        await screen.refresh()
        return failed, screen

    (state, error, beds), screen = asyncio.run(scenario())
    assert state == ScreenState.ERRORED
    assert error == "Database down"
    assert beds == []
    assert screen.state == ScreenState.LOADED
    assert screen.error is None
    assert len(screen.beds) == 2


def test_doctor_directory_keeps_the_appointments_banner(console_for, backend):
    async def scenario():
        console = await console_for("reception@hospital.com")
        backend.fail("/appointments", 500, {"message": "Database down"})
        return await console.open(ScreenKey.APPOINTMENTS)

    screen = asyncio.run(scenario())
    assert screen.state == ScreenState.ERRORED
    assert screen.error == "Database down"
    assert screen.appointments == []
    # The directory still loads so the booking form stays usable
    assert [d.name for d in screen.doctors] == ["Dr. Dan", "Dr. Eve"]
    assert screen.view()["error"] == "Database down"


def test_nurse_directory_keeps_the_prescriptions_banner(console_for, backend):
    async def scenario():
        console = await console_for("doctor@hospital.com")
        backend.fail("/prescriptions/doctor/2", 500, {"message": "Database down"})
        return await console.open(ScreenKey.PRESCRIPTIONS)

    screen = asyncio.run(scenario())
    assert screen.state == ScreenState.ERRORED
    assert screen.error == "Database down"
    assert screen.prescriptions == []
    assert [n.name for n in screen.nurses] == ["Nina Nurse"]


def test_malformed_rows_show_banner(console_for, backend):
    async def scenario():
        console = await console_for("admin@hospital.com")
        backend.fail("/beds", 200, [{"id": 1, "bedNumber": "A-101", "status": "EXPLODED"}])
        return await console.open(ScreenKey.BEDS)

    screen = asyncio.run(scenario())
    assert screen.state == ScreenState.ERRORED
    assert screen.error == "Unexpected response from the backend"
    assert screen.beds == []


def test_response_after_unmount_is_discarded(console_for, backend):
    async def scenario():
        console = await console_for("admin@hospital.com")
        screen = BedsScreen(console.session, console.gateway)
        hold = backend.hold("/beds")
        mounting = asyncio.ensure_future(screen.mount())
        await hold.arrived.wait()
        screen.unmount()
        hold.release.set()
        await mounting
        return screen

    screen = asyncio.run(scenario())
    assert screen.beds == []
    assert screen.error is None
    assert not screen.mounted


def test_duplicate_submission_is_ignored_while_in_flight(console_for, backend):
    async def scenario():
        console = await console_for("admin@hospital.com")
        screen = AlertsScreen(console.session, console.gateway)
        await screen.mount()
        hold = backend.hold("/alerts/1/resolve")
        first = asyncio.ensure_future(screen.resolve(1))
        await hold.arrived.wait()
        second = await screen.resolve(1)
        hold.release.set()
        await first
        return second, screen

    second, screen = asyncio.run(scenario())
    assert second is None
    assert len(backend.calls_to("PUT", "/alerts/1/resolve")) == 1
    assert screen.alerts[0].resolved is True


def test_mutation_refetch_runs_after_the_response(console_for, backend):
    async def scenario():
        console = await console_for("admin@hospital.com")
        screen = await console.open(ScreenKey.BEDS)
        await screen.change_status(2, "AVAILABLE")
        return screen

    asyncio.run(scenario())
    paths = [(c.method, backend._path(c)) for c in backend.calls]
    put_index = paths.index(("PUT", "/beds/2/status"))
    assert ("GET", "/beds") in paths[put_index + 1:]
