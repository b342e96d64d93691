"""
Shared fixtures: an in-process fake of the hospital REST backend, served to
the console through httpx.MockTransport, and a throwaway session database.
"""
import asyncio
import datetime
import json
from typing import Any, Dict, List, Optional

import httpx
import jwt
import pytest
from sqlalchemy.pool import NullPool

from meditrack.console import Console
from meditrack.db import init_models, make_engine, make_sessionmaker
from meditrack.security import new_session_key
from meditrack.services.api_gateway import ApiGateway
from meditrack.services.session_store import SessionStore

BACKEND_URL = "http://backend.test/api"
PASSWORD = "secret"
TOKEN_SECRET = "fake-backend-secret"

STAFF = [
    {"id": 1, "name": "Alice Admin", "email": "admin@hospital.com", "role": "ADMIN"},
    {"id": 2, "name": "Dr. Dan", "email": "doctor@hospital.com", "role": "DOCTOR"},
    {"id": 4, "name": "Rita Reception", "email": "reception@hospital.com", "role": "RECEPTIONIST"},
    {"id": 5, "name": "Leo Lab", "email": "lab@hospital.com", "role": "LAB_TECHNICIAN"},
    {"id": 6, "name": "Dr. Eve", "email": "doctor2@hospital.com", "role": "DOCTOR"},
    {"id": 7, "name": "Nina Nurse", "email": "nurse@hospital.com", "role": "NURSE"},
]


def make_token(user_id: int, role: str, expires_in: int = 3600) -> str:
    exp = datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(seconds=expires_in)
    return jwt.encode({"id": user_id, "role": role, "exp": exp}, TOKEN_SECRET, algorithm="HS256")


class Hold:
    """Parks every request to one path until released."""

    def __init__(self):
        self.arrived = asyncio.Event()
        self.release = asyncio.Event()


class FakeBackend:
    """
    Minimal in-memory rendition of the hospital REST API.

    Requests without a known bearer token get a 401, except the public
    login/register/department routes.
    """

    PUBLIC = ("/auth/login", "/auth/register", "/departments")

    def __init__(self):
        self.users: List[Dict[str, Any]] = [dict(user, password=PASSWORD) for user in STAFF]
        self.departments = [{"id": 1, "name": "Cardiology"}, {"id": 2, "name": "Emergency"}]
        self.patients = [
            {"id": 1, "name": "John Doe", "age": 54, "gender": "MALE", "status": "ADMITTED", "doctorId": 2},
            {"id": 2, "name": "Mary Major", "age": 31, "gender": "FEMALE", "status": "ADMITTED", "doctorId": 6},
        ]
        self.requests: List[Dict[str, Any]] = []
        self.appointments = [
            {
                "id": 1, "patient": {"id": 1, "name": "John Doe"}, "doctor": {"id": 2, "name": "Dr. Dan"},
                "appointmentDate": "2026-10-20", "appointmentTime": "09:00", "status": "SCHEDULED",
            },
            {
                "id": 2, "patient": {"id": 2, "name": "Mary Major"}, "doctor": {"id": 6, "name": "Dr. Eve"},
                "appointmentDate": "2026-10-21", "appointmentTime": "11:30", "status": "SCHEDULED",
            },
        ]
        self.beds = [
            {"id": 1, "bedNumber": "A-101", "ward": {"id": 1, "name": "General"}, "status": "AVAILABLE"},
            {"id": 2, "bedNumber": "A-102", "ward": {"id": 1, "name": "General"}, "status": "OCCUPIED"},
        ]
        self.prescriptions = [
            {
                "id": 1, "patient": {"id": 1, "name": "John Doe"},
                "prescribedByDoctor": {"id": 2, "name": "Dr. Dan"},
                "assignedNurse": {"id": 7, "name": "Nina Nurse"},
                "medicationName": "Amoxicillin", "dosage": "500mg", "status": "ACTIVE",
            },
        ]
        self.attendance = [
            {"id": 1, "user": {"id": 7, "name": "Nina Nurse"}, "date": "2026-10-18", "status": "PRESENT"},
            {"id": 2, "user": {"id": 2, "name": "Dr. Dan"}, "date": "2026-10-18", "status": "LATE"},
        ]
        self.alerts = [
            {"id": 1, "type": "BED_FULL", "severity": "HIGH", "message": "Ward A is full", "resolved": False},
        ]

        self.tokens: Dict[str, Dict[str, Any]] = {}
        self.calls: List[httpx.Request] = []
        self.failures: Dict[str, tuple] = {}
        self.holds: Dict[str, Hold] = {}
        self._ids = 100

    # ---------- Test controls ----------

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def gateway(self, token_provider=lambda: None) -> ApiGateway:
        return ApiGateway(token_provider, base_url=BACKEND_URL, transport=self.transport())

    def fail(self, path: str, status: int, payload: Any = None) -> None:
        self.failures[path] = (status, payload)

    def hold(self, path: str) -> Hold:
        self.holds[path] = Hold()
        return self.holds[path]

    def calls_to(self, method: str, path: str) -> List[httpx.Request]:
        return [c for c in self.calls if c.method == method and self._path(c) == path]

    def user(self, user_id: int) -> Dict[str, Any]:
        return next(u for u in self.users if u["id"] == user_id)

    # ---------- Dispatch ----------

    @staticmethod
    def _path(request: httpx.Request) -> str:
        path = request.url.path
        return path[len("/api"):] if path.startswith("/api") else path

    def _next_id(self) -> int:
        self._ids += 1
        return self._ids

    def _ref(self, user_id) -> Optional[Dict[str, Any]]:
        if user_id is None:
            return None
        user = self.user(int(user_id))
        return {"id": user["id"], "name": user["name"]}

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        path = self._path(request)

        hold = self.holds.get(path)
        if hold is not None:
            hold.arrived.set()
            await hold.release.wait()

        if path in self.failures:
            status, payload = self.failures[path]
            return httpx.Response(status, json=payload)

        if not path.startswith(self.PUBLIC):
            auth = request.headers.get("authorization", "")
            if not auth.startswith("Bearer ") or auth[len("Bearer "):] not in self.tokens:
                return httpx.Response(401, json={"message": "Full authentication is required"})

        body = json.loads(request.content) if request.content else None
        params = request.url.params
        parts = [p for p in path.split("/") if p]
        return self._route(request.method, parts, params, body)

    def _route(self, method: str, parts: List[str], params, body) -> httpx.Response:
        head = parts[0]
        rest = parts[1:]

        if head == "auth":
            return self._auth(rest[0], body)
        if head == "departments":
            return httpx.Response(200, json=self.departments)
        if head == "users":
            role = params.get("role")
            users = [
                {k: v for k, v in u.items() if k != "password"}
                for u in self.users if role is None or u["role"] == role
            ]
            return httpx.Response(200, json=users)

        handler = getattr(self, f"_{head.replace('-', '_')}", None)
        if handler is None:
            return httpx.Response(404, json={"message": "Not found"})
        return handler(method, rest, params, body)

    def _auth(self, action: str, body) -> httpx.Response:
        if action == "login":
            user = next((u for u in self.users if u["email"] == body.get("email")), None)
            if user is None or user["password"] != body.get("password"):
                return httpx.Response(401, json={"message": "Bad credentials"})
            token = make_token(user["id"], user["role"])
            self.tokens[token] = user
            return httpx.Response(200, json={"token": token, "name": user["name"], "role": user["role"], "id": user["id"]})

        if any(u["email"] == body.get("email") for u in self.users):
            return httpx.Response(400, json={"message": "Email already registered"})
        user = dict(body, id=self._next_id())
        self.users.append(user)
        return httpx.Response(201, json={k: v for k, v in user.items() if k != "password"})

    @staticmethod
    def _find(records, record_id) -> Optional[Dict[str, Any]]:
        return next((r for r in records if r["id"] == int(record_id)), None)

    def _patients(self, method, rest, params, body) -> httpx.Response:
        if method == "GET" and not rest:
            return httpx.Response(200, json=self.patients)
        if method == "GET" and rest[0] == "doctor":
            return httpx.Response(200, json=[p for p in self.patients if p.get("doctorId") == int(rest[1])])
        if method == "POST":
            patient = dict(body, id=self._next_id(), status="ADMITTED")
            self.patients.append(patient)
            return httpx.Response(201, json=patient)
        patient = self._find(self.patients, rest[0])
        if patient is None:
            return httpx.Response(404, json={"message": "Patient not found"})
        patient["status"] = "DISCHARGED"
        return httpx.Response(200, json=patient)

    def _patient_requests(self, method, rest, params, body) -> httpx.Response:
        if method == "GET":
            found = self.requests
            if params.get("status"):
                found = [r for r in found if r["status"] == params["status"]]
            if params.get("doctorId"):
                found = [r for r in found if r["requestedByDoctor"]["id"] == int(params["doctorId"])]
            return httpx.Response(200, json=found)
        if method == "POST":
            request = {
                "id": self._next_id(),
                "patientName": body["patientName"],
                "age": body.get("age"),
                "gender": body.get("gender"),
                "conditionSummary": body.get("conditionSummary"),
                "requestedByDoctor": self._ref(body.get("requestedByDoctorId")),
                "status": "PENDING",
            }
            self.requests.append(request)
            return httpx.Response(201, json=request)

        request = self._find(self.requests, rest[0])
        verb = rest[1]
        if verb == "approve":
            request.update(status="APPROVED", remarks=body.get("remarks"))
        elif verb == "reject":
            request.update(status="REJECTED", remarks=body.get("remarks"))
        else:
            request["status"] = "REGISTERED"
            self.patients.append({
                "id": self._next_id(),
                "name": request["patientName"],
                "age": request.get("age"),
                "gender": request.get("gender"),
                "status": "ADMITTED",
                "doctorId": request["requestedByDoctor"]["id"],
            })
        return httpx.Response(200, json=request)

    def _appointments(self, method, rest, params, body) -> httpx.Response:
        if method == "GET" and not rest:
            return httpx.Response(200, json=self.appointments)
        if method == "GET":
            return httpx.Response(200, json=[a for a in self.appointments if a["doctor"]["id"] == int(rest[1])])
        if method == "POST":
            appointment_id = self._next_id()
            self.appointments.append({
                "id": appointment_id,
                "patient": {"id": body["patientId"]},
                "doctor": self._ref(body["doctorId"]),
                "appointmentDate": body["appointmentDate"],
                "appointmentTime": body["appointmentTime"],
                "reason": body.get("reason"),
                "status": "SCHEDULED",
            })
            # Like the real service, answers with the id only
            return httpx.Response(201, json={"id": appointment_id})
        appointment = self._find(self.appointments, rest[0])
        appointment["status"] = params["status"]
        return httpx.Response(200, json=appointment)

    def _beds(self, method, rest, params, body) -> httpx.Response:
        if method == "GET":
            return httpx.Response(200, json=self.beds)
        if method == "POST":
            if any(b["bedNumber"] == body["bedNumber"] for b in self.beds):
                return httpx.Response(400, json={"message": "Bed number already exists"})
            bed = {"id": self._next_id(), "bedNumber": body["bedNumber"], "status": body.get("status", "AVAILABLE")}
            self.beds.append(bed)
            return httpx.Response(201, json=bed)
        bed = self._find(self.beds, rest[0])
        bed["status"] = params["status"]
        return httpx.Response(200, json=bed)

    def _prescriptions(self, method, rest, params, body) -> httpx.Response:
        if method == "GET":
            field = {"doctor": "prescribedByDoctor", "nurse": "assignedNurse", "patient": "patient"}[rest[0]]
            found = [p for p in self.prescriptions if (p.get(field) or {}).get("id") == int(rest[1])]
            return httpx.Response(200, json=found)
        if method == "POST":
            prescription = {
                "id": self._next_id(),
                "patient": {"id": body["patientId"]},
                "prescribedByDoctor": self._ref(body["doctorId"]),
                "assignedNurse": self._ref(body.get("nurseId")),
                "medicationName": body["medicationName"],
                "dosage": body.get("dosage"),
                "status": "ACTIVE",
            }
            self.prescriptions.append(prescription)
            return httpx.Response(201, json=prescription)
        prescription = self._find(self.prescriptions, rest[0])
        prescription["status"] = "STOPPED" if rest[1] == "stop" else "COMPLETED"
        return httpx.Response(200, json=prescription)

    def _attendance(self, method, rest, params, body) -> httpx.Response:
        if method == "GET":
            found = self.attendance
            if params.get("userId"):
                found = [a for a in found if a["user"]["id"] == int(params["userId"])]
            return httpx.Response(200, json=found)
        user_id = int(rest[1])
        today = datetime.date.today().isoformat()
        record = next((a for a in self.attendance if a["user"]["id"] == user_id and a["date"] == today), None)
        if rest[0] == "checkin":
            if record is not None:
                return httpx.Response(400, json={"message": "Already checked in today"})
            record = {"id": self._next_id(), "user": self._ref(user_id), "date": today, "checkInTime": "08:00", "status": "PRESENT"}
            self.attendance.append(record)
            return httpx.Response(201, json=record)
        if record is None:
            return httpx.Response(400, json={"message": "No check-in found for today"})
        record["checkOutTime"] = "17:00"
        return httpx.Response(200, json=record)

    def _alerts(self, method, rest, params, body) -> httpx.Response:
        if method == "GET":
            return httpx.Response(200, json=self.alerts)
        if method == "POST":
            alert = dict(body, id=self._next_id(), resolved=False)
            self.alerts.append(alert)
            return httpx.Response(201, json=alert)
        alert = self._find(self.alerts, rest[0])
        alert["resolved"] = True
        return httpx.Response(200, json=alert)


# =========================================================
# FIXTURES
# =========================================================

@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def session_db(tmp_path):
    """Sessionmaker over a fresh SQLite file with the session table created"""
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'session.db'}", poolclass=NullPool)
    asyncio.run(init_models(engine))
    return make_sessionmaker(engine)


@pytest.fixture
def console_for(backend, session_db):
    """Async factory: a Console signed in as the given email"""

    async def factory(email: Optional[str] = None, key: Optional[str] = None) -> Console:
        store = SessionStore(session_db, key or new_session_key())
        await store.load()
        console = Console(store, backend.gateway(lambda: store.token))
        if email is not None:
            await console.login(email, PASSWORD)
        return console

    return factory
