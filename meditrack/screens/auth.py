"""
Login and registration screens. Both run without a session.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from meditrack.exceptions import ApiError, AuthenticationFailed, BackendUnavailable, ConsoleError, FormValidationError
from meditrack.schemas import Department, Identity, LoginRequest, LoginResponse, RegisterRequest, REGISTRABLE_ROLES, Shift
from meditrack.security import user_id_from_token
from meditrack.services.api_gateway import ApiGateway
from meditrack.services.session_store import EMPTY_SESSION, SessionStore

from .base import Screen, parse_form, rows

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password!"


class LoginScreen(Screen):
    """Email/password form; a success replaces the session wholly"""

    def __init__(self, store: SessionStore, gateway: ApiGateway):
        super().__init__(EMPTY_SESSION, gateway)
        self.store = store
        self.loading = False

    async def submit(self, email: str, password: str) -> Identity:
        self.error = None
        try:
            credentials = parse_form(LoginRequest, {"email": email, "password": password})
        except FormValidationError as exc:
            self.error = INVALID_CREDENTIALS
            raise AuthenticationFailed(INVALID_CREDENTIALS) from exc

        self.loading = True
        try:
            payload = await self.gateway.post("/auth/login", json=credentials.to_payload())
            response = LoginResponse.model_validate(payload)
        except BackendUnavailable as exc:
            self.error = exc.message
            raise
        except (ApiError, ValueError) as exc:
            logger.info("Login refused for %s", email)
            self.error = INVALID_CREDENTIALS
            raise AuthenticationFailed(INVALID_CREDENTIALS) from exc
        finally:
            self.loading = False

        identity = Identity(
            id=response.id or response.user_id or user_id_from_token(response.token),
            name=response.name or "",
            email=response.email or credentials.email,
            role=response.role,
        )
        self.session = await self.store.login(identity, response.token)
        return identity

    def view(self) -> Dict[str, Any]:
        data = super().view()
        data["loading"] = self.loading
        return data


class RegisterScreen(Screen):
    """Staff self-registration with the department lookup"""

    def __init__(self, gateway: ApiGateway):
        super().__init__(EMPTY_SESSION, gateway)
        self.departments: List[Department] = []
        self.success: Optional[str] = None

    async def refresh(self) -> None:
        await self.fetch(self._load_departments, self._set_departments)

    async def _load_departments(self):
        return rows(Department, await self.gateway.get("/departments"))

    def _set_departments(self, departments) -> None:
        self.departments = list(departments)

    async def submit(self, form: Dict[str, Any]) -> Any:
        self.error = None
        self.success = None
        try:
            request = parse_form(RegisterRequest, form)
            created = await self.gateway.post("/auth/register", json=request.to_payload())
        except ConsoleError as exc:
            self.error = exc.message or "Registration failed! Try again."
            raise
        self.success = "Registered successfully! Redirecting to login..."
        return created

    def view(self) -> Dict[str, Any]:
        data = super().view()
        data.update({
            "success": self.success,
            "departments": [d.model_dump() for d in self.departments],
            "roles": [role.value for role in REGISTRABLE_ROLES],
            "shifts": [shift.value for shift in Shift],
        })
        return data
