"""
Console navigator: owns the session store, the gateway and the one active
screen. Decides what the signed-in role may open and sends the user back to
login when the backend says the session is over.
"""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, TypeVar

from meditrack.exceptions import PolicyViolation, SessionExpired
from meditrack.schemas import Identity, ScreenKey
from meditrack.screens import SCREENS, LoginScreen, PatientsScreen, PrescriptionsScreen, RegisterScreen, Screen
from meditrack.services.api_gateway import ApiGateway
from meditrack.services.permission_service import PermissionService, SCREEN_LABELS
from meditrack.services.session_store import SessionContext, SessionStore
from meditrack.services.workflow_service import WorkflowService

logger = logging.getLogger(__name__)

LOGIN_ROUTE = "login"
DASHBOARD_ROUTE = "dashboard"

T = TypeVar("T")


class Console:
    def __init__(self, store: SessionStore, gateway: ApiGateway):
        self.store = store
        self.gateway = gateway
        self.machines = WorkflowService.build_machines()
        self.screen: Optional[Screen] = None
        self.active = ScreenKey.HOME
        self.prescription_context: Optional[Dict[str, Any]] = None
        self.route = DASHBOARD_ROUTE if store.context.is_authenticated else LOGIN_ROUTE

    @property
    def session(self) -> SessionContext:
        return self.store.context

    def menu(self) -> Tuple[ScreenKey, ...]:
        return PermissionService.menu_for(self.session.role)

    def menu_items(self):
        return [{"key": key.value, "label": SCREEN_LABELS[key]} for key in self.menu()]

    # ---------- Session lifecycle ----------

    async def login(self, email: str, password: str) -> Identity:
        identity = await LoginScreen(self.store, self.gateway).submit(email, password)
        self.route = DASHBOARD_ROUTE
        self.active = ScreenKey.HOME
        return identity

    def register_screen(self) -> RegisterScreen:
        return RegisterScreen(self.gateway)

    async def logout(self) -> None:
        self._close_screen()
        await self.store.logout()
        self.route = LOGIN_ROUTE
        self.active = ScreenKey.HOME

    def _session_ended(self, exc: SessionExpired) -> None:
        self.route = LOGIN_ROUTE

    async def end_session(self) -> None:
        """Treat the session as over: clear it and route to login"""
        logger.info("Redirecting to login after session end")
        await self.logout()

    # ---------- Navigation ----------

    def _close_screen(self) -> None:
        if self.screen is not None:
            self.screen.unmount()
            self.screen = None

    def _build(self, key: ScreenKey, **kwargs) -> Screen:
        common = dict(machines=self.machines, on_session_end=self._session_ended)
        if key == ScreenKey.PATIENTS:
            return PatientsScreen(self.session, self.gateway, on_navigate=self._navigate, **common)
        if key == ScreenKey.PRESCRIPTIONS:
            preset = kwargs.get("preset_patient", self.prescription_context)
            return PrescriptionsScreen(self.session, self.gateway, preset_patient=preset, **common)
        return SCREENS[key](self.session, self.gateway, **common)

    def _navigate(self, key: ScreenKey, payload: Optional[Dict[str, Any]] = None) -> None:
        self.active = key
        if key == ScreenKey.PRESCRIPTIONS:
            self.prescription_context = payload

    async def open(self, key, strict: bool = False, **kwargs) -> Screen:
        """
        Unmount the current screen and mount `key`.

        Screens outside the role's menu fall back to home, or raise
        PolicyViolation when `strict` is set.
        """
        if not self.session.is_authenticated:
            self.route = LOGIN_ROUTE
            raise SessionExpired("Please log in")

        key = ScreenKey(key)
        if key not in self.menu():
            if strict:
                raise PolicyViolation(f"{SCREEN_LABELS[key]} is not available for this role")
            key = ScreenKey.HOME

        self._close_screen()
        self.active = key
        self.screen = self._build(key, **kwargs)
        await self.run(self.screen.mount)
        return self.screen

    async def run(self, action: Callable[..., Awaitable[T]], *args, **kwargs) -> T:
        """Run a screen call; a SessionExpired logs the user out before propagating"""
        try:
            return await action(*args, **kwargs)
        except SessionExpired:
            await self.end_session()
            raise

    def view(self) -> Dict[str, Any]:
        identity = self.session.identity
        return {
            "route": self.route,
            "user": identity.model_dump(mode="json") if identity else None,
            "menu": self.menu_items() if self.session.is_authenticated else [],
            "active": self.active.value,
            "screen": self.screen.view() if self.screen is not None else None,
        }
