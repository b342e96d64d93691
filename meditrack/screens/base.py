"""
Screen controller base: fetch on mount, fetch after every mutation,
discard whatever arrives after unmount.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Hashable, List, Optional, Set, Type, TypeVar

from pydantic import BaseModel, ValidationError

from meditrack.exceptions import ApiError, ConsoleError, FormValidationError, SessionExpired, TransitionRejected
from meditrack.schemas import Action, EntityType, Role, ScreenKey
from meditrack.services.api_gateway import ApiGateway
from meditrack.services.permission_service import ListScope, PermissionService
from meditrack.services.session_store import SessionContext
from meditrack.services.workflow_service import Edge, WorkflowMachine, WorkflowService

logger = logging.getLogger(__name__)

SessionEndHandler = Callable[[SessionExpired], None]
ModelT = TypeVar("ModelT", bound=BaseModel)


class ScreenState(str, Enum):
    IDLE = "IDLE"
    LOADING = "LOADING"
    LOADED = "LOADED"
    ERRORED = "ERRORED"


@dataclass(frozen=True)
class Control:
    """A button/option the screen offers; `target` is the status it leads to."""
    action: Action
    label: str
    target: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["action"] = self.action.value
        return data


def parse_form(model: Type[ModelT], data: Dict[str, Any]) -> ModelT:
    """Validate raw form input, turning pydantic errors into a form message"""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or "form"
        raise FormValidationError(f"{field}: {first.get('msg')}") from exc


def parse_status(states: Type[Enum], value) -> Enum:
    try:
        return value if isinstance(value, states) else states(str(value).upper())
    except ValueError as exc:
        raise FormValidationError(f"Unknown status: {value}") from exc


class Screen:
    """
    Common lifecycle of every console screen.

    `state` walks IDLE -> LOADING -> LOADED | ERRORED and re-enters LOADING
    on every refetch. `error` holds the last error only; it is cleared when
    the next fetch starts.
    """

    key: ScreenKey = ScreenKey.HOME

    def __init__(
        self,
        session: SessionContext,
        gateway: ApiGateway,
        machines: Optional[Dict[EntityType, WorkflowMachine]] = None,
        on_session_end: Optional[SessionEndHandler] = None,
    ):
        self.session = session
        self.gateway = gateway
        self.machines = machines if machines is not None else WorkflowService.build_machines()
        self._on_session_end = on_session_end

        self.state = ScreenState.IDLE
        self.error: Optional[str] = None
        self.message: Optional[str] = None

        self._mounted = False
        self._generation = 0
        self._pending = 0
        self._tasks: Set[asyncio.Task] = set()
        self._inflight: Set[Hashable] = set()

    # ---------- Session ----------

    @property
    def role(self) -> Optional[Role]:
        return self.session.role

    @property
    def user_id(self) -> Optional[int]:
        return self.session.user_id

    @property
    def mounted(self) -> bool:
        return self._mounted

    def can(self, entity: EntityType, action: Action, state=None) -> bool:
        return PermissionService.can_perform(self.role, entity, action, state)

    def scope(self, entity: EntityType) -> ListScope:
        return PermissionService.list_scope(self.role, entity)

    def require(self, entity: EntityType, action: Action, state=None) -> None:
        PermissionService.require(self.role, entity, action, state)

    def machine(self, entity: EntityType) -> WorkflowMachine:
        return self.machines[entity]

    def check_transition(self, entity: EntityType, action: Action, current, target) -> Edge:
        """Policy first (PolicyViolation), then the edge table (TransitionRejected)"""
        self.require(entity, action)
        edge = self.machine(entity).transition(current, target, self.role)
        if edge.action != action:
            raise TransitionRejected(
                f"{action.value.replace('_', ' ').capitalize()} does not lead from {edge.source.value} to {edge.target.value}"
            )
        return edge

    def controls_for(self, entity: EntityType, status) -> List[Control]:
        """Transition controls for one record; terminal states yield none"""
        if self.role is None or status is None:
            return []
        machine = self.machine(entity)
        return [
            Control(edge.action, edge.label, edge.target.value)
            for edge in machine.edges_from(status, self.role)
        ]

    # ---------- Lifecycle ----------

    async def mount(self) -> None:
        self._mounted = True
        self._generation += 1
        await self.refresh()

    def unmount(self) -> None:
        """Stop observing: cancel in-flight fetches and drop late responses"""
        self._mounted = False
        self._generation += 1
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self._pending = 0

    async def refresh(self) -> None:
        """Fetch everything the screen shows. Subclasses override."""
        self.state = ScreenState.LOADED

    async def fetch(
        self,
        loader: Callable[[], Awaitable[Any]],
        apply: Callable[[Any], None],
        clear_error: bool = True,
    ) -> bool:
        """
        Run one list fetch as a task owned by this screen.

        `apply` receives the result only if the screen is still mounted (and
        was not remounted) when the response arrives. On failure the list is
        emptied through `apply([])` and the error banner is set.
        Side loads that run after `refresh` pass `clear_error=False` so they
        keep the banner a failed list fetch left behind.
        Returns True when the result was applied.
        """
        if not self._mounted:
            return False

        generation = self._generation
        self.state = ScreenState.LOADING
        if clear_error:
            self.error = None
        self._pending += 1

        task = asyncio.ensure_future(loader())
        self._tasks.add(task)
        try:
            result = await task
        except asyncio.CancelledError:
            if task.cancelled() and generation != self._generation:
                logger.debug("Fetch cancelled on %s after unmount", self.key.value)
                return False
            raise
        except SessionExpired as exc:
            if generation == self._generation:
                self._finish_fetch(error=exc.message)
            self.end_session(exc)
            raise
        except ConsoleError as exc:
            if generation != self._generation:
                return False
            apply([])
            self._finish_fetch(error=exc.message)
            return False
        finally:
            self._tasks.discard(task)

        if generation != self._generation:
            logger.debug("Discarding late response on %s", self.key.value)
            return False

        apply(result)
        self._finish_fetch()
        return True

    def _finish_fetch(self, error: Optional[str] = None) -> None:
        self._pending = max(0, self._pending - 1)
        if error is not None:
            self.error = error
        if self._pending == 0:
            self.state = ScreenState.ERRORED if self.error else ScreenState.LOADED

    async def mutate(
        self,
        key: Hashable,
        call: Callable[[], Awaitable[Any]],
        success_message: Optional[str] = None,
        refetch: Optional[Callable[[], Awaitable[Any]]] = None,
    ) -> Any:
        """
        Issue one mutating call, then refetch the screen (or run `refetch`).

        A second submission with the same key while the first is still in
        flight is ignored and returns None. Failures set the error message
        and propagate so the caller can keep its form open.
        """
        if key in self._inflight:
            logger.info("Ignoring duplicate submission on %s: %s", self.key.value, key)
            return None

        self._inflight.add(key)
        try:
            result = await call()
        except SessionExpired as exc:
            self.end_session(exc)
            raise
        except ConsoleError as exc:
            self.error = exc.message
            raise
        finally:
            self._inflight.discard(key)

        self.error = None
        if success_message:
            self.message = success_message
        if self._mounted:
            await (refetch or self.refresh)()
        return result

    def end_session(self, exc: SessionExpired) -> None:
        logger.info("Session ended while on %s", self.key.value)
        if self._on_session_end is not None:
            self._on_session_end(exc)

    # ---------- View ----------

    def view(self) -> Dict[str, Any]:
        """JSON view model of the screen"""
        return {
            "screen": self.key.value,
            "state": self.state.value,
            "error": self.error,
            "message": self.message,
        }


def rows(model: Type[ModelT], payload: Any) -> List[ModelT]:
    """Validate a list payload into records, tolerating null bodies"""
    try:
        return [model.model_validate(item) for item in (payload or [])]
    except ValidationError as exc:
        logger.warning("Malformed %s rows from the backend: %s", model.__name__, exc.errors()[:1])
        raise ApiError("Unexpected response from the backend", status_code=502) from exc
