"""
Workflow machines: the legal status transitions of every entity and the
roles allowed to trigger each of them.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple, Type

from meditrack.exceptions import TransitionRejected
from meditrack.schemas import (
    Action,
    AlertStatus,
    AppointmentStatus,
    BedStatus,
    EntityType,
    PatientRequestStatus,
    PatientStatus,
    PrescriptionStatus,
    Role,
)

logger = logging.getLogger(__name__)

TransitionHook = Callable[[Any, Any, Any], None]


@dataclass(frozen=True)
class Edge:
    """One legal transition: source -> target via `action`, for `roles`."""
    source: Enum
    target: Enum
    action: Action
    roles: FrozenSet[Role]
    label: str = ""


class WorkflowMachine:
    """
    Finite state machine over one entity's status field.

    States without outgoing edges are terminal. Hooks registered with
    `on_enter` run after a transition into their state has been applied.
    """

    def __init__(self, entity: EntityType, states: Type[Enum], initial: Enum, edges: Iterable[Edge]):
        self.entity = entity
        self.states = states
        self.initial = initial
        self.edges: Tuple[Edge, ...] = tuple(edges)
        self._hooks: Dict[Enum, List[TransitionHook]] = {}

        for edge in self.edges:
            if edge.source not in states or edge.target not in states:
                raise ValueError(f"{entity.value}: edge {edge} uses a foreign state")

    def __repr__(self) -> str:
        return f"<WorkflowMachine({self.entity.value}, edges={len(self.edges)})>"

    def coerce(self, state) -> Enum:
        return state if isinstance(state, self.states) else self.states(state)

    @property
    def terminal_states(self) -> FrozenSet[Enum]:
        sources = {edge.source for edge in self.edges}
        return frozenset(state for state in self.states if state not in sources)

    def is_terminal(self, state) -> bool:
        return self.coerce(state) in self.terminal_states

    def edges_from(self, state, role: Optional[Role] = None) -> List[Edge]:
        """Outgoing edges of a state, optionally restricted to those a role may use"""
        state = self.coerce(state)
        return [
            edge for edge in self.edges
            if edge.source == state and (role is None or role in edge.roles)
        ]

    def find_edge(self, state, target, role: Optional[Role] = None) -> Optional[Edge]:
        target = self.coerce(target)
        for edge in self.edges_from(state, role):
            if edge.target == target:
                return edge
        return None

    def can_transition(self, state, target, role: Role) -> bool:
        return self.find_edge(state, target, role) is not None

    def allows(self, role: Role, action: Action, state=None) -> bool:
        """Whether any edge (from `state`, when given) carries this action for this role"""
        candidates = self.edges if state is None else self.edges_from(state)
        return any(edge.action == action and role in edge.roles for edge in candidates)

    def transition(self, state, target, role: Role) -> Edge:
        """Validate a status change; raises TransitionRejected when no edge exists"""
        source = self.coerce(state)
        target = self.coerce(target)
        edge = self.find_edge(source, target, role)
        if edge is None:
            role_name = role.value if isinstance(role, Role) else role
            raise TransitionRejected(
                f"{self.entity.value.replace('_', ' ').capitalize()} cannot move from "
                f"{source.value} to {target.value} as {role_name}"
            )
        return edge

    def on_enter(self, state, hook: TransitionHook) -> None:
        """Register `hook(source, target, record)` for transitions into `state`"""
        self._hooks.setdefault(self.coerce(state), []).append(hook)

    def remove_hook(self, state, hook: TransitionHook) -> None:
        hooks = self._hooks.get(self.coerce(state), [])
        if hook in hooks:
            hooks.remove(hook)

    def clear_hooks(self) -> None:
        self._hooks.clear()

    def fire(self, source, target, record: Any = None) -> None:
        """Run the hooks registered for `target` after a transition was applied"""
        source = self.coerce(source)
        target = self.coerce(target)
        for hook in self._hooks.get(target, []):
            logger.debug("Running %s hook for %s -> %s", self.entity.value, source.value, target.value)
            hook(source, target, record)


# =========================================================
# MACHINE DEFINITIONS
# =========================================================

_RECEPTION = frozenset({Role.ADMIN, Role.RECEPTIONIST})
_APPOINTMENT_STAFF = frozenset({Role.ADMIN, Role.RECEPTIONIST, Role.DOCTOR})
_DOCTOR = frozenset({Role.DOCTOR})
_DISCHARGERS = frozenset({Role.ADMIN, Role.DOCTOR})
_ADMIN = frozenset({Role.ADMIN})
# Every role whose menu carries the Beds screen
BED_STATUS_ROLES = frozenset({Role.ADMIN, Role.RECEPTIONIST, Role.NURSE})


def _patient_machine() -> WorkflowMachine:
    return WorkflowMachine(
        EntityType.PATIENT,
        PatientStatus,
        PatientStatus.ADMITTED,
        [
            Edge(PatientStatus.ADMITTED, PatientStatus.DISCHARGED, Action.DISCHARGE, _DISCHARGERS, "Discharge"),
        ],
    )


def _patient_request_machine() -> WorkflowMachine:
    return WorkflowMachine(
        EntityType.PATIENT_REQUEST,
        PatientRequestStatus,
        PatientRequestStatus.PENDING,
        [
            Edge(PatientRequestStatus.PENDING, PatientRequestStatus.APPROVED, Action.APPROVE, _RECEPTION, "Approve"),
            Edge(PatientRequestStatus.PENDING, PatientRequestStatus.REJECTED, Action.REJECT, _RECEPTION, "Reject"),
            Edge(PatientRequestStatus.APPROVED, PatientRequestStatus.REGISTERED, Action.MARK_REGISTERED, _RECEPTION, "Mark Registered"),
        ],
    )


def _appointment_machine() -> WorkflowMachine:
    return WorkflowMachine(
        EntityType.APPOINTMENT,
        AppointmentStatus,
        AppointmentStatus.SCHEDULED,
        [
            Edge(AppointmentStatus.SCHEDULED, AppointmentStatus.COMPLETED, Action.CHANGE_STATUS, _APPOINTMENT_STAFF, "Completed"),
            Edge(AppointmentStatus.SCHEDULED, AppointmentStatus.CANCELLED, Action.CHANGE_STATUS, _APPOINTMENT_STAFF, "Cancelled"),
            Edge(AppointmentStatus.SCHEDULED, AppointmentStatus.NO_SHOW, Action.CHANGE_STATUS, _APPOINTMENT_STAFF, "No Show"),
        ],
    )


def _bed_machine() -> WorkflowMachine:
    return WorkflowMachine(
        EntityType.BED,
        BedStatus,
        BedStatus.AVAILABLE,
        [
            Edge(source, target, Action.CHANGE_STATUS, BED_STATUS_ROLES, target.value.capitalize())
            for source in BedStatus
            for target in BedStatus
            if source != target
        ],
    )


def _prescription_machine() -> WorkflowMachine:
    return WorkflowMachine(
        EntityType.PRESCRIPTION,
        PrescriptionStatus,
        PrescriptionStatus.ACTIVE,
        [
            Edge(PrescriptionStatus.ACTIVE, PrescriptionStatus.COMPLETED, Action.COMPLETE, _DOCTOR, "Complete"),
            Edge(PrescriptionStatus.ACTIVE, PrescriptionStatus.STOPPED, Action.STOP, _DOCTOR, "Stop"),
        ],
    )


def _alert_machine() -> WorkflowMachine:
    return WorkflowMachine(
        EntityType.ALERT,
        AlertStatus,
        AlertStatus.OPEN,
        [
            Edge(AlertStatus.OPEN, AlertStatus.RESOLVED, Action.RESOLVE, _ADMIN, "Resolve"),
        ],
    )


def _build_machines() -> Dict[EntityType, WorkflowMachine]:
    return {
        machine.entity: machine
        for machine in (
            _patient_machine(),
            _patient_request_machine(),
            _appointment_machine(),
            _bed_machine(),
            _prescription_machine(),
            _alert_machine(),
        )
    }


# Shared, hook-free machines for pure lookups
MACHINES: Dict[EntityType, WorkflowMachine] = _build_machines()


class WorkflowService:
    """Uniform access to the machines for screens and the policy table"""

    @staticmethod
    def machine_for(entity: EntityType) -> Optional[WorkflowMachine]:
        return MACHINES.get(EntityType(entity))

    @staticmethod
    def build_machines() -> Dict[EntityType, WorkflowMachine]:
        """Fresh machines with no hooks, one set per console"""
        return _build_machines()
