"""
Centralized role policy: which screens a role sees and which actions it may
perform on each entity type.
"""
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

from meditrack.exceptions import PolicyViolation
from meditrack.schemas import Action, EntityType, Role, ScreenKey
from meditrack.services.workflow_service import WorkflowService

MENU_BY_ROLE: Dict[Role, Tuple[ScreenKey, ...]] = {
    Role.ADMIN: (
        ScreenKey.HOME, ScreenKey.PATIENTS, ScreenKey.BEDS,
        ScreenKey.APPOINTMENTS, ScreenKey.ATTENDANCE, ScreenKey.ALERTS,
    ),
    Role.RECEPTIONIST: (
        ScreenKey.HOME, ScreenKey.PATIENTS, ScreenKey.APPOINTMENTS, ScreenKey.BEDS,
    ),
    Role.DOCTOR: (
        ScreenKey.HOME, ScreenKey.PATIENTS, ScreenKey.APPOINTMENTS,
        ScreenKey.ATTENDANCE, ScreenKey.PRESCRIPTIONS,
    ),
    Role.NURSE: (
        ScreenKey.HOME, ScreenKey.PATIENTS, ScreenKey.BEDS, ScreenKey.ATTENDANCE,
    ),
    Role.LAB_TECHNICIAN: (
        ScreenKey.HOME, ScreenKey.ATTENDANCE,
    ),
}

DEFAULT_MENU: Tuple[ScreenKey, ...] = (ScreenKey.HOME,)

SCREEN_LABELS: Dict[ScreenKey, str] = {
    ScreenKey.HOME: "Home",
    ScreenKey.PATIENTS: "Patients",
    ScreenKey.BEDS: "Beds",
    ScreenKey.APPOINTMENTS: "Appointments",
    ScreenKey.ATTENDANCE: "Attendance",
    ScreenKey.ALERTS: "Alerts",
    ScreenKey.PRESCRIPTIONS: "Prescriptions",
}

SCREEN_DESCRIPTIONS: Dict[ScreenKey, str] = {
    ScreenKey.PATIENTS: "Patient registration / clinical workflow",
    ScreenKey.BEDS: "Bed occupancy and ward status",
    ScreenKey.APPOINTMENTS: "Appointment operations",
    ScreenKey.ATTENDANCE: "Shift attendance tracking",
    ScreenKey.ALERTS: "Critical system alerts",
    ScreenKey.PRESCRIPTIONS: "Medication orders and prescriptions",
}


# Actions that are not status transitions: creation, lookups, self-service.
# Transition actions are answered by the workflow machines.
ACTION_ROLES: Dict[Tuple[EntityType, Action], FrozenSet[Role]] = {
    (EntityType.PATIENT, Action.CREATE): frozenset({Role.ADMIN, Role.RECEPTIONIST}),
    (EntityType.PATIENT_REQUEST, Action.CREATE): frozenset({Role.DOCTOR}),
    (EntityType.APPOINTMENT, Action.CREATE): frozenset({Role.ADMIN, Role.RECEPTIONIST}),
    (EntityType.BED, Action.CREATE): frozenset({Role.ADMIN}),
    (EntityType.PRESCRIPTION, Action.CREATE): frozenset({Role.DOCTOR}),
    (EntityType.PRESCRIPTION, Action.SEARCH): frozenset({Role.ADMIN}),
    (EntityType.ALERT, Action.CREATE): frozenset({Role.ADMIN}),
    (EntityType.ATTENDANCE, Action.CHECK_IN): frozenset({Role.DOCTOR, Role.NURSE, Role.LAB_TECHNICIAN}),
    (EntityType.ATTENDANCE, Action.CHECK_OUT): frozenset({Role.DOCTOR, Role.NURSE, Role.LAB_TECHNICIAN}),
}


class ListScope(str, Enum):
    """Which slice of an entity list a role is shown"""
    ALL = "all"
    DOCTOR = "doctor"
    NURSE = "nurse"
    SELF = "self"
    OPEN = "open"
    SEARCH = "search"
    NONE = "none"


LIST_SCOPES: Dict[EntityType, Dict[Role, ListScope]] = {
    EntityType.PATIENT: {Role.DOCTOR: ListScope.DOCTOR},
    EntityType.PATIENT_REQUEST: {
        Role.DOCTOR: ListScope.DOCTOR,
        Role.ADMIN: ListScope.OPEN,
        Role.RECEPTIONIST: ListScope.OPEN,
    },
    EntityType.APPOINTMENT: {Role.DOCTOR: ListScope.DOCTOR},
    EntityType.PRESCRIPTION: {
        Role.DOCTOR: ListScope.DOCTOR,
        Role.NURSE: ListScope.NURSE,
        Role.ADMIN: ListScope.SEARCH,
    },
    EntityType.ATTENDANCE: {Role.ADMIN: ListScope.ALL},
}

# Scope for roles not listed above
DEFAULT_SCOPES: Dict[EntityType, ListScope] = {
    EntityType.PATIENT: ListScope.ALL,
    EntityType.PATIENT_REQUEST: ListScope.NONE,
    EntityType.APPOINTMENT: ListScope.ALL,
    EntityType.PRESCRIPTION: ListScope.NONE,
    EntityType.ATTENDANCE: ListScope.SELF,
    EntityType.BED: ListScope.ALL,
    EntityType.ALERT: ListScope.ALL,
}

SELF_ONLY_ACTIONS = frozenset({
    (EntityType.ATTENDANCE, Action.CHECK_IN),
    (EntityType.ATTENDANCE, Action.CHECK_OUT),
})


class PermissionService:
    """Pure lookups over the role tables and the workflow edge tables"""

    @staticmethod
    def menu_for(role) -> Tuple[ScreenKey, ...]:
        """Ordered screens for a role; unknown roles only get the home screen"""
        parsed = Role.parse(role) if role is not None else None
        return MENU_BY_ROLE.get(parsed, DEFAULT_MENU)

    @staticmethod
    def can_view(role, screen: ScreenKey) -> bool:
        return ScreenKey(screen) in PermissionService.menu_for(role)

    @staticmethod
    def roles_with_screen(screen: ScreenKey) -> FrozenSet[Role]:
        return frozenset(role for role, menu in MENU_BY_ROLE.items() if ScreenKey(screen) in menu)

    @staticmethod
    def can_perform(role, entity: EntityType, action: Action, state=None) -> bool:
        """
        Whether a role may perform an action on an entity type.

        Args:
            role: Role of the current user (unknown values are denied)
            entity: Entity type the action applies to
            action: Action to check
            state: Current status of the record. When given, a transition
                action is allowed only if an edge leaves this state.
        """
        parsed = Role.parse(role) if role is not None else None
        if parsed is None:
            return False

        entity = EntityType(entity)
        action = Action(action)

        roles = ACTION_ROLES.get((entity, action))
        if roles is not None:
            return parsed in roles

        machine = WorkflowService.machine_for(entity)
        if machine is None:
            return False
        return machine.allows(parsed, action, state)

    @staticmethod
    def list_scope(role, entity: EntityType) -> ListScope:
        """Slice of the entity list fetched for this role"""
        entity = EntityType(entity)
        parsed = Role.parse(role) if role is not None else None
        return LIST_SCOPES.get(entity, {}).get(parsed, DEFAULT_SCOPES.get(entity, ListScope.NONE))

    @staticmethod
    def can_act_for(role, entity: EntityType, action: Action, actor_id: Optional[int], target_user_id: Optional[int]) -> bool:
        """Like can_perform, plus the self-only rule for attendance marking"""
        if not PermissionService.can_perform(role, entity, action):
            return False
        if (EntityType(entity), Action(action)) in SELF_ONLY_ACTIONS:
            return actor_id is not None and actor_id == target_user_id
        return True

    @staticmethod
    def require(role, entity: EntityType, action: Action, state=None) -> None:
        """Raise PolicyViolation unless can_perform allows the action"""
        if not PermissionService.can_perform(role, entity, action, state):
            role_name = role.value if isinstance(role, Role) else role
            raise PolicyViolation(
                f"{role_name or 'Anonymous'} may not {Action(action).value.replace('_', ' ')} {EntityType(entity).value.replace('_', ' ')}"
            )
