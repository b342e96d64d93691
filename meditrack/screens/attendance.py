from __future__ import annotations

import datetime
from collections import Counter
from typing import Any, Dict, List, Optional

from meditrack.exceptions import ConsoleError, PolicyViolation, SessionExpired
from meditrack.schemas import Action, AttendanceOut, AttendanceStatus, EntityType, ScreenKey
from meditrack.services.permission_service import ListScope, PermissionService

from .base import Screen, rows


class AttendanceScreen(Screen):
    """
    Shift attendance. Staff check themselves in and out; the status of each
    day is derived by the backend. Admins see the full report.
    """

    key = ScreenKey.ATTENDANCE

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.records: List[AttendanceOut] = []

    @property
    def can_mark(self) -> bool:
        return self.can(EntityType.ATTENDANCE, Action.CHECK_IN) and self.user_id is not None

    async def refresh(self) -> None:
        await self.fetch(self._load_report, self._set_records)

    async def _load_report(self) -> List[AttendanceOut]:
        scope = self.scope(EntityType.ATTENDANCE)
        if scope == ListScope.ALL:
            return rows(AttendanceOut, await self.gateway.get("/attendance/report"))
        if scope == ListScope.SELF and self.user_id is not None:
            return rows(AttendanceOut, await self.gateway.get("/attendance/report", userId=self.user_id))
        return []

    def _set_records(self, records) -> None:
        self.records = list(records)

    async def check_in(self, user_id: Optional[int] = None) -> Any:
        return await self._mark(Action.CHECK_IN, user_id)

    async def check_out(self, user_id: Optional[int] = None) -> Any:
        return await self._mark(Action.CHECK_OUT, user_id)

    async def _mark(self, action: Action, user_id: Optional[int]) -> Any:
        target = self.user_id if user_id is None else user_id
        if not PermissionService.can_act_for(self.role, EntityType.ATTENDANCE, action, self.user_id, target):
            raise PolicyViolation("Attendance can only be marked by staff, for themselves")

        if action == Action.CHECK_IN:
            call = lambda: self.gateway.post(f"/attendance/checkin/{target}")
            done, failed = "Checked in successfully", "Unable to check in"
        else:
            call = lambda: self.gateway.put(f"/attendance/checkout/{target}")
            done, failed = "Checked out successfully", "Unable to check out"

        try:
            return await self.mutate((action.value, target), call, success_message=done)
        except SessionExpired:
            raise
        except ConsoleError as exc:
            self.message = exc.message or failed
            raise

    def summary(self) -> Dict[str, int]:
        counts = Counter(record.status for record in self.records)
        return {status.value: counts.get(status, 0) for status in AttendanceStatus}

    def today(self, on: Optional[datetime.date] = None) -> List[AttendanceOut]:
        day = (on or datetime.date.today()).isoformat()
        return [record for record in self.records if record.date == day]

    def view(self) -> Dict[str, Any]:
        data = super().view()
        data.update({
            "can_mark": self.can_mark,
            "summary": self.summary(),
            "today": [record.model_dump(mode="json", by_alias=True) for record in self.today()],
            "records": [record.model_dump(mode="json", by_alias=True) for record in self.records],
        })
        return data
