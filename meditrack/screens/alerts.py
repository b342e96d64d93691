from __future__ import annotations

from typing import Any, Dict, List

from meditrack.exceptions import FormValidationError
from meditrack.schemas import Action, AlertCreate, AlertOut, AlertSeverity, AlertStatus, AlertType, EntityType, ScreenKey

from .base import Screen, parse_form, rows


class AlertsScreen(Screen):
    """Hospital-wide alerts; resolving one is final."""

    key = ScreenKey.ALERTS

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.alerts: List[AlertOut] = []

    async def refresh(self) -> None:
        await self.fetch(self._load_alerts, self._set_alerts)

    async def _load_alerts(self) -> List[AlertOut]:
        return rows(AlertOut, await self.gateway.get("/alerts"))

    def _set_alerts(self, alerts) -> None:
        self.alerts = list(alerts)

    def _alert(self, alert_id: int) -> AlertOut:
        for alert in self.alerts:
            if alert.id == alert_id:
                return alert
        raise FormValidationError(f"Alert {alert_id} is not on this screen")

    async def create(self, form: Dict[str, Any]) -> Any:
        self.require(EntityType.ALERT, Action.CREATE)
        alert = parse_form(AlertCreate, form)
        return await self.mutate(
            ("create", alert.type, alert.message),
            lambda: self.gateway.post("/alerts", json=alert.to_payload()),
        )

    async def resolve(self, alert_id: int) -> Any:
        alert = self._alert(alert_id)
        edge = self.check_transition(EntityType.ALERT, Action.RESOLVE, alert.status, AlertStatus.RESOLVED)

        async def call():
            result = await self.gateway.put(f"/alerts/{alert_id}/resolve")
            self.machine(EntityType.ALERT).fire(edge.source, edge.target, alert)
            return result

        return await self.mutate(("resolve", alert_id), call)

    def view(self) -> Dict[str, Any]:
        data = super().view()
        data.update({
            "can_create": self.can(EntityType.ALERT, Action.CREATE),
            "types": [t.value for t in AlertType],
            "severities": [s.value for s in AlertSeverity],
            "alerts": [
                {
                    "record": {**alert.model_dump(mode="json", by_alias=True), "status": alert.status.value},
                    "controls": [c.as_dict() for c in self.controls_for(EntityType.ALERT, alert.status)],
                }
                for alert in self.alerts
            ],
        })
        return data
