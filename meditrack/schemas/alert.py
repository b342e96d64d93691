# =====================================================================
# ALERT SCHEMAS
# =====================================================================

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from .base import ApiModel
from .enums import AlertSeverity, AlertStatus, AlertType


class AlertCreate(ApiModel):
    type: AlertType = AlertType.STAFF_SHORTAGE
    severity: AlertSeverity = AlertSeverity.MEDIUM
    message: str = Field(min_length=1)


class AlertOut(ApiModel):
    id: int
    type: Optional[str] = None
    severity: AlertSeverity = AlertSeverity.LOW
    message: Optional[str] = None
    resolved: bool = False
    created_at: Optional[datetime] = None

    @property
    def status(self) -> AlertStatus:
        """Resolution flag expressed as a workflow state."""
        return AlertStatus.RESOLVED if self.resolved else AlertStatus.OPEN
