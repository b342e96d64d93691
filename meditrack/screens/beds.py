from __future__ import annotations

from collections import Counter
from typing import Any, Dict, List

from meditrack.exceptions import FormValidationError
from meditrack.schemas import Action, BedCreate, BedOut, BedStatus, EntityType, ScreenKey

from .base import Screen, parse_form, parse_status, rows


class BedsScreen(Screen):
    """Ward beds with occupancy summary; status is freely switchable."""

    key = ScreenKey.BEDS

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.beds: List[BedOut] = []

    async def refresh(self) -> None:
        await self.fetch(self._load_beds, self._set_beds)

    async def _load_beds(self) -> List[BedOut]:
        return rows(BedOut, await self.gateway.get("/beds"))

    def _set_beds(self, beds) -> None:
        self.beds = list(beds)

    def summary(self) -> Dict[str, int]:
        counts = Counter(bed.status for bed in self.beds)
        return {status.value: counts.get(status, 0) for status in BedStatus}

    def _bed(self, bed_id: int) -> BedOut:
        for bed in self.beds:
            if bed.id == bed_id:
                return bed
        raise FormValidationError(f"Bed {bed_id} is not on this screen")

    async def create_bed(self, form: Dict[str, Any]) -> Any:
        self.require(EntityType.BED, Action.CREATE)
        bed = parse_form(BedCreate, form)
        return await self.mutate(
            ("create", bed.bed_number, bed.ward_id),
            lambda: self.gateway.post("/beds", json=bed.to_payload()),
        )

    async def change_status(self, bed_id: int, status) -> Any:
        bed = self._bed(bed_id)
        target = parse_status(BedStatus, status)
        edge = self.check_transition(EntityType.BED, Action.CHANGE_STATUS, bed.status, target)

        async def call():
            result = await self.gateway.put(f"/beds/{bed_id}/status", params={"status": target.value})
            self.machine(EntityType.BED).fire(edge.source, edge.target, bed)
            return result

        return await self.mutate(("status", bed_id), call)

    def view(self) -> Dict[str, Any]:
        data = super().view()
        data.update({
            "can_create": self.can(EntityType.BED, Action.CREATE),
            "summary": self.summary(),
            "beds": [
                {
                    "record": bed.model_dump(mode="json", by_alias=True),
                    "controls": [c.as_dict() for c in self.controls_for(EntityType.BED, bed.status)],
                }
                for bed in self.beds
            ],
        })
        return data
