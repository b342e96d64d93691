from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from meditrack.console import Console
from meditrack.deps import get_console, open_screen
from meditrack.schemas import ScreenKey, StatusChange

router = APIRouter(prefix="/beds", tags=["beds"])


@router.get("/")
async def list_beds(console: Console = Depends(get_console)):
    await open_screen(console, ScreenKey.BEDS)
    return console.view()


@router.post("/", status_code=201)
async def create_bed(form: Dict[str, Any] = Body(...), console: Console = Depends(get_console)):
    screen = await open_screen(console, ScreenKey.BEDS)
    await console.run(screen.create_bed, form)
    return console.view()


@router.post("/{bed_id}/status")
async def change_bed_status(bed_id: int, data: StatusChange, console: Console = Depends(get_console)):
    screen = await open_screen(console, ScreenKey.BEDS)
    await console.run(screen.change_status, bed_id, data.status)
    return console.view()
