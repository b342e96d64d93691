from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends
from meditrack.console import Console
from meditrack.deps import get_console, open_screen
from meditrack.schemas import ScreenKey, StatusChange

router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.get("/")
async def list_appointments(console: Console = Depends(get_console)):
    await open_screen(console, ScreenKey.APPOINTMENTS)
    return console.view()


@router.post("/", status_code=201)
async def book_appointment(form: Dict[str, Any] = Body(...), console: Console = Depends(get_console)):
    screen = await open_screen(console, ScreenKey.APPOINTMENTS)
    booked = await console.run(screen.book, form)
    data = console.view()
    data["booked"] = booked.model_dump(mode="json", by_alias=True) if booked is not None else None
    return data


@router.post("/{appointment_id}/status")
async def change_appointment_status(appointment_id: int, data: StatusChange, console: Console = Depends(get_console)):
    screen = await open_screen(console, ScreenKey.APPOINTMENTS)
    await console.run(screen.change_status, appointment_id, data.status)
    return console.view()
