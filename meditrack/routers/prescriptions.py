from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query

from meditrack.console import Console
from meditrack.deps import get_console, open_screen
from meditrack.schemas import ScreenKey

router = APIRouter(prefix="/prescriptions", tags=["prescriptions"])


@router.get("/")
async def list_prescriptions(
    patient_id: Optional[str] = Query(None, description="Admin lookup by patient"),
    console: Console = Depends(get_console),
):
    screen = await open_screen(console, ScreenKey.PRESCRIPTIONS)
    if patient_id is not None:
        await console.run(screen.search, patient_id)
    return console.view()


@router.post("/", status_code=201)
async def create_prescription(form: Dict[str, Any] = Body(...), console: Console = Depends(get_console)):
    screen = await open_screen(console, ScreenKey.PRESCRIPTIONS)
    await console.run(screen.create, form)
    return console.view()


@router.post("/{prescription_id}/stop")
async def stop_prescription(prescription_id: int, console: Console = Depends(get_console)):
    screen = await open_screen(console, ScreenKey.PRESCRIPTIONS)
    await console.run(screen.stop, prescription_id)
    return console.view()


@router.post("/{prescription_id}/complete")
async def complete_prescription(prescription_id: int, console: Console = Depends(get_console)):
    screen = await open_screen(console, ScreenKey.PRESCRIPTIONS)
    await console.run(screen.complete, prescription_id)
    return console.view()
