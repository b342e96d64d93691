from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from meditrack.console import Console
from meditrack.deps import get_console, open_screen
from meditrack.schemas import Remarks, ScreenKey

router = APIRouter(prefix="/patients", tags=["patients"])


@router.get("/")
async def list_patients(console: Console = Depends(get_console)):
    await open_screen(console, ScreenKey.PATIENTS)
    return console.view()


@router.post("/", status_code=201)
async def register_patient(form: Dict[str, Any] = Body(...), console: Console = Depends(get_console)):
    screen = await open_screen(console, ScreenKey.PATIENTS)
    await console.run(screen.register_patient, form)
    return console.view()


@router.post("/{patient_id}/discharge")
async def discharge_patient(patient_id: int, console: Console = Depends(get_console)):
    screen = await open_screen(console, ScreenKey.PATIENTS)
    await console.run(screen.discharge, patient_id)
    return console.view()


@router.post("/{patient_id}/prescriptions")
async def prescribe_for_patient(patient_id: int, console: Console = Depends(get_console)):
    """Open the prescriptions screen preset to this patient"""
    screen = await open_screen(console, ScreenKey.PATIENTS)
    context = screen.open_prescriptions(patient_id)
    await console.open(ScreenKey.PRESCRIPTIONS, strict=True, preset_patient=context)
    return console.view()


@router.post("/requests", status_code=201)
async def file_request(form: Dict[str, Any] = Body(...), console: Console = Depends(get_console)):
    screen = await open_screen(console, ScreenKey.PATIENTS)
    await console.run(screen.file_request, form)
    return console.view()


@router.post("/requests/{request_id}/approve")
async def approve_request(request_id: int, data: Optional[Remarks] = None, console: Console = Depends(get_console)):
    screen = await open_screen(console, ScreenKey.PATIENTS)
    await console.run(screen.approve, request_id, data.remarks if data else "")
    return console.view()


@router.post("/requests/{request_id}/reject")
async def reject_request(request_id: int, data: Optional[Remarks] = None, console: Console = Depends(get_console)):
    screen = await open_screen(console, ScreenKey.PATIENTS)
    await console.run(screen.reject, request_id, data.remarks if data else "")
    return console.view()


@router.post("/requests/{request_id}/registered")
async def mark_request_registered(request_id: int, console: Console = Depends(get_console)):
    screen = await open_screen(console, ScreenKey.PATIENTS)
    await console.run(screen.mark_registered, request_id)
    return console.view()
