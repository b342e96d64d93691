from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from meditrack.console import Console
from meditrack.deps import get_console, open_screen
from meditrack.schemas import ScreenKey

router = APIRouter(prefix="/alerts", tags=["alerts"])


@router.get("/")
async def list_alerts(console: Console = Depends(get_console)):
    await open_screen(console, ScreenKey.ALERTS)
    return console.view()


@router.post("/", status_code=201)
async def create_alert(form: Dict[str, Any] = Body(...), console: Console = Depends(get_console)):
    screen = await open_screen(console, ScreenKey.ALERTS)
    await console.run(screen.create, form)
    return console.view()


@router.post("/{alert_id}/resolve")
async def resolve_alert(alert_id: int, console: Console = Depends(get_console)):
    screen = await open_screen(console, ScreenKey.ALERTS)
    await console.run(screen.resolve, alert_id)
    return console.view()
