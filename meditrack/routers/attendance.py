from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from meditrack.console import Console
from meditrack.deps import get_console, open_screen
from meditrack.schemas import ScreenKey

router = APIRouter(prefix="/attendance", tags=["attendance"])


@router.get("/")
async def attendance_report(console: Console = Depends(get_console)):
    await open_screen(console, ScreenKey.ATTENDANCE)
    return console.view()


@router.post("/checkin")
async def check_in(user_id: Optional[int] = Query(None), console: Console = Depends(get_console)):
    screen = await open_screen(console, ScreenKey.ATTENDANCE)
    await console.run(screen.check_in, user_id)
    return console.view()


@router.post("/checkout")
async def check_out(user_id: Optional[int] = Query(None), console: Console = Depends(get_console)):
    screen = await open_screen(console, ScreenKey.ATTENDANCE)
    await console.run(screen.check_out, user_id)
    return console.view()
