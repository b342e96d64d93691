from __future__ import annotations

from fastapi import APIRouter, Depends

from meditrack.console import Console
from meditrack.deps import get_console, open_screen
from meditrack.schemas import ScreenKey

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/menu")
async def menu(console: Console = Depends(get_console)):
    return {"route": console.route, "menu": console.menu_items()}


@router.get("/home")
async def home(console: Console = Depends(get_console)):
    await open_screen(console, ScreenKey.HOME)
    return console.view()
