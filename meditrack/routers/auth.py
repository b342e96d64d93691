# meditrack/routers/auth.py
from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from meditrack.console import Console
from meditrack.deps import get_console
from meditrack.schemas import LoginRequest

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login")
async def login(data: LoginRequest, console: Console = Depends(get_console)):
    await console.login(data.email, data.password)
    return console.view()


@router.post("/logout")
async def logout(console: Console = Depends(get_console)):
    await console.logout()
    return console.view()


@router.get("/me")
async def me(console: Console = Depends(get_console)):
    return console.view()


@router.get("/departments")
async def departments(console: Console = Depends(get_console)):
    screen = console.register_screen()
    await screen.mount()
    return screen.view()


@router.post("/register", status_code=201)
async def register(form: Dict[str, Any] = Body(...), console: Console = Depends(get_console)):
    screen = console.register_screen()
    await screen.submit(form)
    return screen.view()
