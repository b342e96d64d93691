from __future__ import annotations

from typing import AsyncIterator

from fastapi import Depends, Request, Response

from meditrack.config import settings
from meditrack.console import Console
from meditrack.db import AsyncSessionLocal
from meditrack.schemas import ScreenKey
from meditrack.screens import Screen
from meditrack.security import new_session_key
from meditrack.services.api_gateway import ApiGateway
from meditrack.services.session_store import SessionStore


async def get_session_store(request: Request, response: Response) -> SessionStore:
    """
    Console session of the calling browser, keyed by cookie.
    A browser without the cookie gets a fresh key (and an empty session).
    """
    key = request.cookies.get(settings.session_cookie_name)
    if not key:
        key = new_session_key()
        response.set_cookie(settings.session_cookie_name, key, httponly=True, samesite="lax")

    sessionmaker = getattr(request.app.state, "sessionmaker", None) or AsyncSessionLocal
    store = SessionStore(sessionmaker, key)
    await store.load()
    return store


async def get_console(request: Request, store: SessionStore = Depends(get_session_store)) -> AsyncIterator[Console]:
    gateway = ApiGateway(
        token_provider=lambda: store.token,
        base_url=getattr(request.app.state, "api_base_url", None),
        transport=getattr(request.app.state, "backend_transport", None),
    )
    try:
        yield Console(store, gateway)
    finally:
        await gateway.aclose()


async def open_screen(console: Console, key: ScreenKey) -> Screen:
    """Mount a screen for this request; roles without access get a 403"""
    return await console.open(key, strict=True)
