"""
Thin async transport to the hospital backend. Attaches the bearer token of
the current session and turns failures into the console's error taxonomy.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Optional

import httpx

from meditrack.config import settings
from meditrack.exceptions import ApiError, BackendUnavailable, SessionExpired, message_from_payload

logger = logging.getLogger(__name__)

PUBLIC_PATHS = ("/auth/login", "/auth/register")

TokenProvider = Callable[[], Optional[str]]


def is_public(path: str) -> bool:
    return any(path.startswith(prefix) for prefix in PUBLIC_PATHS)


class ApiGateway:
    def __init__(
        self,
        token_provider: TokenProvider,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._token_provider = token_provider
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.api_base_url,
            timeout=timeout if timeout is not None else settings.api_timeout_seconds,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> ApiGateway:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _headers(self, path: str) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        token = self._token_provider()
        if token and not is_public(path):
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        """
        Perform one backend call and return the decoded body.

        Raises:
            SessionExpired: 401 on a protected path, or 403 while holding no token
            ApiError: any other 4xx/5xx, message taken from the server payload
            BackendUnavailable: the backend could not be reached
        """
        headers = self._headers(path)
        if params:
            params = {key: value for key, value in params.items() if value is not None}

        start = time.time()
        try:
            response = await self._client.request(method, path, params=params or None, json=json, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("%s %s -> transport error: %s", method, path, exc)
            raise BackendUnavailable("Unable to reach the hospital backend") from exc
        dur = (time.time() - start) * 1000

        payload = _decode(response)
        status = response.status_code

        if status < 400:
            logger.info("%s %s -> %s (%.1f ms)", method, path, status, dur)
            return payload

        if status >= 500:
            logger.error("%s %s -> %s (%.1f ms)", method, path, status, dur)
        else:
            logger.warning("%s %s -> %s (%.1f ms)", method, path, status, dur)

        if not is_public(path):
            if status == 401 or (status == 403 and "Authorization" not in headers):
                raise SessionExpired(message_from_payload(payload, "Your session has ended, please log in again"))

        raise ApiError(message_from_payload(payload, f"Request failed ({status})"), status_code=status, payload=payload)

    async def get(self, path: str, **params) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json: Any = None, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("POST", path, json=json, params=params)

    async def put(self, path: str, json: Any = None, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("PUT", path, json=json, params=params)


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text
