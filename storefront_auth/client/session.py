"""Client-side session manager with coalesced access-token refresh.

All coroutines share one event loop. Concurrent requests that fail with
``TOKEN_EXPIRED`` wait on a single refresh task, so at most one refresh
token redemption is in flight at any time, and each of them is replayed
once with the renewed token.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable

import httpx

from storefront_auth.api.errors import ApiErrorCode
from storefront_auth.auth.csrf import CSRF_HEADER, SAFE_METHODS
from storefront_auth.client.storage import MemoryTokenStorage, TokenStorage

LOGGER = logging.getLogger(__name__)

SessionExpiredCallback = Callable[[], "None | Awaitable[None]"]


class SessionExpiredError(Exception):
    """The refresh token was rejected; the user has to log in again."""


class SessionClient:
    """Async HTTP client that attaches auth headers and renews expired tokens."""

    def __init__(
        self,
        base_url: str,
        *,
        storage: TokenStorage | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
        auth_prefix: str = "/auth",
    ) -> None:
        self._http = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)
        self._storage: TokenStorage = storage if storage is not None else MemoryTokenStorage()
        self._auth_prefix = auth_prefix.rstrip("/")
        self._access_token: str | None = self._storage.load()
        self._csrf_token: str | None = None
        self._refresh_task: asyncio.Task[str] | None = None
        self._expired_callbacks: list[SessionExpiredCallback] = []

    @property
    def access_token(self) -> str | None:
        return self._access_token

    @property
    def csrf_token(self) -> str | None:
        return self._csrf_token

    @property
    def refreshing(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    def on_session_expired(self, callback: SessionExpiredCallback) -> None:
        """Register a callback run once each time a refresh fails."""
        self._expired_callbacks.append(callback)

    async def __aenter__(self) -> "SessionClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # Session endpoints

    async def login(self, email: str, password: str) -> httpx.Response:
        response = await self._http.post(
            f"{self._auth_prefix}/login", json={"email": email, "password": password}
        )
        if response.status_code == 200:
            self._apply_session(response.json())
        return response

    async def logout(self) -> httpx.Response:
        """Tell the server to revoke the refresh token, then drop local state."""
        try:
            return await self._http.post(f"{self._auth_prefix}/logout")
        finally:
            self._clear_local_state()
            self._http.cookies.clear()

    async def status(self) -> dict[str, Any]:
        response = await self._http.get(f"{self._auth_prefix}/status")
        response.raise_for_status()
        return response.json()

    async def fetch_csrf_token(self) -> str:
        response = await self._http.get(f"{self._auth_prefix}/csrf")
        response.raise_for_status()
        self._csrf_token = str(response.json()["csrfToken"])
        return self._csrf_token

    # Generic requests

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request; a ``TOKEN_EXPIRED`` rejection is refreshed and replayed once."""
        sent_with = self._access_token
        response = await self._send(method, url, kwargs)
        if not self._is_expired_token_response(url, response):
            return response

        if self._access_token == sent_with:
            await self._refresh_access_token()
        elif self._access_token is None:
            # A concurrent refresh already failed and expired the session.
            raise SessionExpiredError("Session expired")
        # Replayed requests skip the refresh path, so a rejected new token
        # cannot loop.
        return await self._send(method, url, kwargs)

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def put(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", url, **kwargs)

    async def patch(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PATCH", url, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("DELETE", url, **kwargs)

    # Internals

    async def _send(self, method: str, url: str, kwargs: dict[str, Any]) -> httpx.Response:
        options = dict(kwargs)
        headers = dict(options.pop("headers", None) or {})
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"
        if method.upper() not in SAFE_METHODS and self._csrf_token:
            headers[CSRF_HEADER] = self._csrf_token
        response = await self._http.request(method, url, headers=headers, **options)
        renewed_csrf = response.headers.get(CSRF_HEADER)
        if renewed_csrf:
            self._csrf_token = renewed_csrf
        return response

    def _is_expired_token_response(self, url: str, response: httpx.Response) -> bool:
        if response.status_code != 401 or f"{self._auth_prefix}/" in url:
            return False
        try:
            payload = response.json()
        except ValueError:
            return False
        return isinstance(payload, dict) and payload.get("code") == ApiErrorCode.TOKEN_EXPIRED

    async def _refresh_access_token(self) -> str:
        """Join the in-flight refresh or start one."""
        task = self._refresh_task
        if task is None or task.done():
            task = asyncio.create_task(self._perform_refresh())
            self._refresh_task = task
            task.add_done_callback(self._forget_refresh_task)
        return await asyncio.shield(task)

    def _forget_refresh_task(self, task: asyncio.Task[str]) -> None:
        if self._refresh_task is task:
            self._refresh_task = None

    async def _perform_refresh(self) -> str:
        try:
            response = await self._http.post(f"{self._auth_prefix}/refresh")
        except httpx.HTTPError as exc:
            await self._expire_session()
            raise SessionExpiredError("Refresh request failed") from exc

        payload: Any = None
        if response.status_code == 200:
            try:
                payload = response.json()
            except ValueError:
                payload = None
        if not isinstance(payload, dict) or not payload.get("accessToken"):
            LOGGER.info("session_refresh_rejected", extra={"status_code": response.status_code})
            await self._expire_session()
            raise SessionExpiredError("Session expired")

        self._apply_session(payload)
        return str(self._access_token)

    def _apply_session(self, payload: dict[str, Any]) -> None:
        self._access_token = str(payload["accessToken"])
        self._storage.save(self._access_token)
        csrf_token = payload.get("csrfToken")
        if csrf_token:
            self._csrf_token = str(csrf_token)

    def _clear_local_state(self) -> None:
        self._access_token = None
        self._csrf_token = None
        self._storage.clear()

    async def _expire_session(self) -> None:
        self._clear_local_state()
        for callback in list(self._expired_callbacks):
            try:
                result = callback()
                if inspect.isawaitable(result):
                    await result
            except Exception:
                LOGGER.exception("session_expired_callback_failed")
