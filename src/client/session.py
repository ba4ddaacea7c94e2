"""Client-side session manager for the Solar Wealth Grow API.

Holds the signed-in user and bearer token, persists them through a
SessionStorage, and wraps every request with the token. A 401 answer to a
request that carried a token triggers one re-verification of that token
(GET /auth/me). If the token is still good the original request is sent
once more; otherwise the session is cleared and SessionExpiredError is
raised. Concurrent failing requests share one in-flight re-verification.
"""

import asyncio
import logging
from typing import Any

import httpx

from client.errors import ApiError, ClientError, NetworkError, SessionExpiredError
from client.storage import MemorySessionStorage, SessionState, SessionStorage

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 30.0


class SessionManager:
    def __init__(
        self,
        base_url: str = "",
        storage: SessionStorage | None = None,
        http: httpx.AsyncClient | None = None,
    ):
        self.storage = storage or MemorySessionStorage()
        self._owns_http = http is None
        self.http = http or httpx.AsyncClient(base_url=base_url, timeout=REQUEST_TIMEOUT_SECONDS)
        self.user: dict | None = None
        self.token: str | None = None
        self.loading = True
        self._refresh_task: asyncio.Task | None = None
        self._verify_task: asyncio.Task | None = None

    async def __aenter__(self) -> "SessionManager":
        await self.restore()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        self._cancel_background_verify()
        if self._owns_http:
            await self.http.aclose()

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    @property
    def is_refreshing(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    # ── session state ────────────────────────────────────────

    def _set_session(self, user: dict, token: str) -> None:
        self.user, self.token = user, token
        self.storage.save(SessionState(user=user, token=token))

    def _clear_session(self) -> None:
        self.user, self.token = None, None
        self.storage.clear()

    async def restore(self) -> SessionState | None:
        """Load the saved session and start a background check of its token."""
        state = self.storage.load()
        if state:
            self.user, self.token = state.user, state.token
            self._verify_task = asyncio.create_task(self._verify_in_background(state.token))
        self.loading = False
        return state

    async def _verify_in_background(self, token: str) -> None:
        try:
            await self.verify_token(token)
        except NetworkError:
            logger.warning("Could not verify saved session: server unreachable")
        except (ClientError, ValueError, KeyError) as e:
            logger.warning("Could not verify saved session", extra={"error_type": type(e).__name__})

    def _cancel_background_verify(self) -> None:
        if self._verify_task and not self._verify_task.done():
            self._verify_task.cancel()

    # ── transport ────────────────────────────────────────────

    async def _send(self, method: str, url: str, token: str | None, **kwargs) -> httpx.Response:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        headers.update(kwargs.pop("headers", None) or {})
        try:
            return await self.http.request(method, url, headers=headers, **kwargs)
        except httpx.RequestError as e:
            logger.warning("Request failed", extra={"url": url, "error_type": type(e).__name__})
            raise NetworkError() from e

    async def verify_token(self, token: str | None = None) -> bool:
        """Ask the server whether the token is still good.

        Refreshes the stored user on success; clears the session otherwise.
        An answer for a token that is no longer current changes nothing.
        Transport failures raise NetworkError and leave the session alone.
        """
        token = token or self.token
        if not token:
            return False

        response = await self._send("GET", "/auth/me", token)
        if token != self.token:
            logger.info("Ignoring verification of a replaced session")
            return response.is_success
        if response.is_success:
            self._set_session(response.json()["user"], token)
            return True

        logger.info("Token rejected", extra={"status_code": response.status_code})
        self._clear_session()
        return False

    async def _reverify(self, token: str) -> bool:
        task = self._refresh_task
        if task is None:
            task = self._refresh_task = asyncio.create_task(self.verify_token(token))
            task.add_done_callback(self._forget_refresh)
        # Shielded so one cancelled waiter does not cancel the refresh for the others.
        return await asyncio.shield(task)

    def _forget_refresh(self, task: asyncio.Task) -> None:
        if self._refresh_task is task:
            self._refresh_task = None
        if not task.cancelled() and task.exception():
            logger.debug("Session refresh failed", extra={"error_type": type(task.exception()).__name__})

    async def request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Send an API request with the current token.

        Raises:
            NetworkError: server unreachable
            SessionExpiredError: token rejected and re-verification failed
        """
        token = self.token
        response = await self._send(method, url, token, **kwargs)
        if response.status_code != 401 or not token:
            return response

        if not await self._reverify(token):
            raise SessionExpiredError()
        # Exactly one retry; its response is returned whatever it is.
        return await self._send(method, url, token, **kwargs)

    async def _call(self, method: str, url: str, default_error: str, **kwargs) -> dict[str, Any]:
        response = await self.request(method, url, **kwargs)
        try:
            data = response.json()
        except ValueError:
            data = {}
        if not response.is_success:
            errors = data.get("errors") if isinstance(data.get("errors"), list) else None
            message = ", ".join(errors) if errors else data.get("message") or default_error
            raise ApiError(message, status_code=response.status_code, errors=errors)
        return data

    # ── auth flow ────────────────────────────────────────────

    async def register(self, username: str, phone: str, email: str, password: str,
                       confirm_password: str) -> dict:
        """Returns the server reply, including userId for the OTP step."""
        return await self._call("POST", "/auth/register", "Registration failed", json={
            "username": username,
            "phone": phone,
            "email": email,
            "password": password,
            "confirmPassword": confirm_password,
        })

    async def send_otp(self, phone: str) -> dict:
        return await self._call("POST", "/auth/send-otp", "Failed to send OTP", json={"phone": phone})

    async def verify_otp(self, phone: str, otp: str) -> dict:
        self._cancel_background_verify()
        data = await self._call("POST", "/auth/verify-otp", "OTP verification failed",
                                json={"phone": phone, "otp": otp})
        self._set_session(data["user"], data["token"])
        return data

    async def login(self, username_or_phone: str, password: str) -> dict:
        self._cancel_background_verify()
        data = await self._call("POST", "/auth/login", "Login failed",
                                json={"usernameOrPhone": username_or_phone, "password": password})
        self._set_session(data["user"], data["token"])
        return data

    async def logout(self) -> None:
        """Tell the server, then clear local state even if that call fails."""
        self._cancel_background_verify()
        try:
            if self.token:
                await self.request("POST", "/auth/logout")
        except ClientError as e:
            logger.warning("Logout request failed", extra={"error": e.message})
        finally:
            self._clear_session()

    async def update_profile(self, **fields) -> dict:
        data = await self._call("PUT", "/user/profile", "Failed to update profile", json=fields)
        if self.token:
            self._set_session(data["user"], self.token)
        return data
