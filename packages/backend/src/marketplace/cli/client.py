"""HTTP client for the marketplace API, used by the CLI.

Learn: Mirrors what the web frontend does with its auth store:
- the signed-in user and both tokens are persisted to a JSON file
- authenticated calls send "Authorization: Bearer <access token>"
- on a 401 the client trades its refresh token for a new pair once and
  retries; if that fails too, the stored session is cleared
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Optional

import httpx

DEFAULT_API_URL = "http://localhost:3001"
DEFAULT_CREDENTIALS = Path.home() / ".marketplace" / "credentials.json"


class ClientError(Exception):
    """The API answered with an error envelope (or not at all)."""

    def __init__(self, status_code: int, message: str, errors: Optional[list] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.errors = errors or []


class CredentialStore:
    """The saved session: {"user": {...}, "accessToken": ..., "refreshToken": ...}."""

    def __init__(self, path: Path):
        self.path = path

    @classmethod
    def default(cls) -> "CredentialStore":
        return cls(Path(os.environ.get("MARKETPLACE_CREDENTIALS", DEFAULT_CREDENTIALS)))

    def load(self) -> dict:
        try:
            return json.loads(self.path.read_text())
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError:
            return {}

    def save(self, session: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(session, indent=2))
        self.path.chmod(0o600)

    def update_tokens(self, tokens: dict) -> None:
        session = self.load()
        session["accessToken"] = tokens["accessToken"]
        session["refreshToken"] = tokens["refreshToken"]
        self.save(session)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class MarketplaceClient:
    """Async API client. Use as `async with MarketplaceClient(...) as c:`."""

    def __init__(
        self,
        base_url: str,
        store: CredentialStore,
        *,
        api_prefix: str = "/api/v1",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.store = store
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + api_prefix,
            timeout=30.0,
            transport=transport,
        )

    async def __aenter__(self) -> "MarketplaceClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self._http.aclose()

    # ─── Plumbing ───────────────────────────────────────

    async def _send(self, method: str, path: str, *, auth: bool, **kwargs) -> httpx.Response:
        headers = kwargs.pop("headers", {})
        if auth:
            token = self.store.load().get("accessToken")
            if token:
                headers["Authorization"] = f"Bearer {token}"
        try:
            return await self._http.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise ClientError(0, f"Could not reach the API: {e}") from e

    async def _refresh(self) -> bool:
        refresh_token = self.store.load().get("refreshToken")
        if not refresh_token:
            return False
        r = await self._send(
            "POST", "/auth/refresh", auth=False, json={"refreshToken": refresh_token}
        )
        if r.status_code != 200:
            self.store.clear()
            return False
        self.store.update_tokens(r.json()["data"])
        return True

    async def request(self, method: str, path: str, *, auth: bool = True, **kwargs) -> dict:
        """Send a request and return the decoded success envelope."""
        r = await self._send(method, path, auth=auth, **kwargs)
        if r.status_code == 401 and auth and await self._refresh():
            r = await self._send(method, path, auth=auth, **kwargs)

        try:
            body = r.json()
        except ValueError:
            raise ClientError(r.status_code, f"Unexpected response ({r.status_code})")
        if r.is_error or not body.get("success", False):
            raise ClientError(
                r.status_code,
                body.get("message") or f"Request failed ({r.status_code})",
                body.get("errors"),
            )
        return body

    # ─── Session ────────────────────────────────────────

    def _remember(self, data: dict) -> None:
        tokens = data["tokens"]
        self.store.save(
            {
                "user": data["user"],
                "accessToken": tokens["accessToken"],
                "refreshToken": tokens["refreshToken"],
            }
        )

    async def register(self, **fields: Any) -> dict:
        body = await self.request("POST", "/auth/register", auth=False, json=fields)
        self._remember(body["data"])
        return body["data"]["user"]

    async def login(self, email: str, password: str) -> dict:
        body = await self.request(
            "POST", "/auth/login", auth=False, json={"email": email, "password": password}
        )
        self._remember(body["data"])
        return body["data"]["user"]

    async def logout(self) -> None:
        session = self.store.load()
        try:
            if session.get("accessToken"):
                await self.request(
                    "POST", "/auth/logout", json={"refreshToken": session.get("refreshToken")}
                )
        finally:
            self.store.clear()
