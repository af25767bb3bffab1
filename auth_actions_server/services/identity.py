# Copyright (C) 2024 Mayor Exchange Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Supabase Auth admin client: create, confirm, update password, look up by email."""

import logging
from typing import Any

import httpx

from auth_actions_server.config import Settings
from auth_actions_server.errors import DependencyError

logger = logging.getLogger(__name__)


def _json_or_none(response: httpx.Response) -> Any:
    """Decoded JSON body, or None when the body is empty or not JSON."""
    try:
        return response.json()
    except ValueError:
        return None


def _error_message(response: httpx.Response) -> str:
    """Pull a human-readable message out of a Supabase error body."""
    data = _json_or_none(response)
    if data is None:
        return response.text or f"Identity provider error ({response.status_code})"
    if isinstance(data, dict):
        for key in ("msg", "message", "error_description", "error"):
            if data.get(key):
                return str(data[key])
    return f"Identity provider error ({response.status_code})"


class SupabaseIdentityProvider:
    """Identity provider backed by a Supabase project's admin and REST APIs."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._base_url = settings.supabase_url.rstrip("/")
        self._key = settings.supabase_service_role_key
        self._timeout = settings.identity_timeout_seconds
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
            headers={
                "apikey": self._key,
                "Authorization": f"Bearer {self._key}",
            },
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            async with self._client() as client:
                r = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Identity provider %s %s failed: %s", method, path, e)
            raise DependencyError("Identity provider unavailable") from e
        if r.is_error:
            message = _error_message(r)
            logger.warning("Identity provider %s %s returned %s: %s", method, path, r.status_code, message)
            raise DependencyError(message)
        return r

    async def create_user(self, email: str, password: str | None, metadata: dict | None = None) -> dict:
        """Create an account whose email is not yet confirmed. Returns the user record."""
        r = await self._request(
            "POST",
            "/auth/v1/admin/users",
            json={
                "email": email,
                "password": password,
                "email_confirm": False,
                "user_metadata": metadata or {},
            },
        )
        data = _json_or_none(r)
        # Older GoTrue versions wrap the record as {"user": {...}}
        user = data.get("user", data) if isinstance(data, dict) else None
        if not isinstance(user, dict) or not user.get("id"):
            raise DependencyError("Failed to create user")
        return user

    async def confirm_user(self, user_id: str) -> None:
        await self._request("PUT", f"/auth/v1/admin/users/{user_id}", json={"email_confirm": True})

    async def set_password(self, user_id: str, password: str) -> None:
        await self._request("PUT", f"/auth/v1/admin/users/{user_id}", json={"password": password})

    async def find_user_id(self, email: str) -> str | None:
        """
        Resolve an account id by email.

        Tries the `get_user_id_by_email` database function first, then falls
        back to querying `auth.users` directly. Returns None if neither finds it.
        """
        try:
            r = await self._request(
                "POST",
                "/rest/v1/rpc/get_user_id_by_email",
                json={"email_arg": email},
            )
            user_id = _json_or_none(r)
        except DependencyError:
            user_id = None
        if isinstance(user_id, (str, int)) and user_id:
            return str(user_id)

        logger.info("get_user_id_by_email returned nothing, querying auth.users")
        try:
            r = await self._request(
                "GET",
                "/rest/v1/users",
                params={"select": "id", "email": f"eq.{email}"},
                headers={"Accept-Profile": "auth"},
            )
            rows = _json_or_none(r)
        except DependencyError:
            return None
        if isinstance(rows, list) and len(rows) == 1 and isinstance(rows[0], dict) and rows[0].get("id"):
            return str(rows[0]["id"])
        return None
