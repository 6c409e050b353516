"""Thin asynchronous Twitch Helix API client.

``TwitchAPI`` is stateless: every call takes the token and client id it
should use. Credential-bearing convenience lives in
:mod:`src.api.auth`, which wraps an instance of this class.
"""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from ..constants import HTTP_REQUEST_TIMEOUT_SECONDS
from ..errors.handling import handle_api_error
from ..errors.internal import (
    NetworkError,
    OAuthError,
    ParsingError,
    RateLimitContext,
    RateLimitError,
)

VALIDATE_URL = "https://id.twitch.tv/oauth2/validate"


def raise_for_status(status: int, headers: dict[str, str], context: str) -> None:
    """Translate a Helix status code into the internal error hierarchy."""
    if status < 400:
        return
    if status == 401:
        raise OAuthError(f"{context}: unauthorized (HTTP 401)")
    if status == 429:
        remaining = headers.get("Ratelimit-Remaining")
        reset = headers.get("Ratelimit-Reset")
        raise RateLimitError(
            f"{context}: rate limited",
            context=RateLimitContext(
                remaining=int(remaining) if remaining and remaining.isdigit() else None,
                reset_at=float(reset) if reset and reset.isdigit() else None,
            ),
        )
    if status >= 500:
        raise NetworkError(f"{context}: server error (HTTP {status})")
    raise ParsingError(f"{context}: request rejected (HTTP {status})")


class TwitchAPI:
    """Asynchronous client for Twitch Helix API endpoints.

    Attributes:
        BASE_URL (str): The base URL for Twitch Helix API.
    """

    BASE_URL = "https://api.twitch.tv/helix"

    def __init__(self, session: aiohttp.ClientSession):
        if not session:
            raise ValueError("aiohttp session required")
        self._session = session

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        access_token: str,
        client_id: str,
        params: dict[str, Any] | list[tuple[str, str]] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> tuple[dict[str, Any], int, dict[str, str]]:
        """Perform a raw HTTP request to the Twitch Helix API.

        Args:
            method: HTTP method (e.g. 'GET', 'PATCH').
            endpoint: API endpoint path without the base URL.
            access_token: OAuth access token for authorization.
            client_id: Twitch application client ID.
            params: Query parameters for the request.
            json_body: JSON body for the request.

        Returns:
            The JSON payload (empty for 204 or unparsable bodies), the HTTP
            status code and the response headers.

        Raises:
            aiohttp.ClientError: If the network request fails.
            TimeoutError: If the request times out.
        """
        url = f"{self.BASE_URL}/{endpoint}"
        async with self._session.request(
            method,
            url,
            headers=self._auth_headers(access_token, client_id),
            params=params,
            json=json_body,
            timeout=aiohttp.ClientTimeout(total=HTTP_REQUEST_TIMEOUT_SECONDS),
        ) as resp:
            logging.debug(f"Twitch API response: status={resp.status}, url={url}")
            data: dict[str, Any] = {}
            if resp.status != 204:
                try:
                    payload = await resp.json()
                except (aiohttp.ContentTypeError, ValueError):
                    payload = None
                if isinstance(payload, dict):
                    data = payload
            return data, resp.status, dict(resp.headers)

    async def validate_token(self, access_token: str) -> dict[str, Any] | None:
        """Validate an OAuth token; returns the validation payload or None."""

        async def operation():
            headers = {"Authorization": f"OAuth {access_token}"}
            async with self._session.get(VALIDATE_URL, headers=headers) as resp:
                if resp.status == 200:
                    return await resp.json()
                return None

        return await handle_api_error(operation, "Twitch token validation")

    async def get_rows(
        self,
        endpoint: str,
        *,
        access_token: str,
        client_id: str,
        params: dict[str, Any] | list[tuple[str, str]] | None = None,
    ) -> list[dict[str, Any]]:
        """GET ``endpoint`` and return its ``data`` rows.

        Raises:
            OAuthError, RateLimitError, NetworkError or ParsingError for
            failing status codes.
        """
        data, status, headers = await self.request(
            "GET", endpoint, access_token=access_token, client_id=client_id, params=params
        )
        raise_for_status(status, headers, f"GET {endpoint}")
        rows = data.get("data")
        if isinstance(rows, list):
            return [r for r in rows if isinstance(r, dict)]
        return []

    @staticmethod
    def _auth_headers(access_token: str, client_id: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {access_token}",
            "Client-Id": client_id,
            "Content-Type": "application/json",
        }


__all__ = ["TwitchAPI", "raise_for_status", "VALIDATE_URL"]
