"""
Matrix HTTP Client
Implements the small subset of the Client-Server API needed for status polling
"""

import json
import logging
from typing import Any

import aiohttp

from .errors import MatrixAPIError, MatrixClientError, RequestCancelledError

logger = logging.getLogger("matrix_status.client")

DEFAULT_REQUEST_TIMEOUT = 60


class MatrixHTTPClient:
    """
    Low-level HTTP client for the Matrix C-S API

    The client holds no account state: homeserver and token are passed with
    every call, taken from the current configuration snapshot.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        """
        Initialize Matrix HTTP client

        Args:
            session: Existing aiohttp session to use (created lazily otherwise)
            request_timeout: Total timeout per request in seconds, must exceed
                the long-poll timeout
        """
        self.session: aiohttp.ClientSession | None = session
        self.request_timeout = request_timeout
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    async def _ensure_session(self):
        """Ensure aiohttp session exists"""
        if self._cancelled:
            raise RequestCancelledError("Client has been shut down")
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.request_timeout)
            )

    async def close(self):
        """Close the HTTP session"""
        if self.session and not self.session.closed:
            await self.session.close()

    async def cancel(self):
        """Abort every outstanding and future request"""
        self._cancelled = True
        await self.close()

    @staticmethod
    def _get_headers(access_token: str | None) -> dict[str, str]:
        headers = {}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    async def _get(
        self,
        url: str,
        access_token: str | None = None,
        params: dict | None = None,
    ) -> tuple[int, bytes]:
        await self._ensure_session()
        try:
            async with self.session.get(
                url, params=params, headers=self._get_headers(access_token)
            ) as response:
                return response.status, await response.read()
        except (aiohttp.ClientError, RuntimeError) as e:
            # closing the session under an in-flight request surfaces here
            if self._cancelled:
                raise RequestCancelledError(str(e)) from e
            raise

    async def _request_json(
        self,
        url: str,
        access_token: str | None = None,
        params: dict | None = None,
    ) -> dict[str, Any]:
        """
        GET a JSON endpoint

        Raises:
            MatrixAPIError: On non-200 status
            MatrixClientError: When the body is not a JSON object
        """
        status, body = await self._get(url, access_token, params)

        if status != 200:
            errcode, error = "UNKNOWN", ""
            try:
                data = json.loads(body)
                errcode = data.get("errcode", errcode)
                error = data.get("error", error)
            except (ValueError, AttributeError):
                pass
            raise MatrixAPIError(status, errcode, error)

        try:
            data = json.loads(body)
        except ValueError as e:
            raise MatrixClientError(f"Invalid JSON from {url}: {e}") from e
        if not isinstance(data, dict):
            raise MatrixClientError(f"Unexpected JSON payload from {url}")
        return data

    async def whoami(self, homeserver: str, access_token: str) -> dict[str, Any]:
        """
        Get information about the current user

        Returns:
            User information including user_id
        """
        return await self._request_json(
            f"{homeserver}/_matrix/client/v3/account/whoami", access_token
        )

    async def sync(
        self,
        homeserver: str,
        access_token: str,
        since: str | None = None,
        timeout: int = 0,
        sync_filter: dict | None = None,
    ) -> dict[str, Any]:
        """
        Sync with the Matrix server

        Args:
            homeserver: Normalized homeserver base URL
            access_token: Bearer token
            since: Sync batch token from previous sync
            timeout: Long-poll timeout in milliseconds
            sync_filter: Inline filter definition

        Returns:
            Sync response
        """
        params = {"timeout": str(timeout)}
        if sync_filter is not None:
            params["filter"] = json.dumps(sync_filter, separators=(",", ":"))
        if since:
            params["since"] = since

        return await self._request_json(
            f"{homeserver}/_matrix/client/v3/sync", access_token, params=params
        )

    async def download(self, url: str, access_token: str | None = None) -> bytes:
        """
        Download raw bytes from an absolute URL

        Raises:
            MatrixAPIError: On non-200 status
        """
        status, body = await self._get(url, access_token)
        if status != 200:
            raise MatrixAPIError(status, error=f"GET {url} failed")
        return body
