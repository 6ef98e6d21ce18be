"""
RPC client for the managed backend.

Every piece of business logic runs server-side as a named procedure.
The client POSTs JSON parameters to ``/rpc/<name>`` on the REST gateway and
returns the decoded JSON result. Plain table reads go through the same
gateway with column selection and ordering.

Usage:
    async with RpcClient.from_settings() as rpc:
        data = await rpc.call("c_get_set_for_play", {"p_set_id": set_id}, idempotent=True)
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
from loguru import logger

from config import Settings, get_settings


class RpcError(Exception):
    """
    A remote procedure failed.

    Carries the gateway's error body (code, message, details, hint) when the
    backend answered, or just a message when the request never completed.
    """

    def __init__(
        self,
        message: str,
        *,
        procedure: str | None = None,
        code: str | None = None,
        details: str | None = None,
        hint: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.procedure = procedure
        self.code = code
        self.details = details
        self.hint = hint
        self.status_code = status_code

    @classmethod
    def from_response(cls, procedure: str, response: httpx.Response) -> RpcError:
        """Parse a gateway error body; fall back to the raw text."""
        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            body = {"message": response.text or response.reason_phrase}
        return cls(
            body.get("message") or f"HTTP {response.status_code}",
            procedure=procedure,
            code=body.get("code"),
            details=body.get("details"),
            hint=body.get("hint"),
            status_code=response.status_code,
        )

    @property
    def is_transient(self) -> bool:
        """Timeouts, dropped connections and 5xx responses."""
        return self.status_code is None or self.status_code >= 500


class RpcClient:
    """HTTP client for named remote procedures."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        access_token: str | None = None,
        timeout_ms: int = 15000,
        retry_attempts: int = 3,
        backoff_seconds: float = 1.0,
    ):
        """
        Initialize the RPC client.

        Args:
            base_url: REST gateway root, e.g. https://<project>/rest/v1
            api_key: Public project key sent as the 'apikey' header
            access_token: Signed-in user's token; the anon key is used when absent
            timeout_ms: Request timeout in milliseconds
            retry_attempts: Attempts for idempotent calls (writes get one attempt)
            backoff_seconds: First retry delay, doubled on each further attempt
        """
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_ms / 1000.0
        self.retry_attempts = max(1, retry_attempts)
        self.backoff_seconds = backoff_seconds
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {access_token or api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            timeout=httpx.Timeout(self.timeout_seconds),
            follow_redirects=True,
        )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> RpcClient:
        return cls(**(settings or get_settings()).get_rpc_config())

    async def __aenter__(self) -> RpcClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    # =========================================================================
    # Calls
    # =========================================================================

    async def call(
        self,
        procedure: str,
        params: dict[str, Any] | None = None,
        *,
        idempotent: bool = False,
    ) -> Any:
        """
        Invoke a named procedure.

        Args:
            procedure: Procedure name, e.g. "c_finish_study_session"
            params: JSON-serialisable named parameters
            idempotent: Allow retries on transient failures (reads only)

        Returns:
            Decoded JSON result (None for an empty body)

        Raises:
            RpcError: On an error response or when all attempts fail
        """
        async def send() -> httpx.Response:
            return await self.client.post(f"/rpc/{procedure}", json=params or {})

        return await self._run(procedure, send, idempotent)

    async def select(
        self,
        table: str,
        columns: str = "*",
        order: str | None = None,
    ) -> list[dict[str, Any]]:
        """Read rows from a table (always idempotent)."""
        query = {"select": columns}
        if order:
            query["order"] = order

        async def send() -> httpx.Response:
            return await self.client.get(f"/{table}", params=query)

        return await self._run(table, send, True) or []

    async def _run(self, procedure: str, send, idempotent: bool) -> Any:
        attempts = self.retry_attempts if idempotent else 1
        last_error: RpcError | None = None

        for attempt in range(attempts):
            try:
                response = await send()
            except httpx.TimeoutException as e:
                last_error = RpcError(f"{procedure} timed out", procedure=procedure)
                logger.warning(f"RPC {procedure} timeout on attempt {attempt + 1}/{attempts}: {e}")
            except httpx.RequestError as e:
                last_error = RpcError(f"{procedure} request failed: {e}", procedure=procedure)
                logger.warning(f"RPC {procedure} request error on attempt {attempt + 1}/{attempts}: {e}")
            else:
                if response.status_code < 400:
                    logger.debug(f"RPC {procedure} -> {response.status_code}")
                    return self._decode(procedure, response)

                last_error = RpcError.from_response(procedure, response)
                if not last_error.is_transient:
                    # Don't retry on 4xx client errors
                    logger.error(f"RPC {procedure} failed: {last_error.message}")
                    raise last_error
                logger.warning(
                    f"RPC {procedure} server error {response.status_code} on attempt "
                    f"{attempt + 1}/{attempts}"
                )

            if attempt < attempts - 1:
                await asyncio.sleep(self.backoff_seconds * 2 ** attempt)

        logger.error(f"RPC {procedure} failed after {attempts} attempt(s): {last_error}")
        raise last_error

    @staticmethod
    def _decode(procedure: str, response: httpx.Response) -> Any:
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise RpcError(
                f"{procedure} returned invalid JSON",
                procedure=procedure,
                status_code=response.status_code,
            ) from e
