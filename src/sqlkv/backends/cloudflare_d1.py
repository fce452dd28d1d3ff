"""Cloudflare D1 backend."""

from typing import Any

import httpx

from sqlkv.exceptions import BackendError
from sqlkv.observability import get_logger
from sqlkv.protocols.backend import Row

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://api.cloudflare.com/client/v4"


class CloudflareD1Backend:
    """Cloudflare D1 backend.

    Sends each statement to the D1 HTTP query endpoint. D1 executes a single
    statement atomically; there is no transaction spanning several calls.
    """

    def __init__(
        self,
        account_id: str | None = None,
        database_id: str | None = None,
        api_token: str | None = None,
        base_url: str | None = None,
        timeout_seconds: float = 30.0,
        client: httpx.AsyncClient | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize D1 backend.

        Args:
            account_id: Cloudflare account ID
            database_id: D1 database ID
            api_token: Cloudflare API token with D1 edit permission
            base_url: API base URL, defaults to the public Cloudflare API
            timeout_seconds: Request timeout for the client created here
            client: Existing client to reuse; it is not closed by close()
            **kwargs: Ignored
        """
        if not account_id or not database_id or not api_token:
            raise ValueError(
                "CloudflareD1Backend requires account_id, database_id and api_token. "
                "Use 'sqlite' backend for development."
            )

        self.account_id = account_id
        self.database_id = database_id
        self.api_token = api_token
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)

    @property
    def query_url(self) -> str:
        """Endpoint that executes SQL against the database."""
        return (
            f"{self.base_url}/accounts/{self.account_id}"
            f"/d1/database/{self.database_id}/query"
        )

    def _headers(self) -> dict[str, str]:
        """Get API request headers."""
        return {
            "Authorization": f"Bearer {self.api_token}",
            "Content-Type": "application/json",
        }

    async def _query(self, query: str, params: tuple[Any, ...]) -> list[dict[str, Any]]:
        """Execute one statement and return its result rows.

        Raises:
            BackendError: On transport errors, non-2xx responses or a failed
                result envelope
        """
        try:
            response = await self._client.post(
                self.query_url,
                headers=self._headers(),
                json={"sql": query, "params": list(params)},
            )
        except httpx.HTTPError as e:
            logger.error("D1 request failed", context={"query": query}, error=e)
            raise BackendError(f"D1 request failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if response.status_code not in (200, 201) or not body.get("success", False):
            errors = body.get("errors")
            message = f"HTTP {response.status_code}"
            if isinstance(errors, list) and errors and isinstance(errors[0], dict):
                message = errors[0].get("message") or message
            logger.error(
                "D1 statement failed",
                context={"query": query, "status": response.status_code},
            )
            raise BackendError(f"D1 statement failed: {message}")

        results = body.get("result") or [{}]
        if not isinstance(results, list) or not isinstance(results[0], dict):
            logger.error("D1 returned an unexpected result", context={"query": query})
            raise BackendError(f"D1 returned an unexpected result: {results!r}")
        statement = results[0]
        if not statement.get("success", True):
            raise BackendError(f"D1 statement failed: {statement.get('error', 'unknown error')}")

        rows = statement.get("results") or []
        if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
            logger.error("D1 returned malformed rows", context={"query": query})
            raise BackendError(f"D1 returned malformed rows: {rows!r}")
        return rows

    async def first(self, query: str, *params: Any) -> Row | None:
        """Execute a query and return its first row, if any."""
        rows = await self._query(query, params)
        if not rows:
            return None
        return Row(_data=rows[0])

    async def all(self, query: str, *params: Any) -> list[Row]:
        """Execute a query and return every row."""
        rows = await self._query(query, params)
        return [Row(_data=row) for row in rows]

    async def run(self, query: str, *params: Any) -> None:
        """Execute a mutating statement."""
        await self._query(query, params)

    async def close(self) -> None:
        """Close the HTTP client if this backend created it."""
        if self._owns_client:
            await self._client.aclose()
