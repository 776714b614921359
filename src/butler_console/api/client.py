"""HTTP client for the Butler console backend.

All requests are JSON over HTTPS with credentials. Failures are mapped onto the
console error taxonomy: a structured error body becomes ``BackendRejection``,
anything else becomes ``NetworkFailure``.
"""

import logging
from typing import Any

import httpx

from butler_console.config import ConsoleConfig
from butler_console.utils.errors import BackendRejection, NetworkFailure

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "butler_session"


class ApiClient:
    """Async JSON client bound to the console API base URL."""

    def __init__(
        self,
        config: ConsoleConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize API client.

        Args:
            config: Console configuration (base URL, credentials, timeout)
            transport: Optional transport override, used to stub the backend
        """
        self.config = config
        cookies = {}
        if config.session_cookie:
            cookies[SESSION_COOKIE_NAME] = config.session_cookie

        self._client = httpx.AsyncClient(
            base_url=config.api_url,
            headers={"Content-Type": "application/json", **config.get_auth_headers()},
            cookies=cookies,
            timeout=config.request_timeout,
            verify=config.verify_tls,
            transport=transport,
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._client.aclose()

    async def request(self, method: str, path: str, body: Any | None = None) -> Any:
        """Send a request and decode the JSON response.

        Args:
            method: HTTP method
            path: Path relative to the API base URL (e.g. ``/addons/catalog``)
            body: Optional JSON-serializable request body

        Returns:
            Decoded JSON body, or None for empty responses

        Raises:
            NetworkFailure: On transport errors or unstructured non-2xx responses
            BackendRejection: On non-2xx responses carrying an error message
        """
        url = path if path.startswith("/") else f"/{path}"
        logger.debug(f"{method} {url}")

        try:
            response = await self._client.request(method, url, json=body)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {url} failed: {e}")
            raise NetworkFailure(f"Request to {url} failed: {e}") from e

        if response.is_error:
            raise self._error_from_response(response)

        if not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise NetworkFailure(
                f"Invalid JSON in response from {url}", status=response.status_code
            ) from e

    @staticmethod
    def _error_from_response(response: httpx.Response) -> Exception:
        status = response.status_code
        try:
            data = response.json()
        except ValueError:
            data = None

        if isinstance(data, dict):
            message = data.get("error") or data.get("message")
            if message:
                logger.debug(f"Backend rejected request ({status}): {message}")
                return BackendRejection(str(message), status=status)

        return NetworkFailure(f"HTTP {status}", status=status)

    async def get(self, path: str) -> Any:
        return await self.request("GET", path)

    async def post(self, path: str, body: Any | None = None) -> Any:
        return await self.request("POST", path, body)

    async def put(self, path: str, body: Any | None = None) -> Any:
        return await self.request("PUT", path, body)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)
