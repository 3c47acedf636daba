"""
Backend client base class.

A backend client wraps one storage API. It exposes a fixed table of named
operations, a cheap read-only probe, and owns its HTTP client.
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

import httpx

from storage_mcp.mcp_types import BackendError

Operation = Callable[[Dict[str, Any]], Awaitable[Any]]


class BackendClient(ABC):
    """Base class for storage backend clients."""

    name: str = ""

    def __init__(self, timeout: float = 30.0, http_client: Optional[httpx.AsyncClient] = None):
        self._http = http_client or httpx.AsyncClient(timeout=timeout)
        self._operations: Mapping[str, Operation] = self.operations()

    @abstractmethod
    def operations(self) -> Dict[str, Operation]:
        """Static table of operation name to bound coroutine method."""
        ...

    @abstractmethod
    async def probe(self) -> Any:
        """Cheap read-only call proving the credential works."""
        ...

    async def invoke(self, operation: str, arguments: Dict[str, Any]) -> Any:
        """Run a named operation with already-normalized arguments."""
        handler = self._operations.get(operation)
        if handler is None:
            raise BackendError(f"{self.name} has no operation '{operation}'")
        return await handler(arguments)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Send a request, turning HTTP and transport failures into BackendError."""
        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise BackendError(f"{self.name} request timed out: {e}") from e
        except httpx.RequestError as e:
            raise BackendError(f"Failed to connect to {self.name}: {e}") from e

        if response.status_code >= 400:
            raise BackendError(self.error_message(response), status=response.status_code)
        return response

    def error_message(self, response: httpx.Response) -> str:
        """Best human-readable message from an error response."""
        return f"{self.name} returned HTTP {response.status_code}: {response.text[:200]}"
