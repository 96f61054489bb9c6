from typing import Any, Protocol

import httpx

from wishlens.constants import EDGE_FUNCTIONS, REQUEST_TIMEOUT
from wishlens.errors import AuthRequiredError
from wishlens.logging import get_logger

_logger = get_logger(__name__)


class SessionProvider(Protocol):
    async def get_token(self) -> str | None: ...

    async def refresh(self) -> str | None: ...


class StaticSession:
    """Fixed access token; refreshing cannot produce a new one."""

    def __init__(self, token: str | None):
        self._token = token

    async def get_token(self) -> str | None:
        return self._token

    async def refresh(self) -> str | None:
        return self._token


class EdgeFunctionClient:
    """Calls backend edge functions with the anon key and the user's session token.

    A missing token or a 401 triggers one session refresh and one retry.
    If the session is still rejected the call raises `AuthRequiredError`.
    """

    def __init__(
        self,
        base_url: str,
        anon_key: str,
        session: SessionProvider,
        client: httpx.AsyncClient | None = None,
        timeout: float = REQUEST_TIMEOUT,
    ):
        if not base_url or not anon_key:
            raise ValueError("Backend URL and anon key must be configured")
        self._base_url = base_url.rstrip("/")
        self._anon_key = anon_key
        self._session = session
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    def url_for(self, function_name: str) -> str:
        return f"{self._base_url}/functions/v1/{function_name}"

    def _headers(self, token: str) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "apikey": self._anon_key,
            "Authorization": f"Bearer {token}",
        }

    async def _token(self) -> str:
        token = await self._session.get_token()
        if token:
            return token
        _logger.info("No access token available, refreshing session")
        token = await self._session.refresh()
        if not token:
            raise AuthRequiredError()
        return token

    async def call(self, function_name: str, payload: dict[str, Any]) -> dict[str, Any]:
        if function_name not in EDGE_FUNCTIONS:
            raise ValueError(f"Edge function '{function_name}' is not recognized")

        url = self.url_for(function_name)
        token = await self._token()
        refreshed = False

        while True:
            resp = await self._client.post(url, headers=self._headers(token), json=payload)
            _logger.debug("Edge function responded", function=function_name, status=resp.status_code, retried=refreshed)

            if resp.status_code != 401:
                break
            if refreshed:
                _logger.warning("Still unauthorized after session refresh", function=function_name)
                raise AuthRequiredError()

            _logger.info("Unauthorized, refreshing session and retrying", function=function_name)
            token = await self._session.refresh()
            if not token:
                raise AuthRequiredError()
            refreshed = True

        resp.raise_for_status()
        return resp.json()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
