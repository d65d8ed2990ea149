from typing import Any, Optional
from urllib.parse import quote

import httpx

from numberdesk.errors import BackendError, TransportError
from numberdesk.gateway import decode_body, extract_detail, transport_message


class PublicAPI:
    """
    Unauthenticated endpoints. These bypass the gateway: no bearer token is
    attached, a 401 does not touch the operator session, and nothing is
    notified here. Callers decide what to tell the operator.
    """

    def __init__(self, base_url: str, timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def _get(self, path: str) -> Any:
        try:
            resp = await self._client.get(path)
        except httpx.RequestError as e:
            raise TransportError(transport_message(e)) from e
        if resp.is_error:
            detail = extract_detail(resp)
            raise BackendError(resp.status_code, detail or f"Request failed with status code {resp.status_code}", detail)
        return decode_body(resp)

    async def fetch_number(self) -> Any:
        return await self._get("/api/fetch-number")

    async def fetch_number_with_range(self, range_value: str) -> Any:
        return await self._get(f"/api/fetch-number/range/{quote(range_value, safe='')}")

    async def health_check(self) -> Any:
        return await self._get("/api/health")

    async def aclose(self) -> None:
        await self._client.aclose()
