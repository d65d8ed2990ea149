"""
HTTP gateway - the single outbound channel to the backend of record.

Every authenticated call goes through `Gateway.send`:
  - the operator bearer token (if a valid session exists) is attached by a
    request hook just before dispatch;
  - a 401 invalidates the session through SessionStore and, when the operator
    is on an operator page, navigates to the login entry point. It is not
    surfaced as a notification;
  - any other error status is surfaced once, using the body's `detail` field
    when present, and raised as BackendError. Nothing is retried here.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from numberdesk.auth.store import SessionStore
from numberdesk.config import LOGIN_PATH
from numberdesk.errors import AuthorizationError, BackendError, TransportError
from numberdesk.navigation import ViewContext
from numberdesk.notify import Notifier

logger = logging.getLogger(__name__)

GENERIC_ERROR = "An error occurred"


def extract_detail(response: httpx.Response) -> Optional[str]:
    """Pull a human-readable `detail` out of an error body, if it has one."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None

    detail = body.get("detail")
    if isinstance(detail, str):
        return detail or None
    if isinstance(detail, list):
        # FastAPI validation errors: [{"loc": [...], "msg": "...", ...}, ...]
        msgs = [item.get("msg") for item in detail if isinstance(item, dict) and item.get("msg")]
        return "; ".join(msgs) or None
    if detail is not None:
        return str(detail)
    return None


def decode_body(response: httpx.Response) -> Any:
    """JSON when the body parses, the raw text otherwise, None when empty."""
    if response.status_code == 204 or not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def transport_message(exc: httpx.RequestError) -> str:
    if isinstance(exc, httpx.TimeoutException):
        return str(exc) or "Request timed out"
    return str(exc) or GENERIC_ERROR


class Gateway:
    def __init__(
        self,
        base_url: str,
        store: SessionStore,
        notifier: Notifier,
        view: Optional[ViewContext] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.store = store
        self.notifier = notifier
        self.view = view
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
            event_hooks={"request": [self._attach_credentials]},
        )

    async def _attach_credentials(self, request: httpx.Request) -> None:
        token = self.store.bearer_token()
        if token:
            request.headers["Authorization"] = f"Bearer {token}"

    async def send(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        try:
            response = await self._client.request(method, path, params=params, json=json)
        except httpx.RequestError as e:
            message = transport_message(e)
            logger.warning("%s %s failed in transport: %s", method, path, message)
            self.notifier.error(message)
            raise TransportError(message) from e

        logger.debug("%s %s -> %s", method, path, response.status_code)

        if response.status_code == 401:
            detail = extract_detail(response)
            self._handle_unauthorized()
            raise AuthorizationError(detail)

        if response.is_error:
            detail = extract_detail(response)
            message = detail or f"Request failed with status code {response.status_code}"
            self.notifier.error(message)
            raise BackendError(response.status_code, message, detail=detail)

        return decode_body(response)

    def _handle_unauthorized(self) -> None:
        self.store.invalidate(reason="unauthorized")
        view = self.view
        if view is not None and view.is_operator and not view.at_login:
            view.navigate(LOGIN_PATH)

    async def get(self, path: str, **kwargs) -> Any:
        return await self.send("GET", path, **kwargs)

    async def post(self, path: str, **kwargs) -> Any:
        return await self.send("POST", path, **kwargs)

    async def put(self, path: str, **kwargs) -> Any:
        return await self.send("PUT", path, **kwargs)

    async def delete(self, path: str, **kwargs) -> Any:
        return await self.send("DELETE", path, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "Gateway":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
