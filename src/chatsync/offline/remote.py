"""Remote backend consumed by the sync layer.

The sync layer needs two operations from the backend: ``send`` (returns the
confirmed message id, may raise) and ``list_by_room`` (one page of
confirmed messages, ascending, strictly older than ``before`` when given).
HttpBackend implements them over the backend's HTTP API with httpx.
"""
from typing import Optional, Protocol

import httpx

from chatsync.core.constants import (
    DEFAULT_PAGE_LIMIT,
    HTTP_CONNECT_TIMEOUT_SECONDS,
    HTTP_TIMEOUT_SECONDS,
)
from chatsync.offline.messages import Message


class Backend(Protocol):
    async def send(self, room_id: str, kind: str, text: Optional[str] = None,
                   image_url: Optional[str] = None,
                   client_created_at: Optional[int] = None) -> str:
        ...

    async def list_by_room(self, room_id: str, limit: int = DEFAULT_PAGE_LIMIT,
                           before: Optional[int] = None) -> list[Message]:
        ...


class RemoteError(Exception):
    """Backend answered with something the client cannot use."""
    pass


class HttpBackend:
    """HTTP client for the chat backend."""

    def __init__(
        self,
        base_url: str,
        auth_token: str = "",
        timeout: float = HTTP_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.auth_token = auth_token
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout, connect=HTTP_CONNECT_TIMEOUT_SECONDS),
            transport=transport,
        )

    @classmethod
    def from_config(cls, config, transport: Optional[httpx.AsyncBaseTransport] = None) -> "HttpBackend":
        return cls(
            config.base_url,
            auth_token=config.auth_token,
            timeout=config.request_timeout,
            transport=transport,
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers

    async def send(self, room_id: str, kind: str, text: Optional[str] = None,
                   image_url: Optional[str] = None,
                   client_created_at: Optional[int] = None) -> str:
        """POST one message. Returns the server-assigned id.

        Raises:
            httpx.HTTPError: transport failure or non-2xx status
            RemoteError: response without an id
        """
        body: dict = {"kind": kind}
        if text is not None:
            body["text"] = text
        if image_url is not None:
            body["imageUrl"] = image_url
        if client_created_at is not None:
            body["clientCreatedAt"] = client_created_at

        response = await self.client.post(
            f"/rooms/{room_id}/messages", json=body, headers=self._headers()
        )
        response.raise_for_status()

        data = response.json()
        message_id = data.get("id") if isinstance(data, dict) else data
        if not message_id:
            raise RemoteError(f"send to {room_id}: response has no message id")
        return str(message_id)

    async def list_by_room(self, room_id: str, limit: int = DEFAULT_PAGE_LIMIT,
                           before: Optional[int] = None) -> list[Message]:
        """GET one page of confirmed messages, oldest first."""
        params: dict = {"limit": limit}
        if before is not None:
            params["before"] = before

        response = await self.client.get(
            f"/rooms/{room_id}/messages", params=params, headers=self._headers()
        )
        response.raise_for_status()

        data = response.json()
        rows = data.get("messages", []) if isinstance(data, dict) else data
        try:
            messages = [Message.from_dict(row) for row in rows]
        except (KeyError, TypeError, ValueError) as e:
            raise RemoteError(f"list {room_id}: malformed message: {e}") from e
        return sorted(messages, key=lambda m: m.created_at)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "HttpBackend":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()
