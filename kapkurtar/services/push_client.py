"""Expo push notification HTTP client."""

from typing import Any, Optional

import httpx

from kapkurtar.logging import get_logger

logger = get_logger(__name__)


class PushDeliveryError(Exception):
    """Push service rejected or failed to accept a message."""


class ExpoPushClient:
    """Sends push messages through Expo's push API."""

    def __init__(
        self,
        push_url: str,
        access_token: str = "",
        timeout_seconds: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.push_url = push_url
        self.access_token = access_token
        self.timeout_seconds = timeout_seconds
        self._http_client = http_client

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            headers = {
                "Accept": "application/json",
                "Accept-Encoding": "gzip, deflate",
                "Content-Type": "application/json",
            }
            if self.access_token:
                headers["Authorization"] = f"Bearer {self.access_token}"
            self._http_client = httpx.AsyncClient(
                timeout=self.timeout_seconds,
                headers=headers,
            )
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def send(
        self,
        push_token: str,
        title: str,
        body: str,
        data: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Deliver one message.

        Raises:
            PushDeliveryError: on transport errors, non-2xx responses, or a
                ticket with status "error"
        """
        message = {
            "to": push_token,
            "sound": "default",
            "title": title,
            "body": body,
            "data": data or {},
        }
        client = await self._get_http_client()

        try:
            response = await client.post(self.push_url, json=message)
        except httpx.RequestError as e:
            raise PushDeliveryError(f"Push request failed: {e}") from e

        if response.status_code >= 300:
            raise PushDeliveryError(
                f"Push service returned {response.status_code}: {response.text[:200]}"
            )

        ticket = response.json().get("data") or {}
        if isinstance(ticket, list):
            ticket = ticket[0] if ticket else {}
        if ticket.get("status") == "error":
            raise PushDeliveryError(ticket.get("message", "Push ticket error"))
