"""HTTP handshake that exchanges the app token for a WebSocket URL."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional
from urllib.parse import urlsplit

import requests

from socketmode.config import SocketModeSettings
from socketmode.errors import HandshakeRejected, MalformedHandshakeResponse, TransportError

LOGGER = logging.getLogger(__name__)


def with_debug_reconnects(url: str) -> str:
    separator = "&" if urlsplit(url).query else "?"
    return f"{url}{separator}debug_reconnects=true"


class HandshakeClient:
    """Calls the open-connection endpoint with the app-level bearer token."""

    def __init__(
        self,
        settings: SocketModeSettings,
        *,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._settings = settings
        self._session = session or requests.Session()

    async def open_connection(self, token: str) -> str:
        """Return the WebSocket URL for a new connection."""

        return await asyncio.to_thread(self._open_connection, token)

    def _open_connection(self, token: str) -> str:
        url = str(self._settings.open_connection_url)
        LOGGER.debug("Requesting Socket Mode URL from %s", url)
        try:
            response = self._session.post(
                url,
                headers=self._build_headers(token),
                timeout=self._settings.handshake_timeout_seconds,
            )
        except requests.RequestException as exc:
            raise TransportError(f"Handshake request failed: {exc}") from exc

        if response.status_code != 200:
            raise HandshakeRejected(
                f"Request to get WSS URL failed with status {response.status_code}",
                status_code=response.status_code,
            )
        result = self._decode(response)
        wss_url = result.get("url")
        if not result.get("ok") or not isinstance(wss_url, str) or not wss_url:
            context = {"response": result}
            if result.get("error"):
                context["error"] = result["error"]
            raise MalformedHandshakeResponse("Response containing WSS URL was invalid", context=context)
        return wss_url

    @staticmethod
    def _build_headers(token: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/x-www-form-urlencoded",
        }

    @staticmethod
    def _decode(response: requests.Response) -> dict[str, Any]:
        try:
            result = response.json()
        except (json.JSONDecodeError, ValueError) as exc:
            raise MalformedHandshakeResponse("Handshake response is not valid JSON") from exc
        if not isinstance(result, dict):
            raise MalformedHandshakeResponse(
                "Handshake response must be a JSON object",
                context={"response": result},
            )
        return result

    def close(self) -> None:
        self._session.close()


__all__ = ["HandshakeClient", "with_debug_reconnects"]
