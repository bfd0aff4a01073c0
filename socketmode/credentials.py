"""Suppliers of the app-level bearer token used for the handshake."""

from __future__ import annotations

from typing import Optional, Protocol

from socketmode.config import SocketModeSettings


class CredentialStore(Protocol):
    def get_app_token(self) -> Optional[str]:
        ...


class SettingsCredentials:
    """Reads the app token from settings; blank values count as absent."""

    def __init__(self, settings: SocketModeSettings) -> None:
        self._settings = settings

    def get_app_token(self) -> Optional[str]:
        token = self._settings.app_token
        if token is None or not token.strip():
            return None
        return token.strip()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(configured={self.get_app_token() is not None})"


class StaticCredentials:
    def __init__(self, app_token: Optional[str]) -> None:
        self._app_token = app_token

    def get_app_token(self) -> Optional[str]:
        return self._app_token

    def __repr__(self) -> str:
        return f"{type(self).__name__}(configured={self._app_token is not None})"


__all__ = ["CredentialStore", "SettingsCredentials", "StaticCredentials"]
