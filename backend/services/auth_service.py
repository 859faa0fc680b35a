"""Optional static bearer-token guard for the scheduling API."""

from __future__ import annotations

import secrets
from typing import Optional

from backend.utils.config import Settings, get_settings


class AuthenticationError(Exception):
    """Base authentication failure."""


class InvalidAdminTokenError(AuthenticationError):
    """Raised when provided token is invalid."""


class AuthService:
    """Validates bearer tokens against ADMIN_TOKEN when it is configured."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()

    @property
    def auth_enabled(self) -> bool:
        return bool(self._settings.admin_token)

    def validate_bearer_token(self, bearer_token: str) -> None:
        if not self.auth_enabled:
            return
        if not secrets.compare_digest(bearer_token, self._settings.admin_token or ""):
            raise InvalidAdminTokenError("Invalid bearer token")
