"""Session token handling for the Ariston API."""

from __future__ import annotations

import logging

import httpx

from . import api

_LOGGER = logging.getLogger(__name__)


class AristonSessionManager:
    """Owns the Ariston session token.

    The API does not signal token expiry, so the token is kept until a
    caller logs in again or invalidates it after a rejected request.
    """

    def __init__(self, session: httpx.AsyncClient, username: str, password: str) -> None:
        self._session = session
        self._username = username
        self._password = password
        self._token: str | None = None

    @property
    def token(self) -> str | None:
        """Return the current token, if logged in."""
        return self._token

    def require_token(self) -> str:
        """Return the current token.

        Raises:
            AristonAuthError: If no login has succeeded yet.

        """
        if self._token is None:
            error_msg = "Not logged in"
            raise api.AristonAuthError(error_msg)
        return self._token

    def invalidate(self) -> None:
        """Forget the current token."""
        self._token = None

    async def async_login(self) -> str:
        """Log in with the stored credentials and replace the token.

        Raises:
            AristonAuthError: If the credentials are rejected.
            AristonTransportError: If the request cannot be performed.

        """
        token = await api.async_login(self._session, self._username, self._password)
        self._token = token
        _LOGGER.debug("Obtained new Ariston session token")
        return token
