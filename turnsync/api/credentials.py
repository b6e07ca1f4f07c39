"""
Credential providers for the authority client.

Token management belongs to the auth collaborator, not to the engine.
The client only needs two things from it:
- the current bearer token
- a way to refresh it once after a 401

Providers are injected per client, so two clients never share tokens
unless the caller hands them the same provider.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
import asyncio
import logging

import aiohttp

logger = logging.getLogger(__name__)


class CredentialProvider(ABC):
    """Supplies bearer credentials and refreshes them on demand."""

    @abstractmethod
    async def access_token(self) -> str | None:
        """Current bearer token, or None for anonymous requests."""

    @abstractmethod
    async def refresh(self, http: aiohttp.ClientSession) -> bool:
        """
        Try to obtain a new access token.

        Returns True if a retry with the new token makes sense.
        """


class StaticCredentialProvider(CredentialProvider):
    """Fixed token that cannot be refreshed. Useful for scripts and tests."""

    def __init__(self, token: str | None = None):
        self._token = token

    async def access_token(self) -> str | None:
        return self._token

    async def refresh(self, http: aiohttp.ClientSession) -> bool:
        return False


class TokenCredentialProvider(CredentialProvider):
    """
    Access/refresh token pair against the authority's refresh endpoint.

    POST {refresh_url} {"refresh_token": ...} -> {"access_token": ...}

    A failed refresh clears both tokens; the caller then surfaces the
    original 401 as an AuthenticationError.
    """

    def __init__(
        self,
        refresh_url: str,
        access_token: str | None = None,
        refresh_token: str | None = None,
    ):
        self.refresh_url = refresh_url
        self._access_token = access_token
        self._refresh_token = refresh_token

    @property
    def has_refresh_token(self) -> bool:
        return self._refresh_token is not None

    def set_tokens(self, access_token: str | None, refresh_token: str | None = None):
        self._access_token = access_token
        if refresh_token:
            self._refresh_token = refresh_token

    def clear(self):
        self._access_token = None
        self._refresh_token = None

    async def access_token(self) -> str | None:
        return self._access_token

    async def refresh(self, http: aiohttp.ClientSession) -> bool:
        if not self._refresh_token:
            return False

        try:
            async with http.post(
                self.refresh_url,
                json={"refresh_token": self._refresh_token},
            ) as resp:
                if resp.status != 200:
                    logger.warning("Token refresh rejected with status %s", resp.status)
                    self.clear()
                    return False
                data = await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning("Token refresh failed: %s", e)
            self.clear()
            return False

        token = data.get("access_token")
        if not token:
            self.clear()
            return False

        self.set_tokens(token)
        logger.debug("Access token refreshed")
        return True
