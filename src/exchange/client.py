"""HTTP transport for signed requests."""

import asyncio
import logging
from typing import Optional

import aiohttp

from .exceptions import NetworkError


class HttpTokenClient:
    """Issues ``GET <url>?token=<jwt>`` and returns the body as text."""

    def __init__(self, timeout: float = 10.0):
        """Initialize client.

        Args:
            timeout: Total seconds allowed per request
        """
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Return the shared client session, creating it on first use."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    async def fetch(self, url: str, token: str) -> str:
        """Send ``token`` to ``url`` and return the raw response text.

        The body is returned whatever the status code; the remote service
        reports failures in the body itself.

        Raises:
            NetworkError: on connection failures and timeouts.
        """
        session = await self._get_session()
        try:
            async with session.get(url, params={"token": token}) as response:
                text = await response.text()
                if response.status >= 400:
                    self.logger.warning(f"Remote service answered HTTP {response.status}")
                return text

        except asyncio.TimeoutError as e:
            self.logger.error(f"Request to {url} timed out after {self.timeout}s")
            raise NetworkError(f"Request timed out after {self.timeout}s", e)
        except aiohttp.ClientError as e:
            self.logger.error(f"Request to {url} failed: {e}")
            raise NetworkError(str(e) or e.__class__.__name__, e)

    async def close(self) -> None:
        """Close the underlying client session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
