"""Shared plumbing for the request/response exchanges."""

import logging
from typing import Any, Dict, Optional

from .client import HttpTokenClient
from .codec import TokenCodec
from .models import PinCode, TerminalConfig

ISSUER = "Ostara"


class BaseExchange:
    """Signs claims, sends them and decodes the answer."""

    def __init__(self, client: HttpTokenClient, codec: Optional[TokenCodec] = None):
        self.client = client
        self.codec = codec or TokenCodec()
        self.logger = logging.getLogger(self.__class__.__module__)

    @staticmethod
    def _claims(pin: PinCode, config: TerminalConfig, action: str, **extra: Any) -> Dict[str, Any]:
        """Build request claims; PIN and client id are sent as JSON numbers."""
        claims = {
            "iss": ISSUER,
            "action": action,
            "token": pin.as_number(),
            "client": int(config.client_id),
        }
        claims.update(extra)
        return claims

    async def _send(self, claims: Dict[str, Any], config: TerminalConfig) -> str:
        """Sign ``claims`` and return the raw response text."""
        token = self.codec.encode(claims, config.shared_secret)
        self.logger.debug(f"Sending '{claims['action']}' request")
        return await self.client.fetch(config.api_url, token)

    async def _request(self, claims: Dict[str, Any], config: TerminalConfig) -> Dict[str, Any]:
        """Send ``claims`` and decode the response token's payload."""
        text = await self._send(claims, config)
        return self.codec.decode_payload(text, config.shared_secret)
