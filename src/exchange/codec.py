"""Compact signed tokens (HS512 JWS) used on every request and response.

Requests are signed with the terminal's shared secret. Responses from the
remote service are decoded WITHOUT signature verification by default: the
terminal trusts whatever identity and entitlement payload the network
returns. This is an authentication gap kept for wire compatibility with the
deployed service; set ``exchange.verify_response_signatures`` to close it
once the service signs its responses with the same secret.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import jwt
from jwt.utils import base64url_decode

from .exceptions import ConfigError, FormatError, ProtocolError

ALGORITHM = "HS512"


@dataclass(frozen=True)
class SignedToken:
    """The three base64url segments of a compact token."""
    header: str
    payload: str
    signature: str

    @classmethod
    def parse(cls, token: str) -> "SignedToken":
        """Split a compact token, requiring exactly three non-empty segments."""
        parts = token.split(".")
        if len(parts) != 3 or not all(parts):
            raise FormatError("Invalid JWT format")
        return cls(*parts)

    @property
    def compact(self) -> str:
        return f"{self.header}.{self.payload}.{self.signature}"


class TokenCodec:
    """Builds request tokens and reads response tokens."""

    def __init__(self, verify_signatures: bool = False):
        """Initialize codec.

        Args:
            verify_signatures: Check the HS512 signature of decoded tokens
                against the secret passed to :meth:`decode_payload`.
        """
        self.verify_signatures = verify_signatures
        self.logger = logging.getLogger(__name__)

    def encode(self, payload: Mapping[str, Any], secret: Optional[bytes]) -> str:
        """Sign ``payload`` and return ``header.payload.signature``.

        Raises:
            ConfigError: empty secret.
            FormatError: claims PyJWT refuses to serialize.
        """
        if not secret:
            raise ConfigError("Missing secret", ["SHARED_SECRET"])

        # PyJWT emits the sorted header {"alg":"HS512","typ":"JWT"}
        try:
            return jwt.encode(dict(payload), secret, algorithm=ALGORITHM)
        except (TypeError, ValueError) as e:
            # Claims must be JSON serializable; registered claims such as iss must be strings
            raise FormatError(f"Cannot encode claims: {e}")

    def decode_payload(self, token: str, secret: Optional[bytes] = None) -> Dict[str, Any]:
        """Return the payload claims of ``token``.

        Raises:
            FormatError: wrong segment count or undecodable payload.
            ProtocolError: signature mismatch when verification is enabled.
        """
        signed = SignedToken.parse(token.strip())

        if self.verify_signatures:
            if not secret:
                raise ConfigError("Missing secret", ["SHARED_SECRET"])
            try:
                return jwt.decode(signed.compact, secret, algorithms=[ALGORITHM])
            except jwt.InvalidSignatureError:
                self.logger.warning("Rejected response token with a bad signature")
                raise ProtocolError("Response signature verification failed")
            except jwt.DecodeError:
                raise FormatError("Failed to decode JWT payload")
            except jwt.InvalidTokenError as e:
                raise ProtocolError(f"Invalid response token: {e}")

        # Only the payload segment is read; header and signature are not inspected
        try:
            claims = json.loads(base64url_decode(signed.payload))
        except ValueError:
            raise FormatError("Failed to decode JWT payload")
        if not isinstance(claims, dict):
            raise FormatError("Failed to decode JWT payload")
        return claims
