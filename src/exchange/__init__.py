"""Ostara signed-request protocol: token codec and remote exchanges."""

from .action import ActionExchange
from .auth import AuthExchange
from .client import HttpTokenClient
from .codec import SignedToken, TokenCodec
from .exceptions import ConfigError, ExchangeError, FormatError, NetworkError, ProtocolError
from .models import (
    Action, AuthResult, ExchangeOutcome, Failure, PinCode, ResultKind, Success, TerminalConfig
)

__all__ = [
    "ActionExchange", "AuthExchange", "HttpTokenClient", "SignedToken", "TokenCodec",
    "ConfigError", "ExchangeError", "FormatError", "NetworkError", "ProtocolError",
    "Action", "AuthResult", "ExchangeOutcome", "Failure", "PinCode", "ResultKind",
    "Success", "TerminalConfig",
]
