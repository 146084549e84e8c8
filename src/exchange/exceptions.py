"""Exchange and token errors."""


class ExchangeError(Exception):
    """Base class for errors raised while talking to the remote service."""
    pass


class ConfigError(ExchangeError):
    """Raised when required terminal configuration is absent or invalid."""

    def __init__(self, message: str, missing_keys=None):
        super().__init__(message)
        self.missing_keys = list(missing_keys or [])


class FormatError(ExchangeError):
    """Raised when a token has the wrong shape or an undecodable payload."""
    pass


class ProtocolError(ExchangeError):
    """Raised when a well-formed response is semantically invalid."""
    pass


class NetworkError(ExchangeError):
    """Raised when the HTTP transport fails."""

    def __init__(self, message: str, cause: Exception = None):
        super().__init__(message)
        self.cause = cause
