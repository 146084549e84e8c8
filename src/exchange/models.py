"""Data model shared by the exchanges and the kiosk session."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Generic, Optional, Tuple, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ConfigError

T = TypeVar("T")

PIN_LENGTH = 4

# Keys the terminal reads from the configuration store
CONFIG_KEYS = ("API_URL", "CLIENT_ID", "SHARED_SECRET")


class TerminalConfig(BaseModel):
    """Endpoint and credentials the terminal signs its requests with.

    Loaded once from the configuration store and passed explicitly to every
    exchange call. Instances are frozen; a reload produces a new value.
    """

    model_config = ConfigDict(frozen=True)

    api_url: str = Field(..., min_length=1)
    client_id: int
    shared_secret: bytes = Field(..., min_length=1)

    @field_validator("api_url")
    @classmethod
    def validate_api_url(cls, v):
        """Basic URL validation."""
        if not (v.startswith("http://") or v.startswith("https://")):
            raise ValueError("URL must start with http:// or https://")
        return v

    @classmethod
    def from_store(cls, store: Any) -> "TerminalConfig":
        """Build a config from anything exposing ``get(key)``.

        Raises:
            ConfigError: if a key is absent or empty, or a value is invalid.
        """
        get: Callable[[str], Optional[str]] = store.get
        values = {key: get(key) for key in CONFIG_KEYS}
        missing = [key for key, value in values.items() if not value]
        if missing:
            raise ConfigError(f"Missing configuration: {', '.join(missing)}", missing)

        try:
            client_id = int(str(values["CLIENT_ID"]).strip())
        except ValueError:
            raise ConfigError("CLIENT_ID must be an integer", ["CLIENT_ID"])

        try:
            return cls(
                api_url=values["API_URL"].strip(),
                client_id=client_id,
                shared_secret=values["SHARED_SECRET"].encode("utf-8"),
            )
        except ValidationError as e:
            invalid = [str(err["loc"][0]) for err in e.errors() if err.get("loc")]
            raise ConfigError(f"Invalid configuration: {e.error_count()} error(s)", invalid)


class PinCode:
    """Digits entered on the keypad for the current session."""

    def __init__(self, digits: str = ""):
        self._digits = ""
        for digit in digits:
            self.append(digit)

    def __len__(self) -> int:
        return len(self._digits)

    def __repr__(self) -> str:
        # Never expose the digits themselves
        return f"PinCode(length={len(self._digits)})"

    @property
    def is_complete(self) -> bool:
        return len(self._digits) == PIN_LENGTH

    def append(self, digit: str) -> bool:
        """Append one decimal digit; ignored once the PIN is complete."""
        if self.is_complete:
            return False
        if not isinstance(digit, str) or len(digit) != 1 or digit not in "0123456789":
            return False
        self._digits += digit
        return True

    def as_number(self) -> int:
        """Numeric form used in token claims ("0123" -> 123)."""
        return int(self._digits)

    def copy(self) -> "PinCode":
        """Independent copy, unaffected by later edits of this one."""
        return PinCode(self._digits)

    def clear(self) -> None:
        self._digits = ""


@dataclass(frozen=True)
class Action:
    """A permitted action resolved for the authenticated user."""
    id: int
    label: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"id": self.id, "label": self.label}


@dataclass(frozen=True)
class AuthResult:
    """Identity and entitlements returned by a successful PIN exchange."""
    display_name: str
    actions: Tuple[Action, ...] = field(default_factory=tuple)

    def find_action(self, action_id: int) -> Optional[Action]:
        """Return the action with ``action_id`` if it is in this result."""
        for action in self.actions:
            if action.id == action_id:
                return action
        return None


class ResultKind(Enum):
    """Business-level outcome reported for a submitted action."""
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class Success(Generic[T]):
    """Exchange completed; ``value`` carries its payload."""
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    """Exchange aborted; ``reason`` is a human-readable message."""
    reason: str

    @property
    def ok(self) -> bool:
        return False


ExchangeOutcome = Union[Success[T], Failure]
