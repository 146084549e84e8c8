"""Kiosk session state definitions."""

from enum import Enum, auto
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any
from datetime import datetime

from exchange.models import Action, ResultKind


class SessionState(Enum):
    """Screens the terminal can be on."""
    IDLE = auto()
    COLLECTING_PIN = auto()
    AUTHENTICATING = auto()
    SELECTING_ACTION = auto()
    SUBMITTING = auto()
    SHOWING_RESULT = auto()
    SHOWING_ERROR = auto()
    CONFIG_MISSING = auto()
    CONFIG_EDITING = auto()


# States that must always carry a pending auto-reset
TIMED_STATES = frozenset({SessionState.SHOWING_RESULT, SessionState.SHOWING_ERROR})

# States the user may abandon; exchanges in flight and timed screens run to completion
ABANDONABLE_STATES = frozenset({SessionState.COLLECTING_PIN, SessionState.SELECTING_ACTION})


@dataclass
class SessionSnapshot:
    """Everything the presentation layer needs to render the current screen."""
    state: SessionState
    pin_length: int = 0
    display_name: Optional[str] = None
    actions: List[Action] = field(default_factory=list)
    result: Optional[ResultKind] = None
    error_message: Optional[str] = None
    reset_in: Optional[float] = None
    timestamp: datetime = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "state": self.state.name.lower(),
            "pin_length": self.pin_length,
            "display_name": self.display_name,
            "actions": [action.to_dict() for action in self.actions],
            "result": self.result.value if self.result else None,
            "error_message": self.error_message,
            "reset_in": self.reset_in,
            "timestamp": self.timestamp.isoformat()
        }
