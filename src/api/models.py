"""Pydantic models for the gateway API."""

from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field, field_validator
from datetime import datetime


class DigitRequest(BaseModel):
    """A single keypad press."""
    digit: str = Field(..., pattern="^[0-9]$", description="Decimal digit")


class ActionSelectRequest(BaseModel):
    """Selection of one of the resolved actions."""
    action_id: int = Field(..., ge=1, description="1-based action id")


class TerminalConfigRequest(BaseModel):
    """Values saved from the configuration editor."""
    API_URL: str = Field(..., min_length=1, description="Remote service endpoint")
    CLIENT_ID: int = Field(..., description="Terminal client id")
    SHARED_SECRET: str = Field(..., min_length=1, description="HMAC shared secret")

    @field_validator("API_URL")
    @classmethod
    def validate_url(cls, v):
        """Validate URL format."""
        if not (v.startswith("http://") or v.startswith("https://")):
            raise ValueError("URL must start with http:// or https://")
        return v


# Response models

class ActionInfo(BaseModel):
    """Action shown on the selection screen."""
    id: int
    label: str


class SessionStatus(BaseModel):
    """Current session screen."""
    state: str
    pin_length: int
    display_name: Optional[str] = None
    actions: List[ActionInfo] = Field(default_factory=list)
    result: Optional[str] = None
    error_message: Optional[str] = None
    reset_in: Optional[float] = None
    timestamp: datetime


class TerminalConfigStatus(BaseModel):
    """Stored terminal settings; the secret is never returned."""
    API_URL: Optional[str] = None
    CLIENT_ID: Optional[str] = None
    SHARED_SECRET_SET: bool = False


class APIResponse(BaseModel):
    """Generic API response."""
    success: bool
    message: str
    data: Optional[Dict[str, Any]] = None
    timestamp: datetime
