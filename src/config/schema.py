"""Configuration schema definitions using Pydantic."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class SystemConfig(BaseModel):
    """System-level configuration."""
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    log_dir: str = Field(default="/var/log/ostara")


class TerminalSettings(BaseModel):
    """Endpoint and credentials, stored under the keys the terminal reads."""
    API_URL: Optional[str] = Field(default=None)
    CLIENT_ID: Optional[str] = Field(default=None)
    SHARED_SECRET: Optional[str] = Field(default=None)

    @field_validator("CLIENT_ID", mode="before")
    @classmethod
    def coerce_client_id(cls, v):
        """Accept numeric client ids written by hand into the JSON file."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class KioskConfig(BaseModel):
    """Session timing and startup behaviour."""
    result_display_seconds: float = Field(default=2.0, gt=0, le=60)
    error_display_seconds: float = Field(default=3.0, gt=0, le=60)
    open_config_editor: bool = Field(default=False)


class ExchangeConfig(BaseModel):
    """Remote service request settings."""
    request_timeout: float = Field(default=10.0, ge=1, le=120)
    # Off by default: responses are trusted without checking their signature
    verify_response_signatures: bool = Field(default=False)


class RateLimitConfig(BaseModel):
    """Rate limiting configuration."""
    enabled: bool = Field(default=False)
    requests_per_minute: int = Field(default=60, ge=1, le=1000)


class APIConfig(BaseModel):
    """Gateway server configuration."""
    bind_address: str = Field(default="127.0.0.1")
    bind_port: int = Field(default=8080, ge=1, le=65535)
    auth_required: bool = Field(default=False)
    auth_token: str = Field(default="")
    cors_enabled: bool = Field(default=True)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)


class Config(BaseModel):
    """Main configuration container."""
    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    system: SystemConfig = Field(default_factory=SystemConfig)
    terminal: TerminalSettings = Field(default_factory=TerminalSettings)
    kiosk: KioskConfig = Field(default_factory=KioskConfig)
    exchange: ExchangeConfig = Field(default_factory=ExchangeConfig)
    api: APIConfig = Field(default_factory=APIConfig)
