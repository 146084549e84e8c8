"""Ostara Configuration Management Module."""

from .manager import ConfigManager
from .schema import Config, TerminalSettings, KioskConfig, ExchangeConfig, APIConfig

__all__ = ["ConfigManager", "Config", "TerminalSettings", "KioskConfig", "ExchangeConfig", "APIConfig"]
