"""Ostara Kiosk - PIN session state machine and service."""

from .session import KioskSession
from .states import SessionState, SessionSnapshot
from .scheduler import ResetScheduler

__all__ = ["KioskSession", "SessionState", "SessionSnapshot", "ResetScheduler"]
