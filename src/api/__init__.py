"""Ostara Kiosk Gateway - REST and WebSocket front of the session."""

from .gateway import APIGateway
from .websocket import WebSocketManager
from .middleware import AuthMiddleware, RateLimitMiddleware

__all__ = ["APIGateway", "WebSocketManager", "AuthMiddleware", "RateLimitMiddleware"]
