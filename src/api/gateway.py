"""Kiosk gateway: REST events in, session screens out over WebSocket."""

import logging
from typing import Optional
from datetime import datetime

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from .websocket import WebSocketManager
from .middleware import AuthMiddleware, RateLimitMiddleware
from .models import (
    DigitRequest, ActionSelectRequest, TerminalConfigRequest,
    SessionStatus, TerminalConfigStatus, APIResponse
)
from config import ConfigManager
from config.schema import APIConfig
from kiosk.session import KioskSession
from kiosk.states import SessionState


class APIGateway:
    """HTTP and WebSocket front of a :class:`KioskSession`."""

    def __init__(self, session: KioskSession, config_manager: ConfigManager,
                 api_config: Optional[APIConfig] = None):
        """Initialize API gateway."""
        self.session = session
        self.config_manager = config_manager
        self.api_config = api_config or APIConfig()
        self.logger = logging.getLogger(__name__)

        self.websocket_manager = WebSocketManager()
        self.session.add_state_change_callback(self.websocket_manager.broadcast_session)

        self.server: Optional[uvicorn.Server] = None
        self.running = False

        self.app = self._create_app()
        self._setup_routes()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application."""
        app = FastAPI(
            title="Ostara Kiosk",
            description="PIN terminal session API",
            version="1.0.0",
        )

        if self.api_config.cors_enabled:
            app.add_middleware(
                CORSMiddleware,
                allow_origins=["*"],
                allow_credentials=True,
                allow_methods=["*"],
                allow_headers=["*"],
            )

        if self.api_config.rate_limit.enabled:
            app.add_middleware(
                RateLimitMiddleware,
                requests_per_minute=self.api_config.rate_limit.requests_per_minute
            )

        if self.api_config.auth_required:
            app.add_middleware(
                AuthMiddleware,
                auth_token=self.api_config.auth_token
            )

        return app

    def _status(self) -> SessionStatus:
        return SessionStatus(**self.session.snapshot().to_dict())

    def _rejected(self, event: str) -> HTTPException:
        state = self.session.state.name.lower()
        return HTTPException(status_code=409, detail=f"{event} not accepted in state {state}")

    def _setup_routes(self) -> None:
        """Set up API routes."""

        @self.app.get("/health")
        async def health_check():
            """Health check endpoint."""
            return {
                "status": "healthy",
                "session_state": self.session.state.name.lower(),
                "websocket": self.websocket_manager.get_connection_stats()["total_connections"],
                "timestamp": datetime.now()
            }

        @self.app.websocket("/ws")
        async def websocket_endpoint(websocket: WebSocket):
            """Screen updates for the display."""
            await self.websocket_manager.connect(websocket, self.session.snapshot())
            try:
                while True:
                    data = await websocket.receive_text()
                    await self.websocket_manager.handle_message(websocket, data)
            except WebSocketDisconnect:
                self.websocket_manager.disconnect(websocket)

        # Session events

        @self.app.get("/api/v1/session", response_model=SessionStatus)
        async def get_session():
            """Get the current screen."""
            return self._status()

        @self.app.post("/api/v1/session/start", response_model=SessionStatus)
        async def start_session():
            """Leave the welcome screen."""
            if not await self.session.start():
                raise self._rejected("Start")
            return self._status()

        @self.app.post("/api/v1/session/digit", response_model=SessionStatus)
        async def press_digit(request: DigitRequest):
            """Enter one PIN digit; the fourth one authenticates."""
            if not await self.session.append_digit(request.digit):
                raise self._rejected("Digit")
            return self._status()

        @self.app.post("/api/v1/session/action", response_model=SessionStatus)
        async def select_action(request: ActionSelectRequest):
            """Submit one of the resolved actions."""
            if not await self.session.select_action(request.action_id):
                raise self._rejected("Action")
            return self._status()

        @self.app.post("/api/v1/session/reset", response_model=SessionStatus)
        async def reset_session():
            """Abandon PIN entry or action selection."""
            if not await self.session.reset():
                raise self._rejected("Reset")
            return self._status()

        # Configuration editor

        @self.app.post("/api/v1/config/edit", response_model=SessionStatus)
        async def open_config_editor():
            """Show the configuration editor."""
            if not await self.session.open_config_editor():
                raise self._rejected("Config edit")
            return self._status()

        @self.app.get("/api/v1/config/terminal", response_model=TerminalConfigStatus)
        async def get_terminal_config():
            """Get the stored endpoint and client id."""
            return TerminalConfigStatus(
                API_URL=self.config_manager.get("API_URL"),
                CLIENT_ID=self.config_manager.get("CLIENT_ID"),
                SHARED_SECRET_SET=self.config_manager.get("SHARED_SECRET") is not None,
            )

        @self.app.put("/api/v1/config/terminal", response_model=APIResponse)
        async def save_terminal_config(request: TerminalConfigRequest):
            """Save the editor's values and leave the editor."""
            if self.session.state != SessionState.CONFIG_EDITING:
                raise self._rejected("Config save")

            saved = await self.config_manager.update_terminal(
                request.API_URL, str(request.CLIENT_ID), request.SHARED_SECRET
            )
            if not saved:
                raise HTTPException(status_code=500, detail="Failed to save configuration")

            await self.session.close_config_editor()
            return APIResponse(
                success=self.session.state == SessionState.IDLE,
                message="Configuration saved",
                data={"state": self.session.state.name.lower()},
                timestamp=datetime.now()
            )

    async def start(self) -> None:
        """Start the gateway server."""
        self.logger.info(f"Starting gateway on {self.api_config.bind_address}:{self.api_config.bind_port}")

        server_config = uvicorn.Config(
            app=self.app,
            host=self.api_config.bind_address,
            port=self.api_config.bind_port,
            log_level="info",
            access_log=False
        )

        self.server = uvicorn.Server(server_config)
        self.running = True
        await self.server.serve()

    async def stop(self) -> None:
        """Stop the gateway."""
        self.logger.info("Stopping gateway")
        self.running = False

        if self.server:
            self.server.should_exit = True

        self.session.remove_state_change_callback(self.websocket_manager.broadcast_session)
        await self.websocket_manager.shutdown()
