"""WebSocket manager for pushing session screens to the display."""

import json
import logging
from typing import List, Dict, Any
from datetime import datetime

from fastapi import WebSocket, WebSocketDisconnect

from kiosk.states import SessionSnapshot


class WebSocketManager:
    """Manages WebSocket connections of the kiosk display."""

    def __init__(self):
        """Initialize WebSocket manager."""
        self.active_connections: List[WebSocket] = []
        self.connection_info: Dict[WebSocket, Dict[str, Any]] = {}
        self.logger = logging.getLogger(__name__)

    async def connect(self, websocket: WebSocket, snapshot: SessionSnapshot = None) -> None:
        """Accept a WebSocket connection and send it the current screen."""
        await websocket.accept()
        self.active_connections.append(websocket)
        self.connection_info[websocket] = {"connected_at": datetime.now()}

        self.logger.info(f"WebSocket connected. Total connections: {len(self.active_connections)}")

        if snapshot is not None:
            await self.send_personal_message(websocket, self._session_message(snapshot))

    def disconnect(self, websocket: WebSocket) -> None:
        """Remove WebSocket connection."""
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)
        self.connection_info.pop(websocket, None)

        self.logger.info(f"WebSocket disconnected. Total connections: {len(self.active_connections)}")

    @staticmethod
    def _session_message(snapshot: SessionSnapshot) -> Dict[str, Any]:
        message = snapshot.to_dict()
        message["type"] = "session_state"
        return message

    async def send_personal_message(self, websocket: WebSocket, message: Dict[str, Any]) -> None:
        """Send message to specific WebSocket connection."""
        # Ensure timestamp is serializable
        if "timestamp" in message and isinstance(message["timestamp"], datetime):
            message["timestamp"] = message["timestamp"].isoformat()

        try:
            await websocket.send_text(json.dumps(message))
        except WebSocketDisconnect:
            self.disconnect(websocket)
        except RuntimeError as e:
            self.logger.error(f"Failed to send personal message: {e}")
            self.disconnect(websocket)

    async def broadcast(self, message: Dict[str, Any]) -> None:
        """Broadcast message to all connected clients."""
        if "timestamp" in message and isinstance(message["timestamp"], datetime):
            message["timestamp"] = message["timestamp"].isoformat()

        message_text = json.dumps(message)

        disconnected = []
        for websocket in self.active_connections:
            try:
                await websocket.send_text(message_text)
            except WebSocketDisconnect:
                disconnected.append(websocket)
            except RuntimeError as e:
                self.logger.error(f"Failed to send broadcast message: {e}")
                disconnected.append(websocket)

        # Clean up disconnected clients
        for websocket in disconnected:
            self.disconnect(websocket)

    async def broadcast_session(self, snapshot: SessionSnapshot) -> None:
        """Session state change callback."""
        await self.broadcast(self._session_message(snapshot))

    async def handle_message(self, websocket: WebSocket, message: str) -> None:
        """Handle incoming WebSocket message."""
        try:
            data = json.loads(message)
        except json.JSONDecodeError:
            await self.send_personal_message(websocket, {
                "type": "error",
                "message": "Invalid JSON message",
                "timestamp": datetime.now()
            })
            return

        message_type = data.get("type") if isinstance(data, dict) else None
        if message_type == "ping":
            await self.send_personal_message(websocket, {
                "type": "pong",
                "timestamp": datetime.now()
            })
        else:
            await self.send_personal_message(websocket, {
                "type": "error",
                "message": f"Unknown message type: {message_type}",
                "timestamp": datetime.now()
            })

    def get_connection_stats(self) -> Dict[str, Any]:
        """Get WebSocket connection statistics."""
        return {
            "total_connections": len(self.active_connections),
            "connections": [
                {"connected_at": info["connected_at"].isoformat()}
                for info in self.connection_info.values()
            ],
            "timestamp": datetime.now().isoformat()
        }

    async def shutdown(self) -> None:
        """Shutdown WebSocket manager."""
        self.logger.info("Shutting down WebSocket manager")

        await self.broadcast({
            "type": "server_shutdown",
            "message": "Server is shutting down",
            "timestamp": datetime.now()
        })

        for websocket in self.active_connections[:]:
            try:
                await websocket.close()
            except RuntimeError:
                # Already closed by the client
                pass

        self.active_connections.clear()
        self.connection_info.clear()
