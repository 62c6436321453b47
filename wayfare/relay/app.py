"""
Relay ASGI application

One WebSocket endpoint (/ws) speaking JSON text frames:

    {"event": "join-room", "data": {"conversationId": "..."}}
"""

import json
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect, status
from fastapi.middleware.cors import CORSMiddleware

from ..config import settings
from ..utils.logging_config import setup_logging
from .server import MessageRelay, relay as default_relay

logger = logging.getLogger(__name__)


class WebSocketConnection:
    """Adapts a Starlette WebSocket to the relay's connection interface"""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self.id = str(uuid.uuid4())[:8]

    async def send_event(self, event: str, data: dict) -> None:
        await self.websocket.send_text(json.dumps({"event": event, "data": data}, default=str))

    def __repr__(self):
        return f"<WebSocketConnection {self.id}>"


def origin_allowed(origin: Optional[str]) -> bool:
    # Non-browser clients send no Origin header
    if not origin:
        return True
    return origin.rstrip("/") in settings.cors_origins


def create_relay_app(relay: Optional[MessageRelay] = None) -> FastAPI:
    relay = relay or default_relay

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(level=settings.log_level, json_format=settings.log_json)
        logger.info(f"Relay listening on port {settings.websocket_port}")
        logger.info(f"Relay allowed origins: {settings.cors_origins}")
        yield
        logger.info("Relay shutting down")

    app = FastAPI(title="Wayfare Relay", version="1.0.0", lifespan=lifespan)
    app.state.relay = relay

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "connections": relay.registry.connection_count,
            "rooms": relay.registry.room_count,
        }

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        if not origin_allowed(websocket.headers.get("origin")):
            logger.warning(f"Rejected WebSocket from origin {websocket.headers.get('origin')}")
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

        await websocket.accept()
        connection = WebSocketConnection(websocket)
        await relay.connect(connection)
        logger.debug(f"Connected {connection}")

        try:
            while True:
                raw = await websocket.receive_text()
                try:
                    frame = json.loads(raw)
                except json.JSONDecodeError:
                    await relay.send_error(connection, "Malformed frame")
                    continue

                if not isinstance(frame, dict) or "event" not in frame:
                    await relay.send_error(connection, "Malformed frame")
                    continue

                await relay.dispatch(connection, frame.get("event"), frame.get("data"))
        except WebSocketDisconnect:
            pass
        finally:
            await relay.disconnect(connection)
            logger.debug(f"Disconnected {connection}")

    return app


app = create_relay_app()
