"""
Route registration for the pileup API.

Responsibilities:
- Define HTTP and WebSocket endpoints
- Wire a SessionGateway and a writer task to each WebSocket
- Pull shared dependencies from app.state
"""

from __future__ import annotations

import asyncio
import time

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from observability.logger import log_event
from session.gateway import SessionGateway
from store.runtime import PileupRuntime


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def register_routes(app: FastAPI) -> None:
    """Register all routes on the FastAPI app."""
    @app.get("/health")
    async def health() -> dict[str, object]: # pyright: ignore[reportUnusedFunction]
        runtime: PileupRuntime = app.state.runtime
        return {
            "status": "ok",
            "sessions": len(runtime.registry),
            "backlog": len(runtime.state.backlog),
        }

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket) -> None: # pyright: ignore[reportUnusedFunction]
        """
        One connection = one participant session = one gateway.

        Inbound messages are handled inline, one at a time; outbound
        messages are flushed by the session's writer task.
        """
        await ws.accept()

        gateway = SessionGateway(runtime=app.state.runtime)
        session = gateway.on_ws_connect(ws)
        writer = asyncio.create_task(session.run_writer(ws.send_text))

        try:
            while True:
                msg = await ws.receive()

                if msg["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(code=msg.get("code", 1000))

                if msg.get("text") is not None:
                    gateway.on_json_message(msg["text"])

                elif msg.get("bytes") is not None:
                    gateway.on_binary_message(msg["bytes"])

        except WebSocketDisconnect:
            gateway.on_ws_disconnect(reason="client_disconnect")

        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "ts_ms": _now_ms(),
                "level": "ERROR",
                "event_type": "WS_FATAL_ERROR",
                "session_id": session.session_id,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            gateway.on_ws_disconnect(reason="server_error")

        finally:
            writer.cancel()
            await asyncio.gather(writer, return_exceptions=True)
