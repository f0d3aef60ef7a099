"""WebSocket endpoint streaming form session notifications."""

import json

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

import structlog

from healthmate.services.notifications import notification_bus

logger = structlog.get_logger()

router = APIRouter()


def _reply_to(message) -> dict:
    """Answer one client message. Only keep-alive pings are understood."""
    if isinstance(message, dict) and message.get("type") == "ping":
        return {"type": "pong"}
    return {"type": "error", "message": "Unsupported message"}


@router.websocket("/ws/form-sessions/{session_id}")
async def form_session_websocket(websocket: WebSocket, session_id: str):
    """Stream submit notifications (toasts) for one form session.

    Protocol:
        Server → Client: submission_started, notification, session_closed
        Client → Server: {"type": "ping"}

    A connecting client first receives the session's notification history.
    """
    if websocket.app.state.form_sessions.get(session_id) is None:
        await websocket.close(code=4404)
        return

    await websocket.accept()
    logger.info("ws_connected", session_id=session_id)

    async def forward(event: dict):
        await websocket.send_json(event)

    notification_bus.subscribe(session_id, forward)
    try:
        history = notification_bus.get_history(session_id)
        if history:
            await websocket.send_json({"type": "event_history", "events": history, "count": len(history)})

        while True:
            try:
                message = await websocket.receive_json()
            except json.JSONDecodeError:
                await websocket.send_json({"type": "error", "message": "Invalid JSON"})
                continue
            await websocket.send_json(_reply_to(message))

    except WebSocketDisconnect:
        logger.info("ws_disconnected", session_id=session_id)
    finally:
        notification_bus.unsubscribe(session_id, forward)
