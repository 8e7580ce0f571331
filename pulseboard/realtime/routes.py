"""
Pulseboard - Real-Time Endpoint

Single upgraded endpoint; authentication happens inside the connection
with an `auth` message, not on the handshake.
"""

from fastapi import APIRouter, WebSocket


router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def realtime(websocket: WebSocket):
    await websocket.app.state.hub.serve(websocket)
