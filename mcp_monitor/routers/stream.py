from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from ..dependencies import get_websocket_pipeline
from ..logger import logger
from ..pipeline import Pipeline

router = APIRouter(tags=["stream"])


@router.websocket("/ws")
async def event_stream(
    websocket: WebSocket,
    pipeline: Pipeline | None = Depends(get_websocket_pipeline),
):
    """Push every classified log event to the client as a JSON text frame."""
    await websocket.accept()
    if pipeline is None:
        await websocket.close(code=1013, reason="Pipeline not running")
        return

    client_id = await pipeline.hub.connect(websocket)

    if websocket.client_state == WebSocketState.CONNECTED:
        try:
            await websocket.close()
        except (RuntimeError, WebSocketDisconnect) as e:
            logger.debug(f"Socket for {client_id} already closed: {e}")
