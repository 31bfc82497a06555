from fastapi import HTTPException, Request, WebSocket, status

from .pipeline import Pipeline


def _pipeline_from_state(state) -> Pipeline | None:
    return getattr(state, "pipeline", None)


def get_pipeline(request: Request) -> Pipeline:
    """HTTP dependency returning the running pipeline."""
    pipeline = _pipeline_from_state(request.app.state)
    if pipeline is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Pipeline not running",
        )
    return pipeline


def get_websocket_pipeline(websocket: WebSocket) -> Pipeline | None:
    """WebSocket dependency; None lets the endpoint refuse the connection itself."""
    return _pipeline_from_state(websocket.app.state)
