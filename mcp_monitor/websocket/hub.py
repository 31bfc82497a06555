"""
Broadcast hub for websocket subscribers.
Pushes every classified log event to all connected clients.
"""

import asyncio
import uuid
from typing import Dict

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from ..events.base import LogEvent
from ..logger import log_exception, logger


class BroadcastHub:
    """Registry of connected websocket subscribers.

    Subscribers that fail a send, or are no longer connected, are evicted
    after the broadcast that noticed it. One failing subscriber never stops
    delivery to the others.
    """

    def __init__(self, send_timeout: float = 5.0, close_timeout: float = 1.0):
        self.send_timeout = send_timeout
        self.close_timeout = close_timeout
        self._clients: Dict[str, WebSocket] = {}
        self._receivers: Dict[str, asyncio.Task] = {}
        self._disposed = False

    @property
    def client_count(self) -> int:
        return len(self._clients)

    async def connect(self, websocket: WebSocket) -> str:
        """Register an accepted websocket and serve it until it disconnects.

        Returns the subscriber id once the connection is gone.
        """
        client_id = str(uuid.uuid4())
        if self._disposed:
            await self._close(client_id, websocket, 1001, "Server shutting down")
            return client_id

        self._clients[client_id] = websocket
        receiver = asyncio.create_task(
            self._receive_loop(client_id, websocket), name=f"ws:{client_id}"
        )
        self._receivers[client_id] = receiver
        logger.info(f"New WebSocket client connected: {client_id}")

        try:
            await receiver
        except asyncio.CancelledError:
            if not receiver.done():
                receiver.cancel()
                raise
        finally:
            self._clients.pop(client_id, None)
            self._receivers.pop(client_id, None)
            logger.info(f"WebSocket client disconnected: {client_id}")
        return client_id

    async def _receive_loop(self, client_id: str, websocket: WebSocket) -> None:
        """Wait for the close frame; inbound data frames are ignored."""
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    return
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"WebSocket error for client {client_id}: {e}")

    async def broadcast(self, event: LogEvent) -> int:
        """Send ``event`` to every subscriber.

        Returns the number of subscribers that received it.
        """
        payload = event.to_json()
        return await self.broadcast_text(payload)

    async def broadcast_text(self, payload: str) -> int:
        clients = list(self._clients.items())
        if not clients:
            return 0

        results = await asyncio.gather(
            *(self._send(client_id, ws, payload) for client_id, ws in clients)
        )

        dead = [client_id for (client_id, _), ok in zip(clients, results) if not ok]
        for client_id in dead:
            if self._clients.pop(client_id, None) is not None:
                logger.info(f"Removed dead WebSocket client: {client_id}")
                receiver = self._receivers.pop(client_id, None)
                if receiver is not None:
                    receiver.cancel()
        return len(clients) - len(dead)

    async def _send(self, client_id: str, websocket: WebSocket, payload: str) -> bool:
        if websocket.client_state != WebSocketState.CONNECTED:
            return False
        try:
            await asyncio.wait_for(websocket.send_text(payload), timeout=self.send_timeout)
            return True
        except TimeoutError:
            logger.warning(f"Send to WebSocket client {client_id} timed out")
            return False
        except Exception as e:
            logger.debug(f"Send to WebSocket client {client_id} failed: {e}")
            return False

    async def dispose(self) -> None:
        """Cancel all receive loops, close every socket and clear the registry."""
        self._disposed = True
        clients = list(self._clients.items())
        receivers = list(self._receivers.values())
        for receiver in receivers:
            receiver.cancel()
        if receivers:
            await asyncio.gather(*receivers, return_exceptions=True)

        await asyncio.gather(
            *(
                self._close(client_id, ws, 1001, "Server shutting down")
                for client_id, ws in clients
            )
        )
        self._clients.clear()
        self._receivers.clear()
        logger.info(f"Broadcast hub disposed, closed {len(clients)} clients")

    @log_exception("Closing WebSocket client {client_id}")
    async def _close(
        self, client_id: str, websocket: WebSocket, code: int, reason: str
    ) -> None:
        if websocket.client_state != WebSocketState.CONNECTED:
            return
        await asyncio.wait_for(
            websocket.close(code=code, reason=reason), timeout=self.close_timeout
        )
