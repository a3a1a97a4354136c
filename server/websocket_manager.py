"""
websocket_manager.py — WebSocket connection manager for simulation updates.
"""
from __future__ import annotations

import itertools
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks listeners and broadcasts simulation snapshots to them."""

    def __init__(self):
        self._connections: Dict[int, WebSocket] = {}    # client_id -> ws
        self._channels: Dict[str, Set[int]] = {}        # simulation_id -> {client_ids}
        self._ids = itertools.count(1)

    async def connect(self, websocket: WebSocket) -> int:
        await websocket.accept()
        client_id = next(self._ids)
        self._connections[client_id] = websocket
        logger.info("WebSocket client %d connected", client_id)
        return client_id

    def disconnect(self, client_id: int):
        if self._connections.pop(client_id, None) is not None:
            logger.info("WebSocket client %d disconnected", client_id)
        for members in self._channels.values():
            members.discard(client_id)

    async def send_personal(self, client_id: int, message: dict):
        ws = self._connections.get(client_id)
        if ws:
            try:
                await ws.send_json(message)
            except Exception:
                logger.exception("Dropping client %d after failed send", client_id)
                self.disconnect(client_id)

    async def broadcast(self, message: dict):
        disconnected = []
        for cid, ws in list(self._connections.items()):
            try:
                await ws.send_json(message)
            except Exception:
                logger.exception("Dropping client %d after failed broadcast", cid)
                disconnected.append(cid)
        for cid in disconnected:
            self.disconnect(cid)

    async def broadcast_to_channel(self, channel: str, message: dict):
        for cid in list(self._channels.get(channel, set())):
            await self.send_personal(cid, message)

    def join_channel(self, client_id: int, channel: str):
        self._channels.setdefault(channel, set()).add(client_id)

    def drop_channel(self, channel: str):
        self._channels.pop(channel, None)

    def channel_members(self, channel: str) -> Set[int]:
        return set(self._channels.get(channel, ()))

    def get_connected(self) -> List[int]:
        return list(self._connections.keys())

    @staticmethod
    def make_event(event_type: str, data: Any = None) -> dict:
        return {
            "type": event_type,
            "data": data or {},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
