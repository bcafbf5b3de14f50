"""In-process pub/sub for community channels over WebSockets.

Each community has one channel; clients subscribe through the websocket
endpoint and receive ``{"event": ..., "data": ...}`` frames. The hub only
lives inside one process, so every API worker serves its own subscribers.
"""

from collections import defaultdict
from typing import Any

import structlog
from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

logger = structlog.get_logger(__name__)


def community_channel(community_id: int) -> str:
    return f"community:{community_id}"


class ChannelHub:
    def __init__(self):
        self._channels: dict[str, set[WebSocket]] = defaultdict(set)

    async def connect(self, channel: str, websocket: WebSocket) -> None:
        await websocket.accept()
        self._channels[channel].add(websocket)
        logger.info("Subscriber joined", channel=channel, subscribers=len(self._channels[channel]))

    def disconnect(self, channel: str, websocket: WebSocket) -> None:
        subscribers = self._channels.get(channel)
        if not subscribers:
            return
        subscribers.discard(websocket)
        if not subscribers:
            del self._channels[channel]

    def subscriber_count(self, channel: str) -> int:
        return len(self._channels.get(channel, ()))

    async def broadcast(self, channel: str, event: str, data: Any) -> int:
        """Send an event to every subscriber of the channel. Returns deliveries."""
        message = {"event": event, "data": jsonable_encoder(data)}
        delivered = 0
        for websocket in list(self._channels.get(channel, ())):
            try:
                await websocket.send_json(message)
                delivered += 1
            except Exception as e:
                logger.warning("Dropping dead subscriber", channel=channel, error=str(e))
                self.disconnect(channel, websocket)
        logger.debug("Broadcast sent", channel=channel, event_name=event, delivered=delivered)
        return delivered


hub = ChannelHub()
