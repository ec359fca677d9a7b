import asyncio
import json
import logging

import websockets

from pairchat.config import DEFAULT_URI
from pairchat.network import protocol

log = logging.getLogger(__name__)


class TransportLayer:
    def __init__(self, uri=DEFAULT_URI):
        self.uri = uri
        self.websocket = None
        self.on_event_callback = None
        self.on_closed_callback = None
        self._listener = None

    async def connect(self, username: str) -> bool:
        try:
            self.websocket = await websockets.connect(self.uri)
        except (OSError, asyncio.TimeoutError, websockets.exceptions.InvalidHandshake, websockets.exceptions.InvalidURI) as e:
            log.debug(f"Connection to {self.uri} failed: {e}")
            return False
        await self.send_event({"type": protocol.REGISTER, "username": username})
        self._listener = asyncio.create_task(self.listen())
        return True

    async def listen(self):
        try:
            async for message in self.websocket:
                try:
                    data = json.loads(message)
                except json.JSONDecodeError:
                    continue
                if isinstance(data, dict) and self.on_event_callback:
                    await self.on_event_callback(data)
        except websockets.exceptions.ConnectionClosed:
            pass
        if self.on_closed_callback:
            self.on_closed_callback()

    async def send_event(self, event: dict):
        if self.websocket:
            await self.websocket.send(protocol.encode_event(event))

    async def disconnect(self):
        if self.websocket:
            await self.websocket.close()
