import asyncio
import logging
import signal
from typing import Optional, Sequence

import websockets
from websockets.exceptions import ConnectionClosed
from websockets.protocol import State

from pairchat.config import RelayConfig, configure_logging
from pairchat.core.context import RelayContext
from pairchat.core.dispatcher import RelayService

log = logging.getLogger(__name__)


class Link:
    """Transport handle for one WebSocket.

    ``send`` never blocks: frames go onto a bounded queue and ``pump``
    writes them out in order. A full queue or a closing socket drops the frame.
    """

    def __init__(self, websocket, queue_size: int = 256):
        self.ws = websocket
        self.outbox: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self.closed = False
        self._closing = None

    def is_writable(self) -> bool:
        return not self.closed and self.ws.state is State.OPEN

    def send(self, text: str) -> bool:
        if not self.is_writable():
            return False
        try:
            self.outbox.put_nowait(text)
        except asyncio.QueueFull:
            log.warning("Outbound queue full, dropping frame")
            return False
        return True

    def close(self, code: int, reason: str) -> None:
        if self.closed:
            return
        self.closed = True
        self._closing = asyncio.get_running_loop().create_task(self.ws.close(code, reason))

    async def pump(self):
        while True:
            text = await self.outbox.get()
            try:
                await self.ws.send(text)
            except UnicodeEncodeError as e:
                log.warning(f"Dropping frame that cannot be encoded: {e}")
            except ConnectionClosed:
                return


def build_handler(service: RelayService, queue_size: int = 256):
    async def handler(websocket):
        link = Link(websocket, queue_size)
        session = service.open_session(link)
        writer = asyncio.create_task(link.pump())
        log.info("Client connected")
        try:
            async for message in websocket:
                service.handle_frame(session, message)
        except ConnectionClosed:
            pass
        finally:
            link.closed = True
            service.close_session(session)
            writer.cancel()
            log.info("Client connection closed")

    return handler


async def serve(config: RelayConfig, stop: Optional[asyncio.Future] = None):
    ctx = RelayContext.create(config.mode)
    service = RelayService(ctx)
    loop = asyncio.get_running_loop()
    if stop is None:
        stop = loop.create_future()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop.set_result, None)

    async with websockets.serve(build_handler(service, config.queue_size), config.host, config.port):
        log.info(f"PairChat relay ({config.mode.value} mode) listening on ws://{config.host}:{config.port}")
        await stop
    log.info("Relay stopped")


def main(argv: Optional[Sequence[str]] = None):
    config = RelayConfig.from_args(argv)
    configure_logging(config.log_level)
    asyncio.run(serve(config))


if __name__ == "__main__":
    main()
