"""
EditorConnection: the editor's WebSocket channel to the backend.

Commands are appended to an outbox and written by one writer task, in
order. While the socket is not open they stay in the outbox; a send that
hits a closed socket keeps the command at the head of the outbox and
reconnects before retrying it.
"""

import asyncio
from collections import deque
from typing import Callable, Deque, Optional

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.protocol import State

from classgraph.logging_config import logger
from classgraph.protocol.messages import Command, dump_message

CONNECTION_CONFIG = {
    "reconnect_delay": 0.5,
    "open_timeout": 5.0,
}

MessageHandler = Callable[[str], None]


def editor_url(port: int, host: str = "localhost") -> str:
    return f"ws://{host}:{port}/?editor=1"


class EditorConnection:
    """
    Buffered, ordered command channel plus a reader feeding incoming events
    to on_message.
    """

    def __init__(self, url: str, on_message: Optional[MessageHandler] = None, config: Optional[dict] = None):
        self.url = url
        self.on_message = on_message
        self.config = {**CONNECTION_CONFIG, **(config or {})}

        self._outbox: Deque[str] = deque()
        self._pending = asyncio.Event()
        self._websocket: Optional[ClientConnection] = None
        self._writer: Optional[asyncio.Task] = None
        self._reader: Optional[asyncio.Task] = None
        self._closing = False

        # Statistics
        self.commands_sent = 0
        self.connects = 0

    @property
    def is_open(self) -> bool:
        return self._websocket is not None and self._websocket.state is State.OPEN

    def buffered(self) -> int:
        return len(self._outbox)

    def send(self, command: Command) -> None:
        """Queue a command. It is written once the socket is open."""
        self._outbox.append(dump_message(command))
        self._pending.set()

    def start(self) -> asyncio.Task:
        """Start connecting and writing. Must be called from a running loop."""
        if self._writer is None:
            self._closing = False
            self._writer = asyncio.create_task(self._write_loop())
        return self._writer

    async def _open(self) -> Optional[ClientConnection]:
        while not self._closing:
            if self.is_open:
                return self._websocket
            try:
                self._websocket = await connect(self.url, open_timeout=self.config["open_timeout"])
            except (OSError, TimeoutError, WebSocketException) as e:
                logger.debug(f"Editor connection to {self.url} failed: {e}")
                await asyncio.sleep(self.config["reconnect_delay"])
                continue
            self.connects += 1
            logger.info(f"Connected to {self.url} with {len(self._outbox)} buffered commands")
            self._reader = asyncio.create_task(self._read(self._websocket))
            return self._websocket
        return None

    async def _write_loop(self) -> None:
        await self._open()
        while not self._closing:
            if not self._outbox:
                self._pending.clear()
                await self._pending.wait()
                continue
            websocket = await self._open()
            if websocket is None:
                return
            frame = self._outbox[0]
            try:
                await websocket.send(frame)
            except ConnectionClosed as e:
                logger.warning(f"Editor connection closed ({e}), reconnecting")
                continue
            self._outbox.popleft()
            self.commands_sent += 1

    async def _read(self, websocket: ClientConnection) -> None:
        try:
            async for message in websocket:
                if self.on_message is not None:
                    self.on_message(message)
        except ConnectionClosed as e:
            logger.debug(f"Editor reader stopped: {e}")
        if not self._closing and self._outbox:
            self._pending.set()

    async def drain(self) -> None:
        """Wait until the outbox is empty."""
        while self._outbox:
            await asyncio.sleep(0.01)

    async def close(self) -> None:
        self._closing = True
        self._pending.set()
        if self._writer is not None:
            await self._writer
            self._writer = None
        if self._websocket is not None:
            await self._websocket.close()
            self._websocket = None
        if self._reader is not None:
            await self._reader
            self._reader = None
