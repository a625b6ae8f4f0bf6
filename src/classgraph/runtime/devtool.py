"""
Devtool: the reporting channel from an instrumented program to the editor
backend.

A daemon thread owns a synchronous WebSocket connection. Outgoing messages
are queued in order and stay queued while the backend is unreachable; they
are flushed on every (re)connect. Incoming run-action commands call the
named action on the live instance.
"""

import threading
from collections import deque
from typing import Any, Deque, Optional

from pydantic import BaseModel, ValidationError
from websockets.exceptions import WebSocketException
from websockets.sync.client import ClientConnection, connect

from classgraph.logging_config import logger
from classgraph.protocol.messages import RunActionCommand, dump_message, parse_command
from .config import RUNTIME_CONFIG


def to_wire_value(value: Any) -> Any:
    """Convert a reported value into plain JSON data."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, dict):
        return {str(key): to_wire_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_wire_value(item) for item in value]
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    return repr(value)


class Devtool:
    """
    Ordered, buffering sender of app messages.
    """

    def __init__(self, address: str, container: Any = None, config: Optional[dict] = None):
        """
        Args:
            address: host:port of the backend, or a full ws:// URL
            container: Container whose actions can be run remotely
            config: Optional overrides for RUNTIME_CONFIG
        """
        self.url = address if address.startswith(("ws://", "wss://")) else f"ws://{address}"
        self.container = container
        self.config = {**RUNTIME_CONFIG, **(config or {})}

        self._outbox: Deque[str] = deque()
        self._lock = threading.Lock()
        self._closing = threading.Event()
        self._thread: Optional[threading.Thread] = None

        self.connected = threading.Event()
        self.messages_sent = 0

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name="classgraph-devtool", daemon=True)
        self._thread.start()
        logger.debug(f"Devtool reporting to {self.url}")

    def send(self, message: BaseModel) -> None:
        frame = dump_message(message)
        with self._lock:
            self._outbox.append(frame)

    def pending(self) -> int:
        with self._lock:
            return len(self._outbox)

    def _run(self) -> None:
        while not self._closing.is_set():
            try:
                with connect(
                    self.url,
                    open_timeout=self.config["open_timeout"],
                    close_timeout=self.config["close_timeout"],
                ) as websocket:
                    self.connected.set()
                    logger.info(f"Devtool connected to {self.url}")
                    self._serve(websocket)
            except (OSError, TimeoutError, WebSocketException) as e:
                logger.debug(f"Devtool connection to {self.url} unavailable: {e}")
            finally:
                self.connected.clear()
            self._closing.wait(self.config["reconnect_delay"])

    def _serve(self, websocket: ClientConnection) -> None:
        while not self._closing.is_set():
            self._flush(websocket)
            try:
                raw = websocket.recv(timeout=self.config["poll_interval"])
            except TimeoutError:
                continue
            self._handle(raw)
        self._flush(websocket)

    def _flush(self, websocket: ClientConnection) -> None:
        # A message leaves the queue only after it was handed to the socket
        while True:
            with self._lock:
                if not self._outbox:
                    return
                frame = self._outbox[0]
            websocket.send(frame)
            with self._lock:
                self._outbox.popleft()
            self.messages_sent += 1

    def _handle(self, raw) -> None:
        try:
            command = parse_command(raw)
        except ValidationError as e:
            logger.warning(f"Devtool ignored message: {e}")
            return
        if not isinstance(command, RunActionCommand) or self.container is None:
            return
        try:
            self.container.run_action(command.data.instance_id, command.data.name)
        except Exception as e:
            logger.error(f"Action {command.data.name} on #{command.data.instance_id} failed: {e}")

    def close(self) -> None:
        """Stop the thread, flushing queued messages if connected."""
        self._closing.set()
        if self._thread is not None:
            self._thread.join(timeout=self.config["flush_timeout"])
            self._thread = None
        logger.debug(f"Devtool closed with {self.pending()} unsent messages")
