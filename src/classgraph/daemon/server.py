"""
EditorBackend: the WebSocket server editors and instrumented programs
connect to.

    ws://localhost:5051/?editor=1   editor sessions (commands in, events out)
    ws://localhost:5051/            instrumented programs (app messages in)

Everything sent to editors goes through one queue drained by a pump task,
so editors see events in the order they were produced, whether they come
from a command, the directory watcher or a running program.
"""

import asyncio
from pathlib import Path
from typing import Optional, Set, Tuple
from urllib.parse import parse_qs, urlsplit

from pydantic import BaseModel, ValidationError
from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.exceptions import ConnectionClosed

from classgraph.logging_config import logger
from classgraph.paths import ClassgraphPaths
from classgraph.protocol.messages import (
    AppEvent,
    ClassDeleteEvent,
    ClassNewEvent,
    ClassUpdateEvent,
    DisconnectEvent,
    dump_message,
    parse_app_message,
)
from classgraph.schemas import ExtractedClass
from classgraph.watcher.synchronizer import DirectorySynchronizer, SyncListeners
from .config import SERVER_CONFIG
from .handlers import CommandHandler

Outgoing = Tuple[BaseModel, Optional[ServerConnection]]


class EditorBackend:
    """
    Editor backend server.
    """

    def __init__(
        self,
        project_root: Path,
        host: Optional[str] = None,
        port: Optional[int] = None,
        config: Optional[dict] = None,
        synchronizer: Optional[DirectorySynchronizer] = None,
    ):
        """
        Initialize the backend.

        Args:
            project_root: Project holding the app/ directory
            host: Host to bind to (default: localhost)
            port: Port to bind to; 0 picks a free port
            config: Optional overrides for SERVER_CONFIG
            synchronizer: Optional pre-built synchronizer
        """
        self.config = {**SERVER_CONFIG, **(config or {})}
        self.host = host or self.config["host"]
        self.port = self.config["port"] if port is None else port
        self.paths = ClassgraphPaths(Path(project_root))
        self.synchronizer = synchronizer or DirectorySynchronizer(self.paths)
        self.handlers = CommandHandler(self)

        self.editors: Set[ServerConnection] = set()
        self.apps: Set[ServerConnection] = set()

        self._outgoing: "asyncio.Queue[Optional[Outgoing]]" = asyncio.Queue()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._pump: Optional[asyncio.Task] = None
        self._server: Optional[Server] = None

        # Statistics
        self.events_sent = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> int:
        """
        Load the project, start watching and listen for connections.

        Returns:
            The bound port
        """
        self._loop = asyncio.get_running_loop()
        self._pump = asyncio.create_task(self._pump_events())

        listeners = SyncListeners(
            on_class_change=self._on_class_change,
            on_class_create=self._on_class_create,
            on_class_delete=self._on_class_delete,
        )
        await asyncio.to_thread(self.synchronizer.initialize, listeners, self.config["watch"])

        self._server = await serve(self._handle_connection, self.host, self.port)
        self.port = self._server.sockets[0].getsockname()[1]
        logger.info(f"Editor backend listening on ws://{self.host}:{self.port}")
        return self.port

    async def serve_forever(self) -> None:
        if self._server is None:
            await self.start()
        await self._server.serve_forever()

    async def stop(self) -> None:
        if self._server is not None:
            self._server.close()
            await asyncio.wait_for(self._server.wait_closed(), self.config["shutdown_timeout"])
            self._server = None
        if self._pump is not None:
            self._outgoing.put_nowait(None)
            await self._pump
            self._pump = None
        await asyncio.to_thread(self.synchronizer.dispose)
        logger.info("Editor backend stopped")

    # ------------------------------------------------------------------
    # Outgoing events
    # ------------------------------------------------------------------

    async def publish(self, event: BaseModel, target: Optional[ServerConnection] = None) -> None:
        """Queue an event for every editor, or only for target."""
        await self._outgoing.put((event, target))

    def publish_threadsafe(self, event: BaseModel) -> None:
        self._loop.call_soon_threadsafe(self._outgoing.put_nowait, (event, None))

    async def drain(self) -> None:
        """Wait until every queued event has been sent."""
        await self._outgoing.join()

    async def _pump_events(self) -> None:
        while True:
            item = await self._outgoing.get()
            try:
                if item is None:
                    return
                event, target = item
                frame = dump_message(event)
                recipients = [target] if target is not None else list(self.editors)
                for connection in recipients:
                    try:
                        await connection.send(frame)
                    except ConnectionClosed:
                        self.editors.discard(connection)
                self.events_sent += 1
            finally:
                self._outgoing.task_done()

    async def forward_to_apps(self, message: BaseModel) -> None:
        frame = dump_message(message)
        for connection in list(self.apps):
            try:
                await connection.send(frame)
            except ConnectionClosed:
                self.apps.discard(connection)

    # Synchronizer listeners (called from watcher or worker threads)

    def _on_class_change(self, extracted: ExtractedClass) -> None:
        self.publish_threadsafe(ClassUpdateEvent(data=self.synchronizer.get_class(extracted.class_id)))

    def _on_class_create(self, extracted: ExtractedClass) -> None:
        self.publish_threadsafe(ClassNewEvent(data=extracted))

    def _on_class_delete(self, class_id: str) -> None:
        self.publish_threadsafe(ClassDeleteEvent(data=class_id))

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    def is_editor(self, connection: ServerConnection) -> bool:
        query = parse_qs(urlsplit(connection.request.path).query)
        return query.get(self.config["editor_query"]) == ["1"]

    async def _handle_connection(self, connection: ServerConnection) -> None:
        if self.is_editor(connection):
            await self._serve_editor(connection)
        else:
            await self._serve_app(connection)

    async def _serve_editor(self, connection: ServerConnection) -> None:
        self.editors.add(connection)
        logger.info(f"Editor connected ({len(self.editors)} total)")
        try:
            async for message in connection:
                await self.handlers.dispatch(connection, message)
        except ConnectionClosed as e:
            logger.debug(f"Editor connection closed: {e}")
        finally:
            self.editors.discard(connection)
            logger.info("Editor disconnected")

    async def _serve_app(self, connection: ServerConnection) -> None:
        self.apps.add(connection)
        logger.info("Application connected")
        try:
            async for message in connection:
                try:
                    app_message = parse_app_message(message)
                except ValidationError as e:
                    logger.warning(f"Invalid app message: {e}")
                    continue
                await self.publish(AppEvent(data=app_message))
        except ConnectionClosed as e:
            logger.debug(f"Application connection closed: {e}")
        finally:
            self.apps.discard(connection)
            logger.info("Application disconnected")
            await self.publish(DisconnectEvent())
