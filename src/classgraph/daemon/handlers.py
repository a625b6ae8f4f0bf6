"""
Command handlers for the editor backend.

Maps each editor command type to one handler. Source mutations are blocking
file operations and run in a worker thread; the resulting class changes
reach editors through the synchronizer listeners.
"""

import asyncio
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List

import typer
from pydantic import ValidationError
from websockets.asyncio.server import ServerConnection

from classgraph.exceptions import ClassgraphError, DuplicateClassError
from classgraph.logging_config import logger
from classgraph.protocol.messages import (
    ClassDeleteCommand,
    ClassesEvent,
    ClassNewCommand,
    ClassOpenCommand,
    ClassRenameCommand,
    ClassUpdateCommand,
    InitCommand,
    InitEvent,
    InjectCommand,
    InjectRemoveCommand,
    InjectReplaceCommand,
    RunActionCommand,
    ToggleMixinCommand,
    parse_command,
)
from classgraph.schemas import BackendStatus

if TYPE_CHECKING:
    from .server import EditorBackend

Handler = Callable[[ServerConnection, Any], Awaitable[None]]


class CommandHandler:
    """
    Registry of editor command handlers.
    """

    def __init__(self, backend: "EditorBackend"):
        self.backend = backend
        self.synchronizer = backend.synchronizer
        self.mutator = backend.synchronizer.mutator

        # Command registry: command type -> handler
        self.methods: Dict[str, Handler] = {
            "init": self.init,
            "class-new": self.class_new,
            "class-update": self.class_update,
            "inject": self.inject,
            "inject-replace": self.inject_replace,
            "inject-remove": self.inject_remove,
            "class-open": self.class_open,
            "run-action": self.run_action,
            "toggle-mixin": self.toggle_mixin,
            "class-delete": self.class_delete,
            "class-rename": self.class_rename,
        }

        # Statistics
        self.commands_handled = 0
        self.commands_failed = 0

    async def dispatch(self, connection: ServerConnection, raw: str) -> bool:
        """
        Parse and run one command. Failures are logged; the connection stays open.

        Returns:
            True if the command ran successfully
        """
        try:
            command = parse_command(raw)
        except ValidationError as e:
            self.commands_failed += 1
            logger.warning(f"Invalid command: {e}")
            return False

        try:
            await self.methods[command.type](connection, command)
        except ClassgraphError as e:
            self.commands_failed += 1
            logger.error(f"{command.type} failed: {e}")
            return False
        except OSError as e:
            self.commands_failed += 1
            logger.error(f"{command.type} failed on disk: {e}")
            return False

        self.commands_handled += 1
        return True

    def _dependents_of(self, class_id: str) -> List[str]:
        return [
            other.class_id
            for other in self.synchronizer.get_classes().values()
            if other.class_id != class_id and any(i.class_id == class_id for i in other.injectors)
        ]

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def init(self, connection: ServerConnection, command: InitCommand) -> None:
        status = BackendStatus(status="ready", path=str(self.synchronizer.paths.project_root))
        await self.backend.publish(InitEvent(data=status), connection)
        await self.backend.publish(ClassesEvent(data=self.synchronizer.get_classes()), connection)

    async def class_new(self, connection: ServerConnection, command: ClassNewCommand) -> None:
        data = command.data
        if data.class_id in self.synchronizer.classes:
            raise DuplicateClassError(data.class_id)

        def create() -> None:
            self.mutator.create_class(data.class_id)
            self.synchronizer.write_metadata(data.class_id, data.x, data.y)
            self.synchronizer.refresh_class(data.class_id)

        await asyncio.to_thread(create)

    async def class_update(self, connection: ServerConnection, command: ClassUpdateCommand) -> None:
        data = command.data
        await asyncio.to_thread(self.synchronizer.write_metadata, data.class_id, data.x, data.y)

    async def inject(self, connection: ServerConnection, command: InjectCommand) -> None:
        data = command.data

        def add() -> None:
            self.mutator.add_injector(data.to_class_id, data.from_class_id)
            self.synchronizer.refresh_class(data.to_class_id)

        await asyncio.to_thread(add)

    async def inject_replace(self, connection: ServerConnection, command: InjectReplaceCommand) -> None:
        data = command.data

        def replace() -> None:
            self.mutator.replace_injector(data.class_id, data.inject_class_id, data.property_name, data.kind)
            self.synchronizer.refresh_class(data.class_id)

        await asyncio.to_thread(replace)

    async def inject_remove(self, connection: ServerConnection, command: InjectRemoveCommand) -> None:
        data = command.data

        def remove() -> None:
            self.mutator.remove_injector(data.to_class_id, data.from_class_id)
            self.synchronizer.refresh_class(data.to_class_id)

        await asyncio.to_thread(remove)

    async def class_open(self, connection: ServerConnection, command: ClassOpenCommand) -> None:
        path = self.synchronizer.paths.class_file(command.data.class_id)
        logger.info(f"Opening {path}")
        await asyncio.to_thread(typer.launch, str(path))

    async def run_action(self, connection: ServerConnection, command: RunActionCommand) -> None:
        await self.backend.forward_to_apps(command)

    async def toggle_mixin(self, connection: ServerConnection, command: ToggleMixinCommand) -> None:
        data = command.data

        def toggle() -> None:
            self.mutator.toggle_mixin(data.class_id, data.mixin)
            self.synchronizer.refresh_class(data.class_id)

        await asyncio.to_thread(toggle)

    async def class_delete(self, connection: ServerConnection, command: ClassDeleteCommand) -> None:
        class_id = command.data.class_id

        def delete() -> None:
            for dependent in self._dependents_of(class_id):
                self.mutator.remove_injector(dependent, class_id)
                self.synchronizer.refresh_class(dependent)
            self.mutator.delete_class(class_id)
            self.synchronizer.forget_class(class_id)

        await asyncio.to_thread(delete)

    async def class_rename(self, connection: ServerConnection, command: ClassRenameCommand) -> None:
        class_id = command.data.class_id
        to_class_id = command.data.to_class_id
        if to_class_id in self.synchronizer.classes:
            raise DuplicateClassError(to_class_id)

        def rename() -> None:
            dependents = self._dependents_of(class_id)
            self.mutator.rename_class(class_id, to_class_id)
            self.synchronizer.move_metadata(class_id, to_class_id)
            self.synchronizer.forget_class(class_id)
            self.synchronizer.refresh_class(to_class_id)
            for dependent in dependents:
                self.mutator.retarget_injectors(dependent, class_id, to_class_id)
                self.synchronizer.refresh_class(dependent)

        await asyncio.to_thread(rename)
