"""
EditorSession: user interactions on the graph, turned into local model
changes and backend commands.
"""

import itertools
from typing import Optional, Protocol

from classgraph.logging_config import logger
from classgraph.protocol.messages import (
    ActionRequest,
    ClassDeleteCommand,
    ClassNewCommand,
    ClassOpenCommand,
    ClassPosition,
    ClassReference,
    ClassRename,
    ClassRenameCommand,
    ClassUpdateCommand,
    Command,
    InitCommand,
    InjectCommand,
    InjectionEdge,
    InjectRemoveCommand,
    MixinToggle,
    RunActionCommand,
    ToggleMixinCommand,
)
from classgraph.schemas import Mixin
from .model import OUTPUT_PORT, GraphModel, GraphNode

PLACEHOLDER_PREFIX = "__new_class_"


class CommandSink(Protocol):
    def send(self, command: Command) -> None: ...


class EditorSession:
    """
    Editor actions. Each either edits the model directly (selection,
    placeholders) or sends a command and waits for the backend's events.
    """

    def __init__(self, model: GraphModel, connection: CommandSink):
        self.model = model
        self.connection = connection
        self._placeholders = itertools.count(1)

    def _changed(self) -> None:
        self.model.notify(None)

    def init(self) -> None:
        self.connection.send(InitCommand())

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def add_placeholder(self, x: float, y: float) -> str:
        """Add an unnamed node being edited at (x, y). Returns its temporary id."""
        node_id = f"{PLACEHOLDER_PREFIX}{next(self._placeholders)}"
        self.model.nodes[node_id] = GraphNode(id=node_id, x=x, y=y, is_editing=True)
        self._changed()
        return node_id

    def submit_class(self, node_id: str, name: str) -> bool:
        """
        Name a placeholder node and ask the backend to create the class.

        Returns:
            False if another node already uses the name
        """
        if name in self.model.nodes and name != node_id:
            logger.warning(f"A class named {name} already exists")
            return False
        node = self.model.nodes.pop(node_id)
        node.id = name
        node.is_editing = False
        self.model.nodes[name] = node
        self.model.selected = name
        self._changed()
        self.connection.send(ClassNewCommand(data=ClassPosition(class_id=name, x=node.x, y=node.y)))
        return True

    def submit_rename(self, class_id: str, name: str) -> None:
        self.connection.send(ClassRenameCommand(data=ClassRename(class_id=class_id, to_class_id=name)))

    def click_instance(self, class_id: str, instance_id: int) -> None:
        self.model.nodes[class_id].current_instance_id = instance_id
        self.model.selected = class_id
        self._changed()

    def click_node(self, class_id: str) -> None:
        """Select a node; show its first instance if none is current."""
        node = self.model.nodes[class_id]
        if node.instances and node.current_instance_id is None:
            node.current_instance_id = next(iter(node.instances))
        self.model.selected = class_id
        self._changed()

    def toggle_selected(self, class_id: Optional[str]) -> None:
        self.model.selected = None if self.model.selected == class_id else class_id
        self._changed()

    def drag_stop(self, class_id: str, x: float, y: float) -> None:
        node = self.model.nodes[class_id]
        if node.is_editing:
            return
        node.x = x
        node.y = y
        self.connection.send(ClassUpdateCommand(data=ClassPosition(class_id=class_id, x=x, y=y)))

    # ------------------------------------------------------------------
    # Links
    # ------------------------------------------------------------------

    def complete_link(self, from_node_id: str, from_port_id: str, to_node_id: str) -> bool:
        """
        Connect two nodes. The node on the output side is the dependency.

        Returns:
            False for a link from a node to itself
        """
        if from_port_id == OUTPUT_PORT:
            source, owner = from_node_id, to_node_id
        else:
            source, owner = to_node_id, from_node_id
        if source == owner:
            return False
        self.connection.send(InjectCommand(data=InjectionEdge(from_class_id=source, to_class_id=owner)))
        return True

    def click_link(self, link_id: str) -> None:
        link = self.model.links.pop(link_id)
        self._changed()
        self.connection.send(InjectRemoveCommand(data=InjectionEdge(
            from_class_id=link.source.node_id,
            to_class_id=link.target.node_id,
        )))

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def open_class(self, class_id: str) -> None:
        self.connection.send(ClassOpenCommand(data=ClassReference(class_id=class_id)))

    def delete_class(self, class_id: str) -> None:
        self.connection.send(ClassDeleteCommand(data=ClassReference(class_id=class_id)))

    def toggle_mixin(self, class_id: str, mixin: Mixin) -> None:
        self.connection.send(ToggleMixinCommand(data=MixinToggle(class_id=class_id, mixin=mixin)))

    def run_action(self, instance_id: int, name: str) -> None:
        self.connection.send(RunActionCommand(data=ActionRequest(instance_id=instance_id, name=name)))
