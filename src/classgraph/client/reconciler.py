"""
Reconciler: applies backend events to the GraphModel.

ReconciliationLoop owns the model on the client side: events from the
connection are put on an asyncio.Queue and applied one at a time, in
arrival order, by a single task.
"""

import asyncio
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from classgraph.logging_config import logger
from classgraph.protocol.messages import (
    ActionMessage,
    AppEvent,
    ClassDeleteEvent,
    ClassesEvent,
    ClassNewEvent,
    ClassUpdateEvent,
    DisconnectEvent,
    Event,
    InitEvent,
    InjectionMessage,
    InstanceMessage,
    SpliceMessage,
    UpdateMessage,
    parse_event,
)
from classgraph.schemas import ExtractedClass
from .model import ActionExecution, GraphLink, GraphModel, GraphNode


def _step(container: Any, key: str) -> Any:
    if isinstance(container, list):
        return int(key)
    return key


def _resolve_parent(values: Dict[str, Any], path: List[str]) -> Any:
    """
    Walk all but the last path segment, creating missing intermediate
    containers. Returns the container holding the last segment.
    """
    target: Any = values
    for key in path[:-1]:
        try:
            child = target[_step(target, key)]
        except (KeyError, IndexError):
            child = None
        if not isinstance(child, (dict, list)):
            child = {}
            _assign(target, key, child)
        target = child
    return target


def _assign(target: Any, key: str, value: Any) -> None:
    step = _step(target, key)
    if isinstance(target, list):
        while len(target) <= step:
            target.append(None)
    target[step] = value


class Reconciler:
    """
    Merge rules for every event type, dispatched through a registry keyed by
    event (or app message) type.
    """

    def __init__(self, model: GraphModel):
        self.model = model

        # event type -> handler
        self.handlers: Dict[str, Callable[[Any], None]] = {
            "init": self._on_init,
            "disconnect": self._on_disconnect,
            "classes": self._on_classes,
            "class-new": self._on_class_new,
            "class-update": self._on_class_update,
            "class-delete": self._on_class_delete,
            "app": self._on_app,
        }

        # app message type -> handler
        self.app_handlers: Dict[str, Callable[[Any], None]] = {
            "instance": self._on_instance,
            "injection": self._on_injection,
            "update": self._on_update,
            "splice": self._on_splice,
            "action": self._on_action,
        }

        self.events_applied = 0
        self.events_skipped = 0

    def apply(self, event: Union[Event, str, bytes]) -> bool:
        """
        Apply one event to the model and notify subscribers.

        Args:
            event: Parsed event or its JSON text

        Returns:
            True if the event changed the model, False if it was skipped
        """
        if isinstance(event, (str, bytes)):
            event = parse_event(event)
        applied = self.handlers[event.type](event) is not False
        if applied:
            self.events_applied += 1
            self.model.notify(event)
        else:
            self.events_skipped += 1
        return applied

    # ------------------------------------------------------------------
    # Backend events
    # ------------------------------------------------------------------

    def _on_init(self, event: InitEvent) -> None:
        self.model.backend_status = event.data

    def _on_disconnect(self, event: DisconnectEvent) -> None:
        for node in self.model.nodes.values():
            node.clear_instances()

    def _on_classes(self, event: ClassesEvent) -> None:
        nodes: Dict[str, GraphNode] = {}
        for class_id, placed in event.data.items():
            node = GraphNode(id=class_id, x=placed.x, y=placed.y)
            node.apply_structure(placed)
            nodes[class_id] = node

        links: Dict[str, GraphLink] = {}
        for node in nodes.values():
            for injector in node.injectors:
                if injector.class_id in nodes:
                    link = GraphLink.for_injector(node.id, injector)
                    links[link.id] = link

        self.model.nodes = nodes
        self.model.links = links

    def _link_injectors(self, node: GraphNode) -> None:
        for injector in node.injectors:
            link = GraphLink.for_injector(node.id, injector)
            if link.id not in self.model.links and injector.class_id in self.model.nodes:
                self.model.links[link.id] = link

    def _link_dependents(self, class_id: str) -> None:
        # Classes that already inject class_id get their links once it exists
        for node in self.model.nodes.values():
            if node.id != class_id and any(i.class_id == class_id for i in node.injectors):
                self._link_injectors(node)

    def _on_class_new(self, event: ClassNewEvent) -> None:
        extracted: ExtractedClass = event.data
        node = self.model.nodes.get(extracted.class_id)
        if node is None:
            node = self.model.nodes[extracted.class_id] = GraphNode(id=extracted.class_id)
        node.is_editing = False
        node.apply_structure(extracted)
        self._link_injectors(node)
        self._link_dependents(node.id)

    def _on_class_update(self, event: ClassUpdateEvent):
        placed = event.data
        node = self.model.nodes.get(placed.class_id)
        if node is None:
            logger.warning(f"class-update for unknown class {placed.class_id}")
            return False
        node.x = placed.x
        node.y = placed.y
        node.apply_structure(placed)
        self._link_injectors(node)

    def _on_class_delete(self, event: ClassDeleteEvent) -> None:
        class_id = event.data
        self.model.nodes.pop(class_id, None)
        if self.model.selected == class_id:
            self.model.selected = None
        for link in self.model.links_of(class_id):
            del self.model.links[link.id]

    # ------------------------------------------------------------------
    # App messages
    # ------------------------------------------------------------------

    def _on_app(self, event: AppEvent):
        message = event.data
        node = self.model.nodes.get(message.data.class_id)
        if node is None:
            logger.warning(f"{message.type} for unknown class {message.data.class_id}")
            return False
        return self.app_handlers[message.type](node, message)

    def _on_instance(self, node: GraphNode, message: InstanceMessage) -> None:
        node.instance(message.data.instance_id)
        if node.current_instance_id is None:
            node.current_instance_id = message.data.instance_id

    def _on_injection(self, node: GraphNode, message: InjectionMessage) -> None:
        data = message.data
        instance = node.instance(data.instance_id)
        instance.injections.setdefault(data.property_name, []).append(data.inject_instance_id)

    def _select_single_instance(self, node: GraphNode, instance_id: int) -> None:
        if len(node.instances) == 1:
            node.current_instance_id = instance_id

    def _on_update(self, node: GraphNode, message: UpdateMessage):
        data = message.data
        if not data.path:
            return False
        instance = node.instance(data.instance_id)
        parent = _resolve_parent(instance.values, data.path)
        _assign(parent, data.path[-1], data.value)
        self._select_single_instance(node, data.instance_id)

    def _on_splice(self, node: GraphNode, message: SpliceMessage):
        data = message.data
        if not data.path:
            return False
        instance = node.instance(data.instance_id)
        parent = _resolve_parent(instance.values, data.path)
        key = _step(parent, data.path[-1])
        try:
            current = parent[key]
        except (KeyError, IndexError):
            current = None
        if isinstance(current, list):
            current[data.index:data.index + data.delete_count] = data.items
        else:
            _assign(parent, data.path[-1], list(data.items))
        self._select_single_instance(node, data.instance_id)

    def _on_action(self, node: GraphNode, message: ActionMessage) -> None:
        data = message.data
        instance = node.instance(data.instance_id)
        executions = instance.action_executions.setdefault(data.name, [])
        executions.insert(0, ActionExecution(args=list(data.args)))


class ReconciliationLoop:
    """
    Single consumer of an event queue. Producers call put() (or
    put_threadsafe() from other threads); one task applies events in order.
    """

    def __init__(self, model: Optional[GraphModel] = None):
        self.model = model or GraphModel()
        self.reconciler = Reconciler(self.model)
        self.queue: "asyncio.Queue[Optional[Union[Event, str, bytes]]]" = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def start(self) -> asyncio.Task:
        if self._task is None:
            self._loop = asyncio.get_running_loop()
            self._task = asyncio.create_task(self._run())
        return self._task

    def put(self, event: Union[Event, str, bytes]) -> None:
        self.queue.put_nowait(event)

    def put_threadsafe(self, event: Union[Event, str, bytes]) -> None:
        self._loop.call_soon_threadsafe(self.queue.put_nowait, event)

    async def join(self) -> None:
        """Wait until every queued event has been applied."""
        await self.queue.join()

    async def _run(self) -> None:
        while True:
            event = await self.queue.get()
            try:
                if event is None:
                    return
                self.reconciler.apply(event)
            except (ValidationError, KeyError, IndexError, TypeError, ValueError) as e:
                logger.error(f"Failed to apply event: {e}")
            finally:
                self.queue.task_done()

    async def stop(self) -> None:
        if self._task is None:
            return
        self.queue.put_nowait(None)
        await self._task
        self._task = None
