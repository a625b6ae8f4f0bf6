"""
Client-side graph model: nodes (classes), links (injections) and live
instance state, as displayed by the editor.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from classgraph.schemas import BackendStatus, ExtractedClass, Injector, Mixin, NamedMember

INPUT_PORT = "input"
OUTPUT_PORT = "output"

Listener = Callable[[Any], None]


@dataclass
class ActionExecution:
    args: List[Any]
    time: float = field(default_factory=time.time)


@dataclass
class ClassInstance:
    """Live state of one instance of a class in the instrumented program."""
    values: Dict[str, Any] = field(default_factory=dict)
    injections: Dict[str, List[int]] = field(default_factory=dict)
    action_executions: Dict[str, List[ActionExecution]] = field(default_factory=dict)


@dataclass
class Port:
    node_id: str
    port_id: str


@dataclass
class GraphLink:
    """Injection edge drawn from the source class output to the owner input."""
    id: str
    source: Port
    target: Port

    @classmethod
    def for_injector(cls, owner_class_id: str, injector: Injector) -> "GraphLink":
        return cls(
            id=link_id(owner_class_id, injector.class_id, injector.property_name),
            source=Port(node_id=injector.class_id, port_id=OUTPUT_PORT),
            target=Port(node_id=owner_class_id, port_id=INPUT_PORT),
        )

    def touches(self, node_id: str) -> bool:
        return self.source.node_id == node_id or self.target.node_id == node_id


def link_id(owner_class_id: str, source_class_id: str, property_name: str) -> str:
    return f"{owner_class_id}_{source_class_id}_{property_name}"


@dataclass
class GraphNode:
    id: str
    x: float = 0
    y: float = 0
    is_editing: bool = False
    mixins: List[Mixin] = field(default_factory=list)
    injectors: List[Injector] = field(default_factory=list)
    observables: List[NamedMember] = field(default_factory=list)
    computed: List[NamedMember] = field(default_factory=list)
    actions: List[NamedMember] = field(default_factory=list)
    current_instance_id: Optional[int] = None
    instances: Dict[int, ClassInstance] = field(default_factory=dict)

    def apply_structure(self, extracted: ExtractedClass) -> None:
        """Replace the structural lists with a fresh extraction."""
        self.mixins = list(extracted.mixins)
        self.injectors = list(extracted.injectors)
        self.observables = list(extracted.observables)
        self.computed = list(extracted.computed)
        self.actions = list(extracted.actions)

    def instance(self, instance_id: int) -> ClassInstance:
        """Instance state, created on first use."""
        instance = self.instances.get(instance_id)
        if instance is None:
            instance = self.instances[instance_id] = ClassInstance()
        return instance

    def clear_instances(self) -> None:
        self.current_instance_id = None
        self.instances = {}


@dataclass
class GraphModel:
    """
    The single graph an editor displays. Written only by the reconciler and
    the session; listeners are notified after each change.
    """
    nodes: Dict[str, GraphNode] = field(default_factory=dict)
    links: Dict[str, GraphLink] = field(default_factory=dict)
    selected: Optional[str] = None
    backend_status: BackendStatus = field(default_factory=lambda: BackendStatus(status="pending"))
    _listeners: List[Listener] = field(default_factory=list, repr=False)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self, event: Any = None) -> None:
        for listener in list(self._listeners):
            listener(event)

    def links_of(self, node_id: str) -> List[GraphLink]:
        return [link for link in self.links.values() if link.touches(node_id)]
