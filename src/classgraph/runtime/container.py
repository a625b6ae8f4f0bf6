"""
Dependency injection container with instance tracking.

Every object built by a container gets an InstanceToken (class id plus a
strictly increasing instance id). When a devtool address is given, the
container reports instances, injections, state updates and action calls to
the editor backend.
"""

import itertools
import threading
import weakref
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from classgraph.exceptions import UnregisteredIdentifier
from classgraph.logging_config import logger
from classgraph.protocol.messages import (
    ActionData,
    ActionMessage,
    InjectionData,
    InjectionMessage,
    InstanceData,
    InstanceMessage,
    SpliceData,
    SpliceMessage,
    UpdateData,
    UpdateMessage,
)
from .devtool import Devtool, to_wire_value
from .identity import InstanceToken, _constructing, bind_token
from .markers import is_action, make_observable

Registration = Union[type, Callable[..., Any]]


class Container:
    """
    Registry of class ids to classes or factory functions.
    """

    def __init__(
        self,
        classes: Dict[str, Registration],
        devtool: Optional[str] = None,
        config: Optional[dict] = None,
    ):
        """
        Args:
            classes: Class id -> class or factory function
            devtool: host:port of the editor backend; None disables reporting
            config: Optional overrides for RUNTIME_CONFIG
        """
        self._classes: Dict[str, Registration] = dict(classes)
        self._singletons: Dict[str, Tuple[Any, Optional[InstanceToken]]] = {}
        self._singleton_lock = threading.RLock()
        self._ids = itertools.count(1)
        self._id_lock = threading.Lock()
        self._instances: "weakref.WeakValueDictionary[int, Any]" = weakref.WeakValueDictionary()

        self.devtool: Optional[Devtool] = None
        if devtool:
            self.devtool = Devtool(devtool, self, config)
            self.devtool.start()

    def register(self, class_id: str, target: Registration) -> None:
        self._classes[class_id] = target

    def __contains__(self, class_id: str) -> bool:
        return class_id in self._classes

    def _next_instance_id(self) -> int:
        with self._id_lock:
            return next(self._ids)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def build(self, class_id: str, *args, **kwargs) -> Tuple[Any, InstanceToken]:
        """
        Construct one instance and return it together with its token.

        Raises:
            UnregisteredIdentifier: If class_id was never registered
        """
        try:
            target = self._classes[class_id]
        except KeyError:
            raise UnregisteredIdentifier(class_id) from None

        token = InstanceToken(class_id, self._next_instance_id(), self)
        # Classes carry their token from __new__ on; only factory bodies need the fallback
        reset = _constructing.set(None if isinstance(target, type) else token)
        try:
            instance = self._construct(target, token, args, kwargs)
            self._track(instance, token)
            make_observable(instance, token)
        finally:
            _constructing.reset(reset)

        self.send_instance(token)
        return instance, token

    def _construct(self, target: Registration, token: InstanceToken, args: tuple, kwargs: dict) -> Any:
        if not isinstance(target, type):
            instance = target(*args, **kwargs)
            bind_token(instance, token)
            return instance

        if target.__new__ is object.__new__:
            instance = object.__new__(target)
        else:
            instance = target.__new__(target, *args, **kwargs)
        bind_token(instance, token)
        if isinstance(instance, target):
            instance.__init__(*args, **kwargs)
        return instance

    def _track(self, instance: Any, token: InstanceToken) -> None:
        try:
            self._instances[token.instance_id] = instance
        except TypeError:
            logger.debug(f"{token.class_id}#{token.instance_id} cannot be tracked for actions")

    def get(self, class_id: str, *args, **kwargs) -> Any:
        instance, _ = self.build(class_id, *args, **kwargs)
        return instance

    def resolve_singleton(self, class_id: str) -> Tuple[Any, InstanceToken]:
        with self._singleton_lock:
            entry = self._singletons.get(class_id)
            if entry is None:
                entry = self._singletons[class_id] = self.build(class_id)
            return entry

    def get_singleton(self, class_id: str) -> Any:
        instance, _ = self.resolve_singleton(class_id)
        return instance

    def get_factory(self, class_id: str) -> Callable[..., Any]:
        if class_id not in self._classes:
            raise UnregisteredIdentifier(class_id)

        def create(*args, **kwargs):
            return self.get(class_id, *args, **kwargs)

        return create

    def instance(self, instance_id: int) -> Optional[Any]:
        return self._instances.get(instance_id)

    # ------------------------------------------------------------------
    # Actions from the editor
    # ------------------------------------------------------------------

    def run_action(self, instance_id: int, name: str, args: Optional[List[Any]] = None) -> Any:
        """
        Call an action on a live instance.

        Raises:
            LookupError: If the instance is gone or has no such action
        """
        instance = self.instance(instance_id)
        if instance is None:
            raise LookupError(f"No live instance with id {instance_id}")
        method = getattr(type(instance), name, None)
        if method is None or not is_action(method):
            raise LookupError(f"{type(instance).__name__} has no action named {name}")
        return getattr(instance, name)(*(args or []))

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def _send(self, message) -> None:
        self.devtool.send(message)

    def send_instance(self, token: InstanceToken) -> None:
        if self.devtool:
            self._send(InstanceMessage(data=InstanceData(class_id=token.class_id, instance_id=token.instance_id)))

    def report_injection(self, token: InstanceToken, property_name: str, dependency: InstanceToken) -> None:
        if self.devtool:
            self._send(InjectionMessage(data=InjectionData(
                class_id=token.class_id,
                instance_id=token.instance_id,
                property_name=property_name,
                inject_class_id=dependency.class_id,
                inject_instance_id=dependency.instance_id,
            )))

    def report_update(self, token: InstanceToken, path: List[str], value: Any) -> None:
        if self.devtool:
            self._send(UpdateMessage(data=UpdateData(
                class_id=token.class_id,
                instance_id=token.instance_id,
                path=path,
                value=to_wire_value(value),
            )))

    def report_splice(self, token: InstanceToken, path: List[str], index: int, delete_count: int, items: list) -> None:
        if self.devtool:
            self._send(SpliceMessage(data=SpliceData(
                class_id=token.class_id,
                instance_id=token.instance_id,
                path=path,
                index=index,
                delete_count=delete_count,
                items=to_wire_value(items),
            )))

    def report_action(self, token: InstanceToken, name: str, args: list) -> None:
        if self.devtool:
            self._send(ActionMessage(data=ActionData(
                class_id=token.class_id,
                instance_id=token.instance_id,
                name=name,
                args=to_wire_value(args),
            )))

    def dispose(self) -> None:
        """Flush pending reports and stop the devtool connection."""
        if self.devtool:
            self.devtool.close()
            self.devtool = None
