"""
Member markers used in class files.

    class Counter:
        api: "Api" = inject("Api")
        create_item: "Factory[Item]" = inject_factory("Item")
        count: int = observable(0)

        @computed
        def double(self):
            return self.count * 2

        @action
        def increment(self):
            self.count += 1

The same marker names are what the extractor recognizes in source files.
"""

import copy
import functools
from typing import Any, Callable, Dict, Iterator, Tuple, TypeVar

from classgraph.exceptions import InjectionOutsideContainer
from classgraph.logging_config import logger
from .collections import observe
from .identity import InstanceToken, owner_token

T = TypeVar("T")

# Type of an attribute declared with inject_factory()
Factory = Callable[..., T]

_MISSING = object()


def _owner_name(instance: Any) -> str:
    return type(instance).__name__


class _Injection:
    """Lazily resolved dependency, cached on the instance after the first read."""

    def __init__(self, class_id: str):
        self.class_id = class_id
        self.name = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, instance: Any, owner: type = None) -> Any:
        if instance is None:
            return self
        token = owner_token(instance)
        if token is None or token.container is None:
            raise InjectionOutsideContainer(_owner_name(instance), self.name)
        value = self.resolve(instance, token)
        instance.__dict__[self.name] = value
        return value

    def resolve(self, instance: Any, token: InstanceToken) -> Any:
        container = token.container
        dependency, dependency_token = container.resolve_singleton(self.class_id)
        container.report_injection(token, self.name, dependency_token)
        return dependency


class _FactoryInjection(_Injection):

    def resolve(self, instance: Any, token: InstanceToken) -> Callable[..., Any]:
        container = token.container
        class_id = self.class_id
        name = self.name

        def create(*args, **kwargs):
            dependency, dependency_token = container.build(class_id, *args, **kwargs)
            container.report_injection(token, name, dependency_token)
            return dependency

        create.__name__ = f"create_{class_id}"
        return create


def inject(class_id: str) -> Any:
    """Declare a singleton dependency on a registered class id."""
    return _Injection(class_id)


def inject_factory(class_id: str) -> Any:
    """Declare a factory dependency: the attribute is a function building new instances."""
    return _FactoryInjection(class_id)


class ObservableAttribute:
    """
    Data descriptor storing its value in the instance dict. Plain lists and
    dicts are wrapped into observable collections; every assignment is
    reported as an update.
    """

    def __init__(self, default: Any = None):
        self.default = default
        self.name = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, instance: Any, owner: type = None) -> Any:
        if instance is None:
            return self
        if self.name not in instance.__dict__:
            self.initialize(instance, owner_token(instance))
        return instance.__dict__[self.name]

    def __set__(self, instance: Any, value: Any) -> None:
        token = owner_token(instance)
        value = observe(value, token, None, self.name)
        instance.__dict__[self.name] = value
        if token is not None and token.container is not None:
            token.container.report_update(token, [self.name], value)

    def initialize(self, instance: Any, token: InstanceToken = None, report: bool = True) -> Any:
        """Bring the current (or default) value into observable form."""
        value = instance.__dict__.get(self.name, _MISSING)
        if value is _MISSING:
            value = copy.deepcopy(self.default)
        value = observe(value, token, None, self.name)
        instance.__dict__[self.name] = value
        if report and token is not None and token.container is not None:
            token.container.report_update(token, [self.name], value)
        return value


def observable(default: Any = None) -> Any:
    """Declare an observable attribute with a default value."""
    return ObservableAttribute(default)


class computed(property):
    """A read-only property whose value is reported with the instance state."""


def action(method: Callable) -> Callable:
    """Report each call of method, then the computed values it may have changed."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        token = owner_token(self)
        if token is None or token.container is None:
            return method(self, *args, **kwargs)
        token.container.report_action(token, method.__name__, list(args))
        try:
            return method(self, *args, **kwargs)
        finally:
            report_computed(self, token)

    wrapper.__classgraph_action__ = True
    return wrapper


def is_action(value: Any) -> bool:
    return getattr(value, "__classgraph_action__", False)


def _class_members(cls: type) -> Iterator[Tuple[str, Any]]:
    seen: Dict[str, Any] = {}
    for klass in reversed(cls.__mro__):
        seen.update(vars(klass))
    return iter(seen.items())


def _promote_bare_markers(cls: type) -> None:
    # `name: T = observable` without a call declares an observable defaulting to None
    for name, value in _class_members(cls):
        if value is observable:
            attribute = ObservableAttribute()
            attribute.__set_name__(cls, name)
            setattr(cls, name, attribute)


def make_observable(instance: Any, token: InstanceToken) -> int:
    """
    Initialize every observable attribute of instance and report its value,
    then report computed values. Returns the number of members reported.
    """
    cls = type(instance)
    _promote_bare_markers(cls)

    count = 0
    for name, value in _class_members(cls):
        if isinstance(value, ObservableAttribute):
            value.initialize(instance, token)
            count += 1
    return count + report_computed(instance, token)


def report_computed(instance: Any, token: InstanceToken) -> int:
    count = 0
    for name, value in _class_members(type(instance)):
        if not isinstance(value, computed):
            continue
        try:
            result = value.__get__(instance, type(instance))
        except Exception as e:
            logger.debug(f"Computed {_owner_name(instance)}.{name} not reported: {e}")
            continue
        token.container.report_update(token, [name], result)
        count += 1
    return count
