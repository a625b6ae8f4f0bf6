"""
Instance identity tokens.

A token is allocated before user construction code runs. Classes get it
attached to the bare instance before __init__. Factory functions run with it
bound to a context variable, so the object a factory is still assembling
attributes its events to the instance being built. The variable is cleared
while a class is constructed, so plain helper objects created in __init__
stay outside the container.
"""

from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Optional

TOKEN_ATTRIBUTE = "__classgraph_token__"


@dataclass(frozen=True)
class InstanceToken:
    class_id: str
    instance_id: int
    container: Any = field(default=None, compare=False, repr=False)


_constructing: ContextVar[Optional[InstanceToken]] = ContextVar("classgraph_constructing", default=None)


def token_of(instance: Any) -> Optional[InstanceToken]:
    """Token bound to instance, or None for objects not built by a container."""
    try:
        return object.__getattribute__(instance, TOKEN_ATTRIBUTE)
    except AttributeError:
        return None


def bind_token(instance: Any, token: InstanceToken) -> bool:
    """Attach token to instance. Returns False for objects that take no attributes."""
    try:
        object.__setattr__(instance, TOKEN_ATTRIBUTE, token)
    except (AttributeError, TypeError):
        return False
    return True


def owner_token(instance: Any) -> Optional[InstanceToken]:
    """Token of instance, falling back to the factory call in progress."""
    token = token_of(instance)
    if token is None:
        token = _constructing.get()
    return token
