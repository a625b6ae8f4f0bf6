"""
Runtime package: the container and markers imported by instrumented programs.

    from classgraph.runtime import Container, inject, observable, computed, action
"""

from .collections import ObservableDict, ObservableList, observe
from .config import RUNTIME_CONFIG
from .container import Container
from .devtool import Devtool, to_wire_value
from .identity import InstanceToken, owner_token, token_of
from .markers import (
    Factory,
    ObservableAttribute,
    action,
    computed,
    inject,
    inject_factory,
    make_observable,
    observable,
)

__all__ = [
    "Container",
    "Devtool",
    "RUNTIME_CONFIG",
    # Markers
    "inject",
    "inject_factory",
    "Factory",
    "observable",
    "computed",
    "action",
    "ObservableAttribute",
    "make_observable",
    # Collections
    "ObservableList",
    "ObservableDict",
    "observe",
    # Identity
    "InstanceToken",
    "token_of",
    "owner_token",
    "to_wire_value",
]
