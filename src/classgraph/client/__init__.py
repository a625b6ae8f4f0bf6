"""
Client package: the editor side of the protocol.

The GraphModel is written only by the Reconciler (backend events) and the
EditorSession (user actions).
"""

from .connection import EditorConnection, editor_url
from .model import (
    ActionExecution,
    ClassInstance,
    GraphLink,
    GraphModel,
    GraphNode,
    Port,
    link_id,
)
from .reconciler import Reconciler, ReconciliationLoop
from .session import EditorSession

__all__ = [
    "GraphModel",
    "GraphNode",
    "GraphLink",
    "Port",
    "ClassInstance",
    "ActionExecution",
    "link_id",
    "Reconciler",
    "ReconciliationLoop",
    "EditorConnection",
    "editor_url",
    "EditorSession",
]
