"""
classgraph - Visual class graph editor backend

Keeps a graph of classes and their injected dependencies in sync with one
Python file per class, and streams live instances from programs built with
the classgraph container.
"""

__version__ = "0.4.0"

# Core exports
from classgraph.parser import extract_class, extract_file
from classgraph.mutation import SourceMutator
from classgraph.watcher import DirectorySynchronizer, SyncListeners
from classgraph.runtime import Container, action, computed, inject, inject_factory, observable
from classgraph.schemas import ExtractedClass, Injector, Mixin, PlacedClass

__all__ = [
    "__version__",
    "extract_class",
    "extract_file",
    "SourceMutator",
    "DirectorySynchronizer",
    "SyncListeners",
    "Container",
    "inject",
    "inject_factory",
    "observable",
    "computed",
    "action",
    "ExtractedClass",
    "Injector",
    "Mixin",
    "PlacedClass",
]
