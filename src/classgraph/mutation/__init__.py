"""
Mutation package: apply graph edits back to class source files.

Edits are planned on immutable tree-sitter documents and written once,
atomically, per affected file.
"""

from .facade import SourceMutator
from .editor import CodeEditor
from .formatter import CodeFormatter
from .validator import CodeValidator
from .import_manager import ImportManager
from .class_editor import (
    ClassEditor,
    injector_code,
    injector_property_name,
    snake_case,
    validate_class_id,
)
from .registration import RegistrationEditor
from .config import (
    MUTATION_CONFIG,
    FORMATTERS,
    INDENT_DETECTION,
    STATE_MACHINE,
)

__all__ = [
    # Main facade
    "SourceMutator",

    # Components
    "CodeEditor",
    "CodeFormatter",
    "CodeValidator",
    "ImportManager",
    "ClassEditor",
    "RegistrationEditor",

    # Naming
    "injector_code",
    "injector_property_name",
    "snake_case",
    "validate_class_id",

    # Configuration
    "MUTATION_CONFIG",
    "FORMATTERS",
    "INDENT_DETECTION",
    "STATE_MACHINE",
]
