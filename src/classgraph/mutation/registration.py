"""
RegistrationEditor: keep the entry file's Container registration literal in
step with the class files.

The literal is the dict passed as first argument to a `Container(...)` call.
It is located structurally, so other dict literals in the entry file are
never touched.
"""

from typing import List, Optional

from tree_sitter import Node

from classgraph.exceptions import MutationError
from classgraph.parser.syntax import (
    SourceDocument,
    call_arguments,
    iter_descendants,
    node_text,
    sequence_item_span,
    statements,
    string_value,
)
from .config import CONTAINER_CALL
from .import_manager import ImportManager


def _callee_name(call: Node) -> Optional[str]:
    function = call.child_by_field_name("function")
    if function is None:
        return None
    if function.type == "identifier":
        return node_text(function)
    if function.type == "attribute":
        attribute = function.child_by_field_name("attribute")
        return node_text(attribute) if attribute is not None else None
    return None


def _entry_key(entry: Node) -> Optional[str]:
    if entry.type != "pair":
        return None
    key = entry.child_by_field_name("key")
    return string_value(key) if key is not None else None


class RegistrationEditor:

    def __init__(self, imports: ImportManager):
        self.imports = imports

    def find_literal(self, document: SourceDocument) -> Optional[Node]:
        for node in iter_descendants(document.root):
            if node.type != "call" or _callee_name(node) != CONTAINER_CALL:
                continue
            arguments = call_arguments(node)
            if arguments and arguments[0].type == "dictionary":
                return arguments[0]
        return None

    def registered_ids(self, document: SourceDocument) -> List[str]:
        literal = self.find_literal(document)
        if literal is None:
            return []
        return [key for key in (_entry_key(entry) for entry in statements(literal)) if key]

    def register(self, document: SourceDocument, class_id: str) -> SourceDocument:
        """Add `"<class_id>": <class_id>` and its import; no-op if already present."""
        document = self.imports.add_import(document, f".{class_id}", class_id)
        literal = self.find_literal(document)
        if literal is None:
            raise MutationError(f"No {CONTAINER_CALL}({{...}}) registration call found")
        if class_id in self.registered_ids(document):
            return document

        entry = f'"{class_id}": {class_id}'
        entries = statements(literal)
        if entries:
            return document.insert(entries[-1].end_byte, f", {entry}")
        return document.insert(literal.start_byte + 1, entry)

    def unregister(self, document: SourceDocument, class_id: str) -> SourceDocument:
        """Remove the entry keyed by class_id and its import; no-op if absent."""
        literal = self.find_literal(document)
        if literal is not None:
            entries = statements(literal)
            for index, entry in enumerate(entries):
                if _entry_key(entry) == class_id:
                    document = document.delete(*sequence_item_span(entries, index))
                    break
        return self.imports.remove_import(document, f".{class_id}", class_id)
