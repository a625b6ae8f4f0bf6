"""
ImportManager: add and remove `from ... import ...` names in a document.

Runtime imports live at module level. Type-only imports live in a
module-level `if TYPE_CHECKING:` block, created and removed on demand.
"""

import re
from typing import List, Optional

from tree_sitter import Node

from classgraph.logging_config import logger
from classgraph.parser.config import INJECTOR_MARKERS
from classgraph.parser.syntax import (
    SourceDocument,
    call_name,
    is_docstring,
    node_text,
    sequence_item_span,
    statements,
)

IMPORT_TYPES = ("import_statement", "import_from_statement", "future_import_statement")
TYPE_CHECKING = "TYPE_CHECKING"


def _module_name(statement: Node) -> Optional[str]:
    module = statement.child_by_field_name("module_name")
    return node_text(module) if module is not None else None


def _imported_name(name_node: Node) -> str:
    if name_node.type == "aliased_import":
        return node_text(name_node.child_by_field_name("name"))
    return node_text(name_node)


class ImportManager:
    """
    Manage the import statements of one module.

    Every method takes a SourceDocument and returns a new one; the input is
    never modified.
    """

    def find_type_checking_block(self, document: SourceDocument) -> Optional[Node]:
        for statement in statements(document.root):
            if statement.type != "if_statement":
                continue
            condition = statement.child_by_field_name("condition")
            if condition is not None and node_text(condition) in (TYPE_CHECKING, f"typing.{TYPE_CHECKING}"):
                return statement
        return None

    def _scope(self, document: SourceDocument, type_only: bool) -> Optional[Node]:
        if not type_only:
            return document.root
        block = self.find_type_checking_block(document)
        return block.child_by_field_name("consequence") if block is not None else None

    def find_from_imports(self, scope: Node, source: str) -> List[Node]:
        return [
            statement for statement in statements(scope)
            if statement.type == "import_from_statement" and _module_name(statement) == source
        ]

    def list_imports(self, document: SourceDocument) -> List[str]:
        """Text of every import statement, module level first, then type-only ones."""
        found = [node_text(s) for s in statements(document.root) if s.type in IMPORT_TYPES]
        scope = self._scope(document, type_only=True)
        if scope is not None:
            found.extend(f"{TYPE_CHECKING}: {node_text(s)}" for s in statements(scope) if s.type in IMPORT_TYPES)
        return found

    def has_import(self, document: SourceDocument, source: str, name: str, type_only: bool = False) -> bool:
        scope = self._scope(document, type_only)
        if scope is None:
            return False
        return any(
            _imported_name(n) == name
            for statement in self.find_from_imports(scope, source)
            for n in statement.children_by_field_name("name")
        )

    def add_import(self, document: SourceDocument, source: str, name: str, type_only: bool = False) -> SourceDocument:
        """
        Ensure `from source import name` exists.

        Merges into an existing import of the same source and kind, otherwise
        adds a new statement after the last import of the scope.
        """
        if self.has_import(document, source, name, type_only):
            return document

        if type_only and self.find_type_checking_block(document) is None:
            document = self.add_import(document, "typing", TYPE_CHECKING)
            return self._create_type_checking_block(document, f"from {source} import {name}")

        scope = self._scope(document, type_only)
        for statement in self.find_from_imports(scope, source):
            names = statement.children_by_field_name("name")
            if names:
                logger.debug(f"Merging {name} into import from {source}")
                return document.insert(names[-1].end_byte, f", {name}")

        return self._insert_statement(document, scope, f"from {source} import {name}")

    def remove_import(self, document: SourceDocument, source: str, name: str, type_only: bool = False) -> SourceDocument:
        """Remove name from the imports of source; drops statements left empty."""
        scope = self._scope(document, type_only)
        if scope is None:
            return document

        for statement in self.find_from_imports(scope, source):
            names = statement.children_by_field_name("name")
            for index, name_node in enumerate(names):
                if _imported_name(name_node) != name:
                    continue
                if len(names) > 1:
                    return document.delete(*sequence_item_span(names, index))
                return self._delete_import_statement(document, statement, type_only)
        return document

    def remove_if_unused(self, document: SourceDocument, source: str, name: str, type_only: bool = False) -> SourceDocument:
        if self.is_name_used(document, name):
            return document
        return self.remove_import(document, source, name, type_only)

    def is_name_used(self, document: SourceDocument, name: str) -> bool:
        """
        True if name appears outside import statements, either as an
        identifier or inside a string annotation or marker argument.
        Docstrings and other plain strings do not count.
        """
        pattern = re.compile(rf"\b{re.escape(name)}\b")
        stack = [(child, False) for child in document.root.children]
        while stack:
            node, typed = stack.pop()
            if node.type in IMPORT_TYPES or node.type == "comment":
                continue
            if node.type == "identifier":
                if node_text(node) == name:
                    return True
                continue
            if node.type == "string":
                if typed and pattern.search(node_text(node)):
                    return True
                continue
            if node.type == "argument_list":
                typed = typed or call_name(node.parent) in INJECTOR_MARKERS
            elif node.type == "type":
                typed = True
            stack.extend((child, typed) for child in node.children)
        return False

    def _insert_statement(self, document: SourceDocument, scope: Node, line: str) -> SourceDocument:
        body = statements(scope)
        imports = [s for s in body if s.type in IMPORT_TYPES]
        if imports:
            last = imports[-1]
            return self._insert_line_after(document, last, f"{document.indentation_of(last)}{line}")

        if scope.type == "module":
            if body and is_docstring(body[0]):
                return self._insert_line_after(document, body[0], f"\n{line}")
            if body:
                return document.insert(document.line_start(body[0].start_byte), f"{line}\n\n")
            return self._append_line(document, line)

        first = body[0]
        return document.insert(document.line_start(first.start_byte), f"{document.indentation_of(first)}{line}\n")

    def _insert_line_after(self, document: SourceDocument, statement: Node, text: str) -> SourceDocument:
        offset = document.line_end(statement.end_byte)
        if not document.source[:offset].endswith(b"\n"):
            text = "\n" + text
        return document.insert(offset, f"{text}\n")

    def _append_line(self, document: SourceDocument, line: str) -> SourceDocument:
        prefix = "" if not document.source or document.source.endswith(b"\n") else "\n"
        return document.insert(len(document.source), f"{prefix}{line}\n")

    def _create_type_checking_block(self, document: SourceDocument, line: str) -> SourceDocument:
        imports = [s for s in statements(document.root) if s.type in IMPORT_TYPES]
        # add_import("typing", ...) ran first, so there is always an import to follow
        return self._insert_line_after(document, imports[-1], f"\nif {TYPE_CHECKING}:\n    {line}")

    def _delete_import_statement(self, document: SourceDocument, statement: Node, type_only: bool) -> SourceDocument:
        if type_only:
            block = self.find_type_checking_block(document)
            consequence = block.child_by_field_name("consequence")
            if len(statements(consequence)) == 1:
                if block.child_by_field_name("alternative") is not None:
                    return document.replace(statement.start_byte, statement.end_byte, "pass")
                document = document.delete_lines(block)
                return self.remove_if_unused(document, "typing", TYPE_CHECKING)
        return document.delete_lines(statement)
