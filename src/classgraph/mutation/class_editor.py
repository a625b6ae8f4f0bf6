"""
ClassEditor: structural edits to one class statement and its module.

Members are whole class body statements. New members go to the top of the
body (after a docstring); removing the last member leaves `pass`.
"""

import keyword
import re
from typing import Optional

from tree_sitter import Node

from classgraph.exceptions import InvalidClassId, MutationError
from classgraph.parser.extractor import require_class
from classgraph.parser.syntax import (
    SourceDocument,
    assignment_of,
    assignment_target,
    base_name,
    class_body,
    is_docstring,
    member_name,
    node_text,
    outer_statement,
    sequence_item_span,
    statements,
    superclass_arguments,
)
from .config import INDENT_DETECTION

_WORD_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def validate_class_id(class_id: str) -> str:
    if not class_id or not class_id.isidentifier() or keyword.iskeyword(class_id):
        raise InvalidClassId(class_id)
    return class_id


def snake_case(class_id: str) -> str:
    """FooBar -> foo_bar, HTTPClient -> http_client."""
    name = _WORD_BOUNDARY.sub("_", class_id).lower()
    return f"{name}_" if keyword.iskeyword(name) else name


def injector_property_name(class_id: str, kind: str) -> str:
    name = snake_case(class_id)
    return f"create_{name}" if kind == "injectFactory" else name


def injector_code(class_id: str, kind: str) -> str:
    name = injector_property_name(class_id, kind)
    if kind == "injectFactory":
        return f'{name}: "Factory[{class_id}]" = inject_factory("{class_id}")'
    return f'{name}: "{class_id}" = inject("{class_id}")'


def _is_placeholder(statement: Node) -> bool:
    if statement.type == "pass_statement":
        return True
    named = statement.named_children
    return statement.type == "expression_statement" and len(named) == 1 and named[0].type == "ellipsis"


class ClassEditor:
    """
    Member and base class edits on a SourceDocument.
    """

    def __init__(self, indent: Optional[str] = None):
        self.indent = indent or INDENT_DETECTION["default_indent"]

    def find_member(self, document: SourceDocument, class_id: str, name: str) -> Optional[Node]:
        class_node = require_class(document, class_id)
        for statement in statements(class_body(class_node)):
            if member_name(statement) == name:
                return statement
        return None

    def add_member(self, document: SourceDocument, class_id: str, code: str) -> SourceDocument:
        class_node = require_class(document, class_id)
        body = class_body(class_node)
        body_statements = statements(body)

        if len(body_statements) == 1 and _is_placeholder(body_statements[0]):
            placeholder = body_statements[0]
            return document.replace(placeholder.start_byte, placeholder.end_byte, code)

        if body.start_point[0] == class_node.start_point[0]:
            # `class A: x = 1` style body on the header line
            indent = document.indentation_of(outer_statement(class_node)) + self.indent
            return document.replace(body.start_byte, body.end_byte, f"\n{indent}{code}\n{indent}{node_text(body)}")

        first = body_statements[0]
        indent = document.indentation_of(first)
        if is_docstring(first):
            offset = document.line_end(first.end_byte)
            prefix = "" if document.source[:offset].endswith(b"\n") else "\n"
            return document.insert(offset, f"{prefix}{indent}{code}\n")
        return document.insert(document.line_start(first.start_byte), f"{indent}{code}\n")

    def replace_member(self, document: SourceDocument, class_id: str, name: str, code: str) -> SourceDocument:
        statement = self.find_member(document, class_id, name)
        if statement is None:
            raise MutationError(f"{class_id} has no member named {name}")
        return document.replace(statement.start_byte, statement.end_byte, code)

    def remove_member(self, document: SourceDocument, class_id: str, name: str) -> SourceDocument:
        statement = self.find_member(document, class_id, name)
        if statement is None:
            return document
        class_node = require_class(document, class_id)
        if len(statements(class_body(class_node))) == 1:
            return document.replace(statement.start_byte, statement.end_byte, "pass")
        return document.delete_lines(statement)

    def has_base(self, document: SourceDocument, class_id: str, name: str) -> bool:
        class_node = require_class(document, class_id)
        return any(base_name(argument) == name for argument in superclass_arguments(class_node))

    def add_base(self, document: SourceDocument, class_id: str, code: str) -> SourceDocument:
        class_node = require_class(document, class_id)
        superclasses = class_node.child_by_field_name("superclasses")
        if superclasses is None:
            anchor = class_node.child_by_field_name("type_parameters")
            if anchor is None:
                anchor = class_node.child_by_field_name("name")
            return document.insert(anchor.end_byte, f"({code})")

        positional = [a for a in statements(superclasses) if a.type != "keyword_argument"]
        if positional:
            return document.insert(positional[-1].end_byte, f", {code}")
        if statements(superclasses):
            # Only keyword arguments such as metaclass=...
            return document.insert(superclasses.start_byte + 1, f"{code}, ")
        return document.insert(superclasses.start_byte + 1, code)

    def remove_base(self, document: SourceDocument, class_id: str, name: str) -> SourceDocument:
        class_node = require_class(document, class_id)
        arguments = superclass_arguments(class_node)
        for index, argument in enumerate(arguments):
            if base_name(argument) != name:
                continue
            if len(arguments) == 1:
                superclasses = class_node.child_by_field_name("superclasses")
                return document.delete(superclasses.start_byte, superclasses.end_byte)
            return document.delete(*sequence_item_span(arguments, index))
        return document

    def insert_before_class(self, document: SourceDocument, class_id: str, code: str) -> SourceDocument:
        statement = outer_statement(require_class(document, class_id))
        return document.insert(document.line_start(statement.start_byte), f"{code}\n\n\n")

    def find_module_assignment(self, document: SourceDocument, name: str) -> Optional[Node]:
        for statement in statements(document.root):
            assignment = assignment_of(statement)
            if assignment is not None and assignment_target(assignment) == name:
                return statement
            if statement.type == "type_alias_statement":
                left = statement.child_by_field_name("left")
                if left is not None and node_text(left) == name:
                    return statement
        return None

    def remove_module_assignment(self, document: SourceDocument, name: str) -> SourceDocument:
        statement = self.find_module_assignment(document, name)
        if statement is None:
            return document
        return document.delete_lines(statement)

    def rename_class(self, document: SourceDocument, class_id: str, new_class_id: str) -> SourceDocument:
        name = require_class(document, class_id).child_by_field_name("name")
        return document.replace(name.start_byte, name.end_byte, new_class_id)
