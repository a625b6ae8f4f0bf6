"""
Tree-sitter plumbing shared by the extractor and the mutator.

SourceDocument pairs source bytes with their parse tree and is never edited
in place: every edit returns a new document parsed from the edited bytes.
"""

import ast
import threading
from typing import Iterator, List, Optional, Tuple

import tree_sitter_python as tspython
from tree_sitter import Language, Node, Parser, Tree

_parser: Optional[Parser] = None
_parser_lock = threading.Lock()


def _get_parser() -> Parser:
    global _parser
    if _parser is None:
        parser = Parser()
        parser.language = Language(tspython.language())
        _parser = parser
    return _parser


def parse_bytes(source: bytes) -> Tree:
    """Parse Python source. Parsers are not thread-safe, so calls are serialized."""
    with _parser_lock:
        return _get_parser().parse(source)


class SourceDocument:
    """
    Immutable source text plus its tree-sitter tree.

    Byte offsets passed to the edit helpers come from nodes of this
    document's own tree.
    """

    __slots__ = ("source", "tree")

    def __init__(self, source: bytes, tree: Optional[Tree] = None):
        self.source = source
        self.tree = tree if tree is not None else parse_bytes(source)

    @classmethod
    def from_text(cls, text: str) -> "SourceDocument":
        return cls(text.encode("utf-8"))

    @property
    def root(self) -> Node:
        return self.tree.root_node

    @property
    def text(self) -> str:
        return self.source.decode("utf-8")

    def replace(self, start: int, end: int, text: str) -> "SourceDocument":
        return SourceDocument(self.source[:start] + text.encode("utf-8") + self.source[end:])

    def insert(self, offset: int, text: str) -> "SourceDocument":
        return self.replace(offset, offset, text)

    def delete(self, start: int, end: int) -> "SourceDocument":
        return self.replace(start, end, "")

    def line_start(self, offset: int) -> int:
        return self.source.rfind(b"\n", 0, offset) + 1

    def line_end(self, offset: int) -> int:
        """Offset just past the newline that ends the line containing offset."""
        index = self.source.find(b"\n", offset)
        return len(self.source) if index == -1 else index + 1

    def indentation_of(self, node: Node) -> str:
        prefix = self.source[self.line_start(node.start_byte):node.start_byte].decode("utf-8")
        return prefix[:len(prefix) - len(prefix.lstrip())]

    def delete_lines(self, node: Node) -> "SourceDocument":
        """Remove the full lines spanned by node, including the trailing newline."""
        return self.delete(self.line_start(node.start_byte), self.line_end(node.end_byte))


def node_text(node: Node) -> str:
    return node.text.decode("utf-8")


def iter_descendants(node: Node) -> Iterator[Node]:
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def syntax_errors(tree: Tree) -> List[Tuple[int, int]]:
    """(line, column) of every ERROR or MISSING node, 1-based lines."""
    errors = []
    if not tree.root_node.has_error:
        return errors
    for node in iter_descendants(tree.root_node):
        if node.type == "ERROR" or node.is_missing:
            errors.append((node.start_point[0] + 1, node.start_point[1]))
    return errors


def statements(block: Node) -> List[Node]:
    """Named children of a module or block, without comments."""
    return [child for child in block.named_children if child.type != "comment"]


def find_class(root: Node, class_id: str) -> Optional[Node]:
    """The module-level class_definition named class_id, decorated or not."""
    for child in root.named_children:
        definition = child
        if child.type == "decorated_definition":
            definition = child.child_by_field_name("definition")
        if definition is None or definition.type != "class_definition":
            continue
        name = definition.child_by_field_name("name")
        if name is not None and node_text(name) == class_id:
            return definition
    return None


def outer_statement(definition: Node) -> Node:
    """The decorated_definition wrapping a definition, or the definition itself."""
    parent = definition.parent
    if parent is not None and parent.type == "decorated_definition":
        return parent
    return definition


def class_body(class_node: Node) -> Node:
    return class_node.child_by_field_name("body")


def superclass_arguments(class_node: Node) -> List[Node]:
    superclasses = class_node.child_by_field_name("superclasses")
    if superclasses is None:
        return []
    return statements(superclasses)


def base_name(node: Node) -> Optional[str]:
    """Name of a base class expression: Foo, Foo[...] and module.Foo all give Foo."""
    if node.type == "identifier":
        return node_text(node)
    if node.type == "subscript":
        value = node.child_by_field_name("value")
        return base_name(value) if value is not None else None
    if node.type == "attribute":
        attribute = node.child_by_field_name("attribute")
        return node_text(attribute) if attribute is not None else None
    return None


def assignment_of(statement: Node) -> Optional[Node]:
    if statement.type != "expression_statement":
        return None
    named = statement.named_children
    if len(named) == 1 and named[0].type == "assignment":
        return named[0]
    return None


def assignment_target(assignment: Node) -> Optional[str]:
    left = assignment.child_by_field_name("left")
    if left is not None and left.type == "identifier":
        return node_text(left)
    return None


def function_of(statement: Node) -> Optional[Node]:
    if statement.type == "function_definition":
        return statement
    if statement.type == "decorated_definition":
        definition = statement.child_by_field_name("definition")
        if definition is not None and definition.type == "function_definition":
            return definition
    return None


def first_decorator(statement: Node) -> Optional[Node]:
    """Expression of the first decorator of a decorated definition."""
    if statement.type != "decorated_definition":
        return None
    for child in statement.named_children:
        if child.type == "decorator":
            expressions = statements(child)
            return expressions[0] if expressions else None
    return None


def member_name(statement: Node) -> Optional[str]:
    """Name bound by a class body statement, if it binds exactly one."""
    assignment = assignment_of(statement)
    if assignment is not None:
        return assignment_target(assignment)
    definition = function_of(statement)
    if definition is not None:
        return node_text(definition.child_by_field_name("name"))
    return None


def call_name(node: Node) -> Optional[str]:
    if node.type != "call":
        return None
    function = node.child_by_field_name("function")
    if function is not None and function.type == "identifier":
        return node_text(function)
    return None


def call_arguments(node: Node) -> List[Node]:
    arguments = node.child_by_field_name("arguments")
    if arguments is None or arguments.type != "argument_list":
        return []
    return statements(arguments)


def string_value(node: Node) -> Optional[str]:
    """Value of a plain string literal; None for f-strings, bytes and non-strings."""
    if node.type != "string":
        return None
    try:
        value = ast.literal_eval(node_text(node))
    except (ValueError, SyntaxError):
        return None
    return value if isinstance(value, str) else None


def is_docstring(statement: Node) -> bool:
    named = statement.named_children
    return statement.type == "expression_statement" and len(named) == 1 and named[0].type == "string"


def sequence_item_span(items: List[Node], index: int) -> Tuple[int, int]:
    """
    Byte span to delete so that items[index] disappears from a comma
    separated sequence (import names, dict pairs, base classes) while the
    remaining separators stay well formed.
    """
    item = items[index]
    if index > 0:
        return items[index - 1].end_byte, item.end_byte
    if len(items) > 1:
        return item.start_byte, items[1].start_byte
    end = item.end_byte
    following = item.next_sibling
    if following is not None and following.type == ",":
        end = following.end_byte
    return item.start_byte, end
