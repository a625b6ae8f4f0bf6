"""
Source model extraction.

One structural scan of a class body produces a tagged member list; the
ExtractedClass is then a pure projection of that list plus the class's
base classes.
"""

from enum import Enum
from pathlib import Path
from typing import List, NamedTuple, Optional, Union

from tree_sitter import Node

from classgraph.exceptions import ClassNotFound, ParserError
from classgraph.logging_config import logger
from classgraph.schemas import ExtractedClass, Injector, Mixin, NamedMember
from .config import (
    ACTION_MARKER,
    COMPUTED_MARKER,
    INJECTOR_MARKERS,
    MIXIN_NAMES,
    OBSERVABLE_MARKER,
)
from .syntax import (
    SourceDocument,
    assignment_of,
    assignment_target,
    call_arguments,
    call_name,
    class_body,
    find_class,
    first_decorator,
    function_of,
    node_text,
    statements,
    string_value,
    superclass_arguments,
    base_name,
)


class MemberCategory(str, Enum):
    INJECTOR = "injector"
    OBSERVABLE = "observable"
    COMPUTED = "computed"
    ACTION = "action"


class TaggedMember(NamedTuple):
    """A class body member together with the category its marker puts it in."""
    name: str
    category: MemberCategory
    statement: Node
    injector: Optional[Injector] = None


def require_class(document: SourceDocument, class_id: str) -> Node:
    class_node = find_class(document.root, class_id)
    if class_node is None:
        raise ClassNotFound(class_id)
    return class_node


def scan_members(class_node: Node) -> List[TaggedMember]:
    """Classify every statement of the class body, in declaration order."""
    members = []
    for statement in statements(class_body(class_node)):
        member = _classify(statement)
        if member is not None:
            members.append(member)
    return members


def _classify(statement: Node) -> Optional[TaggedMember]:
    assignment = assignment_of(statement)
    if assignment is not None:
        return _classify_attribute(statement, assignment)

    definition = function_of(statement)
    if definition is None or statement.type != "decorated_definition":
        # Undecorated methods carry no marker
        return None
    decorator = first_decorator(statement)
    if decorator is None or decorator.type != "identifier":
        return None

    name = node_text(definition.child_by_field_name("name"))
    marker = node_text(decorator)
    if marker == COMPUTED_MARKER:
        return TaggedMember(name, MemberCategory.COMPUTED, statement)
    if marker == ACTION_MARKER:
        return TaggedMember(name, MemberCategory.ACTION, statement)
    return None


def _classify_attribute(statement: Node, assignment: Node) -> Optional[TaggedMember]:
    name = assignment_target(assignment)
    value = assignment.child_by_field_name("right")
    if name is None or value is None:
        return None

    if value.type == "identifier" and node_text(value) == OBSERVABLE_MARKER:
        return TaggedMember(name, MemberCategory.OBSERVABLE, statement)

    marker = call_name(value)
    if marker == OBSERVABLE_MARKER:
        return TaggedMember(name, MemberCategory.OBSERVABLE, statement)
    if marker in INJECTOR_MARKERS:
        arguments = call_arguments(value)
        if len(arguments) != 1:
            return None
        source_class_id = string_value(arguments[0])
        if not source_class_id:
            return None
        injector = Injector(
            class_id=source_class_id,
            property_name=name,
            kind=INJECTOR_MARKERS[marker],
        )
        return TaggedMember(name, MemberCategory.INJECTOR, statement, injector)
    return None


def scan_mixins(class_node: Node) -> List[Mixin]:
    mixins: List[Mixin] = []
    for argument in superclass_arguments(class_node):
        mixin = MIXIN_NAMES.get(base_name(argument) or "")
        if mixin is not None and mixin not in mixins:
            mixins.append(mixin)
    return mixins


def extract_class(class_id: str, source: Union[str, bytes, SourceDocument]) -> ExtractedClass:
    """
    Extract the structural metadata of one class.

    Args:
        class_id: Name of the class statement to look for
        source: Source text, bytes, or an already parsed document

    Returns:
        ExtractedClass for the class

    Raises:
        ClassNotFound: If the module has no class statement named class_id
    """
    if isinstance(source, SourceDocument):
        document = source
    elif isinstance(source, bytes):
        document = SourceDocument(source)
    else:
        document = SourceDocument.from_text(source)

    class_node = require_class(document, class_id)
    members = scan_members(class_node)

    # A name bound twice keeps its last binding, as at runtime
    injectors = {m.name: m.injector for m in members if m.category is MemberCategory.INJECTOR}

    def named(category: MemberCategory) -> List[NamedMember]:
        return [NamedMember(name=m.name) for m in members if m.category is category]

    return ExtractedClass(
        class_id=class_id,
        mixins=scan_mixins(class_node),
        injectors=list(injectors.values()),
        observables=named(MemberCategory.OBSERVABLE),
        computed=named(MemberCategory.COMPUTED),
        actions=named(MemberCategory.ACTION),
    )


def extract_file(file_path: Path, class_id: Optional[str] = None) -> ExtractedClass:
    """Extract class_id from a file, by default the class named after the file stem."""
    file_path = Path(file_path)
    try:
        content = file_path.read_bytes()
    except OSError as e:
        raise ParserError(str(file_path), str(e)) from e

    class_id = class_id or file_path.stem
    logger.debug(f"Extracting {class_id} from {file_path}")
    return extract_class(class_id, content)
