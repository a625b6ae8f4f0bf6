"""
SourceMutator: one operation per editor command.

Every operation follows the same pipeline:
1. Read the file into an immutable SourceDocument (CodeEditor)
2. Run a chain of document transforms (ImportManager, ClassEditor, RegistrationEditor)
3. Validate the result (CodeValidator)
4. Format it (CodeFormatter)
5. Write it atomically, once (CodeEditor)

Operations on the same file are serialized with a per-file lock.
"""

import threading
from contextlib import ExitStack, contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional

from classgraph.exceptions import DuplicateClassError, MutationError
from classgraph.logging_config import logger
from classgraph.parser.config import MIXINS_MODULE, RUNTIME_MODULE
from classgraph.parser.extractor import MemberCategory, require_class, scan_members, scan_mixins
from classgraph.parser.syntax import SourceDocument
from classgraph.paths import ClassgraphPaths
from classgraph.schemas import Mixin

from .class_editor import ClassEditor, injector_code, injector_property_name, validate_class_id
from .config import (
    CLASS_TEMPLATE,
    ENTRY_TEMPLATE,
    INJECTOR_IMPORTS,
    MUTATION_CONFIG,
    STATE_MACHINE,
)
from .editor import CodeEditor
from .formatter import CodeFormatter
from .import_manager import ImportManager
from .registration import RegistrationEditor
from .validator import CodeValidator

Transform = Callable[[SourceDocument], SourceDocument]


class SourceMutator:
    """
    Main facade for class source mutations.
    """

    def __init__(self, paths: ClassgraphPaths, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the mutator.

        Args:
            paths: Project paths (class directory, entry file)
            config: Optional config overrides
        """
        self.paths = paths
        self.config = {**MUTATION_CONFIG, **(config or {})}

        self.editor = CodeEditor(self.config)
        self.formatter = CodeFormatter(self.config)
        self.validator = CodeValidator()
        self.imports = ImportManager()
        self.classes = ClassEditor()
        self.registration = RegistrationEditor(self.imports)

        self._locks: Dict[Path, threading.Lock] = {}
        self._locks_guard = threading.Lock()

        logger.debug(f"SourceMutator initialized for {paths.app_dir}")

    def lock_for(self, file_path: Path) -> threading.Lock:
        key = Path(file_path).resolve()
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def _locked(self, *file_paths: Path) -> Iterator[None]:
        # Fixed acquisition order so two multi-file operations cannot deadlock
        with ExitStack() as stack:
            for path in sorted({Path(p).resolve() for p in file_paths}, key=str):
                stack.enter_context(self.lock_for(path))
            yield

    def _render(self, document: SourceDocument, file_path: Path) -> str:
        if self.config["syntax_check_required"]:
            self.validator.require_valid(document, file_path)
        return self.formatter.format_source(document.text, file_path)

    def _apply(self, file_path: Path, transform: Transform) -> SourceDocument:
        with self._locked(file_path):
            document = self.editor.read_document(file_path)
            updated = transform(document)
            if updated.source == document.source:
                logger.debug(f"No changes for {file_path}")
                return document
            content = self._render(updated, file_path)
            self.editor.write(file_path, content)
            return SourceDocument.from_text(content)

    # ------------------------------------------------------------------
    # Classes
    # ------------------------------------------------------------------

    def ensure_entry_file(self, devtool_env: str = "CLASSGRAPH_DEVTOOL") -> bool:
        """Create the entry file with an empty registration call. Returns True if created."""
        entry = self.paths.entry_file
        with self._locked(entry):
            if entry.exists():
                return False
            self.editor.create(entry, ENTRY_TEMPLATE.format(devtool_env=devtool_env))
            return True

    def create_class(self, class_id: str) -> Path:
        """
        Write `class <class_id>: pass` to a new file and register it.

        Raises:
            InvalidClassId: If class_id is not a Python identifier
            DuplicateClassError: If the class file already exists
        """
        validate_class_id(class_id)
        path = self.paths.class_file(class_id)
        with self._locked(path):
            if path.exists():
                raise DuplicateClassError(class_id, file_path=str(path))
            self.editor.create(path, CLASS_TEMPLATE.format(class_id=class_id))
        self.register_class(class_id)
        return path

    def delete_class(self, class_id: str) -> None:
        path = self.paths.class_file(class_id)
        with self._locked(path):
            self.editor.delete(path)

    def rename_class(self, class_id: str, to_class_id: str) -> Path:
        """
        Rename the class statement and its file, and move its registration.
        Injectors in other classes are retargeted by the caller.
        """
        validate_class_id(to_class_id)
        source = self.paths.class_file(class_id)
        target = self.paths.class_file(to_class_id)
        with self._locked(source, target):
            if target.exists():
                raise DuplicateClassError(to_class_id, file_path=str(target))
            document = self.editor.read_document(source)
            renamed = self.classes.rename_class(document, class_id, to_class_id)
            self.editor.create(target, self._render(renamed, target))
            self.editor.delete(source)

        self._apply(
            self.paths.entry_file,
            lambda d: self.registration.register(self.registration.unregister(d, class_id), to_class_id),
        )
        return target

    def register_class(self, class_id: str) -> SourceDocument:
        return self._apply(self.paths.entry_file, lambda d: self.registration.register(d, class_id))

    def unregister_class(self, class_id: str) -> Optional[SourceDocument]:
        if not self.paths.entry_file.exists():
            return None
        return self._apply(self.paths.entry_file, lambda d: self.registration.unregister(d, class_id))

    # ------------------------------------------------------------------
    # Injectors
    # ------------------------------------------------------------------

    def _ensure_injector_imports(self, document: SourceDocument, class_id: str, kind: str) -> SourceDocument:
        if kind == "injectFactory":
            document = self.imports.add_import(document, RUNTIME_MODULE, "inject_factory")
            document = self.imports.add_import(document, RUNTIME_MODULE, "Factory")
        else:
            document = self.imports.add_import(document, RUNTIME_MODULE, "inject")
        return self.imports.add_import(document, f".{class_id}", class_id, type_only=True)

    def _drop_unused_injector_imports(self, document: SourceDocument, class_id: Optional[str] = None) -> SourceDocument:
        if class_id is not None:
            document = self.imports.remove_if_unused(document, f".{class_id}", class_id, type_only=True)
            document = self.imports.remove_if_unused(document, f".{class_id}", class_id)
        for name in INJECTOR_IMPORTS:
            document = self.imports.remove_if_unused(document, RUNTIME_MODULE, name)
        return document

    def _injectors_of(self, document: SourceDocument, class_id: str, source_class_id: str):
        return [
            member for member in scan_members(require_class(document, class_id))
            if member.category is MemberCategory.INJECTOR and member.injector.class_id == source_class_id
        ]

    def add_injector(self, to_class_id: str, from_class_id: str, kind: str = "inject") -> SourceDocument:
        """
        Make to_class_id depend on from_class_id.

        An existing attribute with the generated name is rewritten in place.
        """
        name = injector_property_name(from_class_id, kind)
        code = injector_code(from_class_id, kind)

        def transform(document: SourceDocument) -> SourceDocument:
            document = self._ensure_injector_imports(document, from_class_id, kind)
            if self.classes.find_member(document, to_class_id, name) is not None:
                return self.classes.replace_member(document, to_class_id, name, code)
            return self.classes.add_member(document, to_class_id, code)

        logger.info(f"Injecting {from_class_id} into {to_class_id} as {name}")
        return self._apply(self.paths.class_file(to_class_id), transform)

    def replace_injector(self, class_id: str, inject_class_id: str, property_name: str, kind: str) -> SourceDocument:
        """Rewrite one injector attribute in place, switching between inject and inject_factory."""
        new_name = injector_property_name(inject_class_id, kind)
        code = injector_code(inject_class_id, kind)

        def transform(document: SourceDocument) -> SourceDocument:
            if self.classes.find_member(document, class_id, property_name) is None:
                raise MutationError(f"{class_id} has no injector named {property_name}")
            previous = [
                member.injector for member in scan_members(require_class(document, class_id))
                if member.category is MemberCategory.INJECTOR and member.name == property_name
            ]
            if new_name != property_name:
                # Keep a single slot for the dependency
                document = self.classes.remove_member(document, class_id, new_name)
            document = self._ensure_injector_imports(document, inject_class_id, kind)
            document = self.classes.replace_member(document, class_id, property_name, code)
            if previous and previous[-1].class_id != inject_class_id:
                return self._drop_unused_injector_imports(document, previous[-1].class_id)
            return self._drop_unused_injector_imports(document)

        logger.info(f"Replacing injector {class_id}.{property_name} with {new_name} ({kind})")
        return self._apply(self.paths.class_file(class_id), transform)

    def remove_injector(self, to_class_id: str, from_class_id: str) -> SourceDocument:
        """Remove every injector of to_class_id that points at from_class_id."""

        def transform(document: SourceDocument) -> SourceDocument:
            targets = self._injectors_of(document, to_class_id, from_class_id)
            while targets:
                document = self.classes.remove_member(document, to_class_id, targets[0].name)
                targets = self._injectors_of(document, to_class_id, from_class_id)
            return self._drop_unused_injector_imports(document, from_class_id)

        logger.info(f"Removing injection of {from_class_id} from {to_class_id}")
        return self._apply(self.paths.class_file(to_class_id), transform)

    def retarget_injectors(self, class_id: str, from_class_id: str, to_class_id: str) -> SourceDocument:
        """Point every injector of class_id at to_class_id instead of from_class_id."""

        def transform(document: SourceDocument) -> SourceDocument:
            targets = self._injectors_of(document, class_id, from_class_id)
            while targets:
                member = targets[0]
                kind = member.injector.kind
                document = self._ensure_injector_imports(document, to_class_id, kind)
                document = self.classes.replace_member(document, class_id, member.name, injector_code(to_class_id, kind))
                targets = self._injectors_of(document, class_id, from_class_id)
            return self._drop_unused_injector_imports(document, from_class_id)

        return self._apply(self.paths.class_file(class_id), transform)

    # ------------------------------------------------------------------
    # Mixins
    # ------------------------------------------------------------------

    def toggle_mixin(self, class_id: str, mixin: Mixin) -> SourceDocument:
        mixin = Mixin(mixin)

        def transform(document: SourceDocument) -> SourceDocument:
            active = mixin in scan_mixins(require_class(document, class_id))
            if mixin is Mixin.STATE_MACHINE:
                if active:
                    return self._remove_state_machine(document, class_id)
                return self._add_state_machine(document, class_id)
            if active:
                document = self.classes.remove_base(document, class_id, mixin.value)
                return self.imports.remove_if_unused(document, MIXINS_MODULE, mixin.value)
            document = self.imports.add_import(document, MIXINS_MODULE, mixin.value)
            return self.classes.add_base(document, class_id, mixin.value)

        logger.info(f"Toggling {mixin.value} on {class_id}")
        return self._apply(self.paths.class_file(class_id), transform)

    def _strip_state_machine_artifacts(self, document: SourceDocument, class_id: str) -> SourceDocument:
        document = self.classes.remove_member(document, class_id, STATE_MACHINE["transitions_name"])
        document = self.classes.remove_member(document, class_id, STATE_MACHINE["state_name"])
        return self.classes.remove_module_assignment(document, STATE_MACHINE["alias_name"])

    def _add_state_machine(self, document: SourceDocument, class_id: str) -> SourceDocument:
        # Leftovers of a partial state machine are replaced by the full set
        document = self._strip_state_machine_artifacts(document, class_id)
        for source, name in STATE_MACHINE["imports"]:
            document = self.imports.add_import(document, source, name)
        document = self.classes.insert_before_class(document, class_id, STATE_MACHINE["alias"])
        document = self.classes.add_member(document, class_id, STATE_MACHINE["state"])
        document = self.classes.add_member(document, class_id, STATE_MACHINE["transitions"])
        return self.classes.add_base(document, class_id, STATE_MACHINE["base"])

    def _remove_state_machine(self, document: SourceDocument, class_id: str) -> SourceDocument:
        document = self._strip_state_machine_artifacts(document, class_id)
        document = self.classes.remove_base(document, class_id, Mixin.STATE_MACHINE.value)
        for source, name in STATE_MACHINE["imports"]:
            document = self.imports.remove_if_unused(document, source, name)
        return document
