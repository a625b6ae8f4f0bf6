"""
Tests for the source mutator: naming, imports, members, registration literal
and the SourceMutator operations.
"""

import threading

import pytest

from classgraph.exceptions import DuplicateClassError, InvalidClassId, MutationError
from classgraph.mutation import (
    ClassEditor,
    CodeEditor,
    CodeValidator,
    ImportManager,
    RegistrationEditor,
    injector_code,
    injector_property_name,
    snake_case,
    validate_class_id,
)
from classgraph.parser import SourceDocument, extract_class, extract_file
from classgraph.schemas import Injector, Mixin

pytestmark = pytest.mark.fast


class TestNaming:
    """Test class ids and generated injector attributes."""

    def test_snake_case(self):
        assert snake_case("FooBar") == "foo_bar"
        assert snake_case("HTTPClient") == "http_client"
        assert snake_case("A") == "a"

    def test_snake_case_keyword(self):
        assert snake_case("Class") == "class_"

    def test_injector_property_name(self):
        assert injector_property_name("UserApi", "inject") == "user_api"
        assert injector_property_name("UserApi", "injectFactory") == "create_user_api"

    def test_injector_code_is_extractable(self):
        source = f"class A:\n    {injector_code('Item', 'injectFactory')}\n"
        assert extract_class("A", source).injectors == [
            Injector(class_id="Item", property_name="create_item", kind="injectFactory")
        ]

    @pytest.mark.parametrize("class_id", ["", "1Foo", "class", "Foo-Bar", "Foo Bar"])
    def test_invalid_class_ids(self, class_id):
        with pytest.raises(InvalidClassId):
            validate_class_id(class_id)


class TestCodeEditor:
    """Test CodeEditor atomic writes and line endings."""

    def test_atomic_write(self, temp_dir):
        test_file = temp_dir / "test.py"
        test_file.write_text("original content")

        editor = CodeEditor()
        editor._atomic_write(test_file, "new content")

        assert test_file.read_text() == "new content"
        assert [p.name for p in temp_dir.iterdir()] == ["test.py"]

    def test_crlf_preserved(self, temp_dir):
        test_file = temp_dir / "test.py"
        test_file.write_bytes(b"a = 1\r\nb = 2\r\n")

        editor = CodeEditor()
        document = editor.read_document(test_file)
        assert document.text == "a = 1\nb = 2\n"

        editor.write(test_file, "a = 1\nb = 3\n")
        assert test_file.read_bytes() == b"a = 1\r\nb = 3\r\n"

    def test_create_refuses_existing_file(self, temp_dir):
        test_file = temp_dir / "test.py"
        test_file.write_text("x = 1\n")
        with pytest.raises(MutationError):
            CodeEditor().create(test_file, "x = 2\n")

    def test_delete_missing_file(self, temp_dir):
        with pytest.raises(MutationError):
            CodeEditor().delete(temp_dir / "missing.py")


class TestCodeValidator:

    def test_valid_document(self):
        ok, errors = CodeValidator().validate_syntax(SourceDocument.from_text("class A:\n    pass\n"))
        assert ok
        assert errors == []

    def test_invalid_document(self):
        ok, errors = CodeValidator().validate_syntax(SourceDocument.from_text("class A(:\n    pass\n"))
        assert not ok
        assert errors


class TestImportManager:
    """Test adding and removing from-imports."""

    def test_add_to_module_without_imports(self):
        document = SourceDocument.from_text("class A:\n    pass\n")
        result = ImportManager().add_import(document, "classgraph.runtime", "inject")
        assert result.text.startswith("from classgraph.runtime import inject\n")
        assert extract_class("A", result).class_id == "A"

    def test_merge_into_existing_import(self):
        document = SourceDocument.from_text("from classgraph.runtime import inject\n\n\nclass A:\n    pass\n")
        result = ImportManager().add_import(document, "classgraph.runtime", "observable")
        assert "from classgraph.runtime import inject, observable\n" in result.text

    def test_add_is_idempotent(self):
        manager = ImportManager()
        document = SourceDocument.from_text("from classgraph.runtime import inject\n")
        assert manager.add_import(document, "classgraph.runtime", "inject") is document

    def test_type_only_creates_block(self):
        manager = ImportManager()
        document = SourceDocument.from_text("from classgraph.runtime import inject\n\n\nclass A:\n    pass\n")
        result = manager.add_import(document, ".B", "B", type_only=True)
        assert manager.has_import(result, ".B", "B", type_only=True)
        assert manager.has_import(result, "typing", "TYPE_CHECKING")
        assert "if TYPE_CHECKING:\n    from .B import B\n" in result.text

    def test_type_only_reuses_block(self):
        manager = ImportManager()
        document = SourceDocument.from_text("class A:\n    pass\n")
        document = manager.add_import(document, ".B", "B", type_only=True)
        document = manager.add_import(document, ".C", "C", type_only=True)
        assert document.text.count("if TYPE_CHECKING:") == 1
        assert manager.list_imports(document) == [
            "from typing import TYPE_CHECKING",
            "TYPE_CHECKING: from .B import B",
            "TYPE_CHECKING: from .C import C",
        ]

    def test_remove_last_type_only_import_drops_block(self):
        manager = ImportManager()
        original = SourceDocument.from_text("class A:\n    pass\n")
        document = manager.add_import(original, ".B", "B", type_only=True)
        document = manager.remove_import(document, ".B", "B", type_only=True)
        assert "TYPE_CHECKING" not in document.text
        assert manager.list_imports(document) == []

    def test_remove_one_name_keeps_others(self):
        manager = ImportManager()
        document = SourceDocument.from_text("from classgraph.runtime import inject, observable, action\n")
        result = manager.remove_import(document, "classgraph.runtime", "observable")
        assert result.text == "from classgraph.runtime import inject, action\n"

    def test_remove_if_unused_keeps_used_names(self):
        manager = ImportManager()
        document = SourceDocument.from_text(
            'from classgraph.runtime import inject\n\n\nclass A:\n    b: "B" = inject("B")\n'
        )
        assert manager.remove_if_unused(document, "classgraph.runtime", "inject") is document

    def test_string_annotation_counts_as_use(self):
        document = SourceDocument.from_text('class A:\n    b: "Factory[B]" = None\n')
        manager = ImportManager()
        assert manager.is_name_used(document, "B")
        assert manager.is_name_used(document, "Factory")
        assert not manager.is_name_used(document, "C")

    def test_docstring_mention_is_not_a_use(self):
        document = SourceDocument.from_text(
            'class A:\n    """Talks to B."""\n\n    c = inject("C")\n    x = "B"\n'
        )
        manager = ImportManager()
        assert not manager.is_name_used(document, "B")
        assert manager.is_name_used(document, "C")


class TestClassEditor:
    """Test member and base edits."""

    def test_add_member_replaces_pass(self):
        document = SourceDocument.from_text("class A:\n    pass\n")
        result = ClassEditor().add_member(document, "A", "x = observable(1)")
        assert result.text == "class A:\n    x = observable(1)\n"

    def test_add_member_after_docstring(self):
        document = SourceDocument.from_text('class A:\n    """Doc."""\n\n    y = 2\n')
        result = ClassEditor().add_member(document, "A", "x = 1")
        assert result.text == 'class A:\n    """Doc."""\n    x = 1\n\n    y = 2\n'

    def test_add_member_goes_first(self):
        document = SourceDocument.from_text("class A:\n    y = 2\n")
        result = ClassEditor().add_member(document, "A", "x = 1")
        assert result.text == "class A:\n    x = 1\n    y = 2\n"

    def test_remove_last_member_leaves_pass(self):
        document = SourceDocument.from_text("class A:\n    x = 1\n")
        assert ClassEditor().remove_member(document, "A", "x").text == "class A:\n    pass\n"

    def test_remove_member_keeps_order(self):
        document = SourceDocument.from_text("class A:\n    x = 1\n    y = 2\n    z = 3\n")
        assert ClassEditor().remove_member(document, "A", "y").text == "class A:\n    x = 1\n    z = 3\n"

    def test_replace_missing_member_raises(self):
        document = SourceDocument.from_text("class A:\n    pass\n")
        with pytest.raises(MutationError):
            ClassEditor().replace_member(document, "A", "x", "x = 1")

    def test_add_and_remove_base(self):
        editor = ClassEditor()
        document = SourceDocument.from_text("class A:\n    pass\n")
        document = editor.add_base(document, "A", "Disposable")
        assert document.text.startswith("class A(Disposable):")
        document = editor.add_base(document, "A", "UI")
        assert document.text.startswith("class A(Disposable, UI):")
        document = editor.remove_base(document, "A", "Disposable")
        assert document.text.startswith("class A(UI):")
        document = editor.remove_base(document, "A", "UI")
        assert document.text.startswith("class A:")

    def test_add_base_before_keyword_arguments(self):
        document = SourceDocument.from_text("class A(metaclass=Meta):\n    pass\n")
        result = ClassEditor().add_base(document, "A", "UI")
        assert result.text.startswith("class A(UI, metaclass=Meta):")

    def test_generic_base_matched_by_name(self):
        document = SourceDocument.from_text("class A(StateMachine[TState]):\n    pass\n")
        assert ClassEditor().has_base(document, "A", "StateMachine")

    def test_rename_class(self):
        document = SourceDocument.from_text("class A(UI):\n    pass\n")
        assert ClassEditor().rename_class(document, "A", "B").text == "class B(UI):\n    pass\n"


class TestRegistrationEditor:
    """Test the Container registration literal."""

    ENTRY = '''import os

from classgraph.runtime import Container

OTHER = {}

container = Container({}, devtool=os.environ.get("CLASSGRAPH_DEVTOOL"))
'''

    def test_register_adds_entry_and_import(self):
        editor = RegistrationEditor(ImportManager())
        document = editor.register(SourceDocument.from_text(self.ENTRY), "A")
        document = editor.register(document, "B")
        assert editor.registered_ids(document) == ["A", "B"]
        assert 'Container({"A": A, "B": B}, devtool=' in document.text
        assert "from .A import A\nfrom .B import B\n" in document.text
        # The unrelated literal stays empty
        assert "OTHER = {}\n" in document.text

    def test_register_is_idempotent(self):
        editor = RegistrationEditor(ImportManager())
        document = editor.register(SourceDocument.from_text(self.ENTRY), "A")
        assert editor.register(document, "A").text == document.text

    def test_unregister(self):
        editor = RegistrationEditor(ImportManager())
        document = SourceDocument.from_text(self.ENTRY)
        for class_id in ("A", "B", "C"):
            document = editor.register(document, class_id)
        document = editor.unregister(document, "B")
        assert editor.registered_ids(document) == ["A", "C"]
        assert "from .B import B" not in document.text
        assert 'Container({"A": A, "C": C},' in document.text

    def test_unregister_missing_is_noop(self):
        editor = RegistrationEditor(ImportManager())
        document = SourceDocument.from_text(self.ENTRY)
        assert editor.unregister(document, "A").text == self.ENTRY

    def test_register_without_container_call(self):
        editor = RegistrationEditor(ImportManager())
        with pytest.raises(MutationError):
            editor.register(SourceDocument.from_text("x = {}\n"), "A")


class TestSourceMutatorClasses:
    """Test class creation, deletion and renaming."""

    def test_ensure_entry_file(self, paths, mutator):
        assert mutator.ensure_entry_file()
        assert not mutator.ensure_entry_file()
        assert "container = Container({}, devtool=os.environ.get(\"CLASSGRAPH_DEVTOOL\"))" in paths.entry_file.read_text()

    def test_create_class(self, temp_project, mutator):
        path = mutator.create_class("C")
        assert path == temp_project.class_file("C")
        assert extract_file(path).class_id == "C"
        assert mutator.registration.registered_ids(mutator.editor.read_document(temp_project.entry_file)) == ["A", "B", "C"]

    def test_create_duplicate_class(self, temp_project, mutator):
        original = temp_project.class_file("A").read_text()
        with pytest.raises(DuplicateClassError):
            mutator.create_class("A")
        assert temp_project.class_file("A").read_text() == original

    def test_create_invalid_class(self, temp_project, mutator):
        with pytest.raises(InvalidClassId):
            mutator.create_class("not valid")

    def test_delete_and_unregister(self, temp_project, mutator):
        mutator.delete_class("A")
        mutator.unregister_class("A")
        assert not temp_project.class_file("A").exists()
        entry = temp_project.entry_file.read_text()
        assert "from .A import A" not in entry
        assert '"A"' not in entry

    def test_rename_class(self, temp_project, mutator):
        mutator.rename_class("A", "Counter")
        assert not temp_project.class_file("A").exists()
        extracted = extract_file(temp_project.class_file("Counter"))
        assert [m.name for m in extracted.observables] == ["count"]
        ids = mutator.registration.registered_ids(mutator.editor.read_document(temp_project.entry_file))
        assert ids == ["B", "Counter"]


class TestSourceMutatorInjectors:
    """Test injector operations on class files."""

    def test_add_injector(self, temp_project, mutator):
        mutator.add_injector("A", "B")
        extracted = extract_file(temp_project.class_file("A"))
        assert extracted.injectors == [Injector(class_id="B", property_name="b", kind="inject")]
        assert [m.name for m in extracted.observables] == ["count"]
        text = temp_project.class_file("A").read_text()
        assert "from classgraph.runtime import observable, inject" in text
        assert "if TYPE_CHECKING:\n    from .B import B" in text

    def test_add_then_remove_restores_structure(self, temp_project, mutator):
        imports = ImportManager()
        path = temp_project.class_file("A")
        before = extract_file(path)
        imports_before = imports.list_imports(mutator.editor.read_document(path))

        mutator.add_injector("A", "B")
        mutator.remove_injector("A", "B")

        assert extract_file(path) == before
        assert imports.list_imports(mutator.editor.read_document(path)) == imports_before

    def test_round_trip_with_docstring_naming_dependency(self, temp_project, mutator):
        """A docstring that mentions the dependency does not pin its import."""
        path = temp_project.class_file("C")
        path.write_text('class C:\n    """Talks to B and renders it."""\n\n    value = 1\n')
        imports = ImportManager()

        mutator.add_injector("C", "B")
        mutator.remove_injector("C", "B")

        text = path.read_text()
        assert imports.list_imports(mutator.editor.read_document(path)) == []
        assert "TYPE_CHECKING" not in text
        assert extract_file(path).injectors == []

    def test_add_injector_twice_keeps_one(self, temp_project, mutator):
        mutator.add_injector("A", "B")
        mutator.add_injector("A", "B")
        assert len(extract_file(temp_project.class_file("A")).injectors) == 1

    def test_replace_injector_with_factory(self, temp_project, mutator):
        mutator.replace_injector("B", "A", "a", "injectFactory")
        extracted = extract_file(temp_project.class_file("B"))
        assert extracted.injectors == [Injector(class_id="A", property_name="create_a", kind="injectFactory")]
        text = temp_project.class_file("B").read_text()
        assert "inject_factory" in text
        assert "from classgraph.runtime import inject\n" not in text

    def test_replace_injector_source_drops_old_import(self, temp_project, mutator):
        mutator.replace_injector("B", "C", "a", "inject")
        extracted = extract_file(temp_project.class_file("B"))
        assert extracted.injectors == [Injector(class_id="C", property_name="c", kind="inject")]
        text = temp_project.class_file("B").read_text()
        assert "from .C import C" in text
        assert "from .A import A" not in text

    def test_replace_unknown_injector(self, temp_project, mutator):
        with pytest.raises(MutationError):
            mutator.replace_injector("B", "A", "missing", "inject")

    def test_retarget_injectors(self, temp_project, mutator):
        mutator.retarget_injectors("B", "A", "Counter")
        extracted = extract_file(temp_project.class_file("B"))
        assert extracted.injectors == [Injector(class_id="Counter", property_name="counter", kind="inject")]
        assert "from .A import A" not in temp_project.class_file("B").read_text()

    def test_concurrent_edits_on_one_file(self, temp_project, mutator):
        """Per-file locking serializes read-modify-write cycles."""
        threads = [
            threading.Thread(target=mutator.add_injector, args=("A", f"Dep{i}"))
            for i in range(8)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        injectors = extract_file(temp_project.class_file("A")).injectors
        assert sorted(i.class_id for i in injectors) == [f"Dep{i}" for i in range(8)]


class TestSourceMutatorMixins:
    """Test mixin toggles."""

    def test_toggle_disposable(self, temp_project, mutator):
        path = temp_project.class_file("A")
        mutator.toggle_mixin("A", Mixin.DISPOSABLE)
        assert extract_file(path).mixins == [Mixin.DISPOSABLE]
        assert "from classgraph.mixins import Disposable" in path.read_text()

        mutator.toggle_mixin("A", Mixin.DISPOSABLE)
        assert extract_file(path).mixins == []
        assert "classgraph.mixins" not in path.read_text()

    def test_state_machine_on(self, temp_project, mutator):
        path = temp_project.class_file("A")
        mutator.toggle_mixin("A", Mixin.STATE_MACHINE)
        extracted = extract_file(path)
        text = path.read_text()
        assert extracted.mixins == [Mixin.STATE_MACHINE]
        assert [m.name for m in extracted.observables] == ["state", "count"]
        assert 'TState = Literal["FOO", "BAR"]' in text
        assert "transitions: StateMachineTransitions[TState]" in text
        assert "class A(StateMachine[TState]):" in text

    def test_state_machine_round_trip(self, temp_project, mutator):
        path = temp_project.class_file("A")
        before = extract_file(path)

        mutator.toggle_mixin("A", Mixin.STATE_MACHINE)
        mutator.toggle_mixin("A", Mixin.STATE_MACHINE)

        after = extract_file(path)
        text = path.read_text()
        assert after == before
        for residue in ("TState", "transitions", "state", "Literal", "StateMachine"):
            assert residue not in text

    def test_state_machine_on_with_leftovers(self, temp_project, mutator):
        """A partial set of artifacts is replaced by exactly one full set."""
        path = temp_project.class_file("A")
        path.write_text(path.read_text().replace(
            "    count: int = observable(0)\n",
            '    state = "FOO"\n    count: int = observable(0)\n',
        ))
        mutator.toggle_mixin("A", Mixin.STATE_MACHINE)
        text = path.read_text()
        assert text.count("state:") == 1
        assert text.count("TState = Literal") == 1
