"""
Tests for DirectorySynchronizer, the metadata store and the watchdog handler.

Most tests drive process_event() directly with watch=False; the integration
test at the bottom runs a real observer.
"""

import json
import time

import pytest
from watchdog.events import (
    DirModifiedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from classgraph.exceptions import ConfigParseFailure
from classgraph.schemas import ClassMetadata, Injector
from classgraph.watcher import (
    CHANGE,
    RENAME,
    ClassDirectoryEventHandler,
    DirectorySynchronizer,
    MetadataStore,
    SyncListeners,
    normalize_event,
)

pytestmark = pytest.mark.fast


class Recorder:
    """Collects listener calls."""

    def __init__(self):
        self.changed = []
        self.created = []
        self.deleted = []

    def listeners(self):
        return SyncListeners(
            on_class_change=self.changed.append,
            on_class_create=self.created.append,
            on_class_delete=self.deleted.append,
        )


@pytest.fixture
def events():
    return Recorder()


@pytest.fixture
def synchronizer(temp_project, mutator, events):
    sync = DirectorySynchronizer(temp_project, mutator)
    sync.initialize(events.listeners(), watch=False)
    yield sync
    sync.dispose()


class TestInitialize:
    """Test startup of the synchronizer."""

    def test_creates_missing_project_layout(self, paths, mutator):
        sync = DirectorySynchronizer(paths, mutator)
        assert sync.initialize(watch=False) == {}
        assert paths.app_dir.is_dir()
        assert paths.config_dir.is_dir()
        assert paths.entry_file.exists()

    def test_loads_classes(self, synchronizer):
        classes = synchronizer.get_classes()
        assert sorted(classes) == ["A", "B"]
        assert classes["B"].injectors == [Injector(class_id="A", property_name="a", kind="inject")]
        assert classes["A"].x == 0 and classes["A"].y == 0

    def test_positions_from_metadata(self, temp_project, mutator):
        temp_project.config_dir.mkdir(parents=True)
        temp_project.metadata_file.write_text(json.dumps({"A": {"x": 10, "y": 20}}))
        sync = DirectorySynchronizer(temp_project, mutator)
        classes = sync.initialize(watch=False)
        assert (classes["A"].x, classes["A"].y) == (10, 20)

    def test_corrupt_metadata_starts_empty(self, temp_project, mutator):
        temp_project.config_dir.mkdir(parents=True)
        temp_project.metadata_file.write_text("{not json")
        sync = DirectorySynchronizer(temp_project, mutator)
        classes = sync.initialize(watch=False)
        assert sync.metadata == {}
        assert sorted(classes) == ["A", "B"]

    def test_skips_file_without_matching_class(self, temp_project, mutator):
        temp_project.class_file("Stray").write_text("x = 1\n")
        sync = DirectorySynchronizer(temp_project, mutator)
        assert "Stray" not in sync.initialize(watch=False)

    @pytest.mark.parametrize("name,expected", [
        ("Foo.py", True),
        ("__init__.py", False),
        ("test_foo.py", False),
        ("foo_test.py", False),
        (".Foo.py.abc123.tmp", False),
        ("Foo.txt", False),
        ("my-class.py", False),
    ])
    def test_is_class_file(self, paths, mutator, name, expected):
        assert DirectorySynchronizer(paths, mutator).is_class_file(name) is expected


class TestProcessEvent:
    """Test how filesystem events update the registry."""

    def test_change_reextracts(self, synchronizer, temp_project, events):
        temp_project.class_file("A").write_text(
            "from classgraph.runtime import observable\n\n\nclass A:\n    count: int = observable(0)\n    name = observable\n"
        )
        synchronizer.process_event(CHANGE, "A.py")

        assert [c.class_id for c in events.changed] == ["A"]
        assert [m.name for m in synchronizer.classes["A"].observables] == ["count", "name"]

    def test_new_file_is_create(self, synchronizer, temp_project, events):
        temp_project.class_file("C").write_text("class C:\n    pass\n")
        synchronizer.process_event(RENAME, "C.py")

        assert [c.class_id for c in events.created] == ["C"]
        assert "C" in synchronizer.get_classes()

    def test_atomic_replace_of_known_file_is_change(self, synchronizer, events):
        synchronizer.process_event(RENAME, "A.py")
        assert [c.class_id for c in events.changed] == ["A"]
        assert events.created == []

    def test_missing_file_is_delete(self, synchronizer, temp_project, events):
        synchronizer.write_metadata("A", 5, 5)
        temp_project.class_file("A").unlink()
        synchronizer.process_event(RENAME, "A.py")

        assert events.deleted == ["A"]
        assert "A" not in synchronizer.classes
        assert "A" not in json.loads(temp_project.metadata_file.read_text())
        entry = temp_project.entry_file.read_text()
        assert "from .A import A" not in entry

    def test_delete_of_unknown_class_is_silent(self, synchronizer, events):
        synchronizer.process_event(RENAME, "Ghost.py")
        assert events.deleted == []

    def test_ignored_files(self, synchronizer, events):
        synchronizer.process_event(CHANGE, "__init__.py")
        synchronizer.process_event(RENAME, ".A.py.x1.tmp")
        assert synchronizer.events_processed == 0
        assert events.changed == events.created == events.deleted == []

    def test_failed_event_does_not_stop_worker(self, synchronizer, temp_project, events):
        """Events are drained in order; an error is counted and skipped."""
        temp_project.class_file("Broken").write_text("x = 1\n")
        temp_project.class_file("C").write_text("class C:\n    pass\n")

        synchronizer.enqueue_event(RENAME, "Broken.py")
        synchronizer.enqueue_event(RENAME, "C.py")
        synchronizer.enqueue_event(RENAME, "ignored")
        synchronizer._events.put(None)
        synchronizer._drain_events()

        assert synchronizer.events_failed == 1
        assert [c.class_id for c in events.created] == ["C"]


class TestRegistryAccess:
    """Test the operations the backend calls after its own mutations."""

    def test_write_metadata(self, synchronizer, temp_project):
        entry = synchronizer.write_metadata("A", 12.5, 40)
        assert entry == ClassMetadata(x=12.5, y=40)
        assert json.loads(temp_project.metadata_file.read_text()) == {"A": {"x": 12.5, "y": 40}}
        placed = synchronizer.get_class("A")
        assert (placed.x, placed.y) == (12.5, 40)

    def test_move_metadata(self, synchronizer):
        synchronizer.write_metadata("A", 1, 2)
        synchronizer.move_metadata("A", "Z")
        assert "A" not in synchronizer.metadata
        assert synchronizer.metadata["Z"] == ClassMetadata(x=1, y=2)

    def test_remove_metadata(self, synchronizer, temp_project):
        synchronizer.write_metadata("A", 1, 2)
        synchronizer.remove_metadata("A")
        assert json.loads(temp_project.metadata_file.read_text()) == {}

    def test_refresh_known_and_new(self, synchronizer, mutator, events):
        mutator.add_injector("A", "B")
        synchronizer.refresh_class("A")
        mutator.create_class("C")
        synchronizer.refresh_class("C")

        assert [c.class_id for c in events.changed] == ["A"]
        assert [c.class_id for c in events.created] == ["C"]
        assert synchronizer.get_class("A").injectors[0].class_id == "B"

    def test_forget_class(self, synchronizer, mutator, events):
        mutator.delete_class("B")
        synchronizer.forget_class("B")
        assert events.deleted == ["B"]
        assert sorted(synchronizer.get_classes()) == ["A"]


class TestMetadataStore:

    def test_missing_file_is_empty(self, paths, mutator):
        store = MetadataStore(paths.metadata_file, mutator.editor, mutator.formatter)
        assert store.load() == {}

    def test_invalid_entries_raise(self, paths, mutator):
        paths.config_dir.mkdir(parents=True)
        paths.metadata_file.write_text(json.dumps({"A": {"x": "left"}}))
        store = MetadataStore(paths.metadata_file, mutator.editor, mutator.formatter)
        with pytest.raises(ConfigParseFailure):
            store.load()

    def test_round_trip(self, paths, mutator):
        store = MetadataStore(paths.metadata_file, mutator.editor, mutator.formatter)
        store.save({"A": ClassMetadata(x=1, y=2)})
        assert store.load() == {"A": ClassMetadata(x=1, y=2)}


class TestEventHandler:
    """Test mapping of watchdog events onto class file events."""

    def test_normalize_event(self):
        assert normalize_event(FileModifiedEvent("/p/app/A.py")) == [(CHANGE, "/p/app/A.py")]
        assert normalize_event(FileCreatedEvent("/p/app/A.py")) == [(RENAME, "/p/app/A.py")]
        assert normalize_event(FileDeletedEvent("/p/app/A.py")) == [(RENAME, "/p/app/A.py")]
        assert normalize_event(FileMovedEvent("/p/app/.A.py.tmp", "/p/app/A.py")) == [
            (RENAME, "/p/app/.A.py.tmp"),
            (RENAME, "/p/app/A.py"),
        ]

    def test_handler_filters(self, temp_dir):
        received = []
        handler = ClassDirectoryEventHandler(temp_dir, lambda t, n: received.append((t, n)), lambda n: n.endswith(".py"))

        handler.dispatch(FileModifiedEvent(str(temp_dir / "A.py")))
        handler.dispatch(FileModifiedEvent(str(temp_dir / "notes.txt")))
        handler.dispatch(FileModifiedEvent(str(temp_dir / "sub" / "B.py")))
        handler.dispatch(DirModifiedEvent(str(temp_dir)))
        handler.dispatch(FileMovedEvent(str(temp_dir / "A.py"), str(temp_dir.parent / "A.py")))

        assert received == [(CHANGE, "A.py"), (RENAME, "A.py")]
        assert handler.events_seen == 2


def _wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.05)
    return False


@pytest.mark.integration
class TestWatching:
    """Test a live observer on the class directory."""

    def test_external_edits_reach_listeners(self, temp_project, mutator, events):
        sync = DirectorySynchronizer(temp_project, mutator)
        sync.initialize(events.listeners(), watch=True)
        try:
            temp_project.class_file("C").write_text("class C:\n    pass\n")
            assert _wait_for(lambda: "C" in sync.classes)

            temp_project.class_file("C").unlink()
            assert _wait_for(lambda: events.deleted == ["C"])
        finally:
            sync.dispose()
