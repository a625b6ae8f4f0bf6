"""
DirectorySynchronizer: keeps the in-memory class registry and the position
metadata consistent with the class directory.

It is the single owner of the registry and the only writer of the metadata
file. Filesystem events are queued and applied by one worker thread, in
arrival order.
"""

import queue
import threading
from dataclasses import dataclass
from fnmatch import fnmatch
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

from watchdog.observers import Observer

from classgraph.exceptions import ClassNotFound, ConfigParseFailure, ParserError
from classgraph.logging_config import logger
from classgraph.mutation.facade import SourceMutator
from classgraph.parser.extractor import extract_file
from classgraph.paths import ClassgraphPaths
from classgraph.schemas import ClassMetadata, ExtractedClass, PlacedClass
from .config import MONITORING_CONFIG, SYNC_CONFIG
from .filesystem_monitor import CHANGE, ClassDirectoryEventHandler
from .metadata import MetadataStore


def _ignore(*args) -> None:
    return None


@dataclass
class SyncListeners:
    """Callbacks fired after the registry has been updated."""
    on_class_change: Callable[[ExtractedClass], None] = _ignore
    on_class_create: Callable[[ExtractedClass], None] = _ignore
    on_class_delete: Callable[[str], None] = _ignore


class DirectorySynchronizer:
    """
    Owns the class registry, the metadata map and the directory watch.
    """

    def __init__(
        self,
        paths: ClassgraphPaths,
        mutator: Optional[SourceMutator] = None,
        config: Optional[dict] = None,
    ):
        """
        Args:
            paths: Project paths
            mutator: Mutator used for entry file edits; one is created if omitted
            config: Optional overrides for SYNC_CONFIG
        """
        self.paths = paths
        self.config = {**SYNC_CONFIG, **(config or {})}
        self.mutator = mutator or SourceMutator(paths)
        self.store = MetadataStore(paths.metadata_file, self.mutator.editor, self.mutator.formatter)

        self.classes: Dict[str, ExtractedClass] = {}
        self.metadata: Dict[str, ClassMetadata] = {}
        self.listeners = SyncListeners()

        self._lock = threading.RLock()
        self._events: "queue.Queue[Optional[Tuple[str, str]]]" = queue.Queue()
        self._worker: Optional[threading.Thread] = None
        self._observer: Optional[Observer] = None

        # Statistics
        self.events_processed = 0
        self.events_failed = 0

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    def initialize(self, listeners: Optional[SyncListeners] = None, watch: Optional[bool] = None) -> Dict[str, PlacedClass]:
        """
        Create missing directories and files, load metadata and extract every
        class file. Starts watching the class directory unless watch is False.

        Returns:
            Snapshot of all classes with their positions
        """
        if listeners is not None:
            self.listeners = listeners

        self._ensure_configuration_dir()
        self._ensure_app_dir()
        if self.mutator.ensure_entry_file(self.config["devtool_env"]):
            logger.info(f"Created entry file {self.paths.entry_file}")

        with self._lock:
            self.classes = self._load_classes()
        logger.info(f"Loaded {len(self.classes)} classes from {self.paths.app_dir}")

        if watch is None:
            watch = self.config["watch"]
        if watch:
            self.start_watching()
        return self.get_classes()

    def _ensure_configuration_dir(self) -> None:
        self.paths.config_dir.mkdir(parents=True, exist_ok=True)
        try:
            metadata = self.store.load()
        except ConfigParseFailure as e:
            logger.warning(f"{e}. Starting with empty metadata")
            metadata = {}
        with self._lock:
            self.metadata = metadata

    def _ensure_app_dir(self) -> None:
        self.paths.app_dir.mkdir(parents=True, exist_ok=True)

    def is_class_file(self, file_name: str) -> bool:
        """True for files that hold one class: not the entry file, tests, hidden or temp files."""
        name = Path(file_name).name
        extension = MONITORING_CONFIG["class_file_extension"]
        if name == self.paths.ENTRY_FILE_NAME or not name.endswith(extension):
            return False
        if any(fnmatch(name, pattern) for pattern in MONITORING_CONFIG["ignore_patterns"]):
            return False
        return name[:-len(extension)].isidentifier()

    def _load_classes(self) -> Dict[str, ExtractedClass]:
        classes: Dict[str, ExtractedClass] = {}
        for path in sorted(self.paths.app_dir.iterdir()):
            if not path.is_file() or not self.is_class_file(path.name):
                continue
            try:
                extracted = extract_file(path)
            except (ClassNotFound, ParserError) as e:
                logger.warning(f"Skipping {path.name}: {e}")
                continue
            classes[extracted.class_id] = extracted
        return classes

    # ------------------------------------------------------------------
    # Watching
    # ------------------------------------------------------------------

    def start_watching(self) -> None:
        if self._observer is not None:
            return

        self._worker = threading.Thread(target=self._drain_events, name="classgraph-sync", daemon=True)
        self._worker.start()

        handler = ClassDirectoryEventHandler(self.paths.app_dir, self.enqueue_event, self.is_class_file)
        self._observer = Observer()
        self._observer.schedule(handler, str(self.paths.app_dir), recursive=MONITORING_CONFIG["recursive"])
        self._observer.start()
        logger.info(f"Watching {self.paths.app_dir}")

    def enqueue_event(self, event_type: str, file_name: str) -> None:
        self._events.put((event_type, file_name))

    def wait_idle(self) -> None:
        """Block until every queued event has been processed."""
        self._events.join()

    def _drain_events(self) -> None:
        while True:
            item = self._events.get()
            try:
                if item is None:
                    return
                self.process_event(*item)
            except Exception as e:
                # One bad event must not stop the loop
                self.events_failed += 1
                logger.error(f"Failed to process {item}: {e}")
            finally:
                self._events.task_done()

    def process_event(self, event_type: str, file_name: str) -> None:
        """
        Apply one filesystem event to the registry.

        A change to an existing file re-extracts it; any event whose file is
        gone deletes the class; a file that appeared is a create, unless the
        class is already known (an atomic replace), which is a change.
        """
        if not self.is_class_file(file_name):
            return
        self.events_processed += 1

        class_id = Path(file_name).stem
        exists = self.paths.class_file(class_id).exists()

        if not exists:
            self._handle_delete(class_id)
        elif event_type == CHANGE or class_id in self.classes:
            self._handle_change(class_id)
        else:
            self._handle_create(class_id)

    def _extract(self, class_id: str) -> ExtractedClass:
        extracted = extract_file(self.paths.class_file(class_id))
        with self._lock:
            self.classes[class_id] = extracted
        return extracted

    def _handle_change(self, class_id: str) -> None:
        self.listeners.on_class_change(self._extract(class_id))

    def _handle_create(self, class_id: str) -> None:
        self.listeners.on_class_create(self._extract(class_id))

    def _handle_delete(self, class_id: str) -> None:
        with self._lock:
            known = self.classes.pop(class_id, None) is not None
            had_metadata = self.metadata.pop(class_id, None) is not None
            if known or had_metadata:
                self.store.save(self.metadata)

        self.mutator.unregister_class(class_id)
        if known:
            logger.info(f"Class {class_id} deleted")
            self.listeners.on_class_delete(class_id)

    # ------------------------------------------------------------------
    # Registry access
    # ------------------------------------------------------------------

    def refresh_class(self, class_id: str) -> ExtractedClass:
        """Re-extract a class after a tool mutation and notify listeners."""
        known = class_id in self.classes
        extracted = self._extract(class_id)
        if known:
            self.listeners.on_class_change(extracted)
        else:
            self.listeners.on_class_create(extracted)
        return extracted

    def forget_class(self, class_id: str) -> None:
        """Drop a class whose file the tool itself removed."""
        self._handle_delete(class_id)

    def write_metadata(self, class_id: str, x: float, y: float) -> ClassMetadata:
        with self._lock:
            entry = self.metadata[class_id] = ClassMetadata(x=x, y=y)
            self.store.save(self.metadata)
        return entry

    def remove_metadata(self, class_id: str) -> None:
        with self._lock:
            if self.metadata.pop(class_id, None) is not None:
                self.store.save(self.metadata)

    def move_metadata(self, class_id: str, to_class_id: str) -> None:
        with self._lock:
            entry = self.metadata.pop(class_id, None)
            if entry is None:
                return
            self.metadata[to_class_id] = entry
            self.store.save(self.metadata)

    def get_class(self, class_id: str) -> PlacedClass:
        with self._lock:
            return PlacedClass.place(self.classes[class_id], self.metadata.get(class_id))

    def get_classes(self) -> Dict[str, PlacedClass]:
        with self._lock:
            return {
                class_id: PlacedClass.place(extracted, self.metadata.get(class_id))
                for class_id, extracted in self.classes.items()
            }

    def dispose(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=self.config["observer_join_timeout"])
            self._observer = None
        if self._worker is not None:
            self._events.put(None)
            self._worker.join(timeout=self.config["observer_join_timeout"])
            self._worker = None
        logger.debug("DirectorySynchronizer disposed")
