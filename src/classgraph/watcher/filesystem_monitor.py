"""
Watchdog event handler for the class directory.
"""

import os
from pathlib import Path
from typing import Callable, List, Tuple

from loguru import logger
from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)

# "change": a file was written in place
# "rename": a file appeared or disappeared; its existence decides which
CHANGE = "change"
RENAME = "rename"


def normalize_event(event: FileSystemEvent) -> List[Tuple[str, str]]:
    """
    Map a watchdog event onto (event_type, absolute_path) pairs.

    A move produces a rename for both its source and its destination.
    """
    src_path = os.fsdecode(event.src_path)
    if event.event_type == EVENT_TYPE_MODIFIED:
        return [(CHANGE, src_path)]
    if event.event_type in (EVENT_TYPE_CREATED, EVENT_TYPE_DELETED):
        return [(RENAME, src_path)]
    if event.event_type == EVENT_TYPE_MOVED:
        return [(RENAME, src_path), (RENAME, os.fsdecode(event.dest_path))]
    return []


class ClassDirectoryEventHandler(FileSystemEventHandler):
    """
    Forwards events for class files in one directory as (event_type, file_name).
    """

    def __init__(
        self,
        directory: Path,
        on_event: Callable[[str, str], None],
        accepts: Callable[[str], bool],
    ):
        """
        Initialize the event handler.

        Args:
            directory: Directory being watched (non-recursively)
            on_event: Called with (event_type, file_name) for accepted files
            accepts: Predicate on file names deciding which files hold classes
        """
        self.directory = Path(directory).resolve()
        self.on_event = on_event
        self.accepts = accepts
        self.events_seen = 0

    def on_any_event(self, event: FileSystemEvent):
        # Ignore directories
        if event.is_directory:
            return

        for event_type, path in normalize_event(event):
            file_path = Path(path)
            if file_path.parent.resolve() != self.directory:
                continue
            if not self.accepts(file_path.name):
                logger.debug(f"Ignoring {event.event_type} for {file_path.name}")
                continue

            logger.debug(f"Event: {event_type} - {file_path.name}")
            self.events_seen += 1
            self.on_event(event_type, file_path.name)
