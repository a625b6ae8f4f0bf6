"""
classgraph Path Configuration

Centralized path management for a class graph project.
All paths are relative to the project root (current working directory).

Directory Structure:
app/
├── __init__.py          # Entry file holding the Container registration call
├── <ClassId>.py         # One source file per class
.classgraph/
├── metadata.json        # Node positions keyed by class id
└── logs/                # Log files
"""

from pathlib import Path
from typing import Optional


class ClassgraphPaths:
    """
    Centralized path configuration for a class graph project.

    All paths are lazily resolved relative to project_root.
    Default project_root is current working directory.
    """

    APP_DIR = "app"
    CONFIGURATION_DIR = ".classgraph"

    ENTRY_FILE_NAME = "__init__.py"
    METADATA_NAME = "metadata.json"
    CLASS_FILE_EXTENSION = ".py"

    LOGS_DIR = "logs"

    def __init__(self, project_root: Optional[Path] = None):
        """
        Initialize paths configuration.

        Args:
            project_root: Root directory for the project. Defaults to CWD.
        """
        self._project_root = Path(project_root) if project_root is not None else None

    @property
    def project_root(self) -> Path:
        """Get the project root directory."""
        if self._project_root is None:
            return Path.cwd()
        return self._project_root

    @property
    def app_dir(self) -> Path:
        """Get the directory holding one source file per class."""
        return self.project_root / self.APP_DIR

    @property
    def entry_file(self) -> Path:
        """Get the entry file that registers classes with the container."""
        return self.app_dir / self.ENTRY_FILE_NAME

    @property
    def config_dir(self) -> Path:
        """Get the .classgraph directory path."""
        return self.project_root / self.CONFIGURATION_DIR

    @property
    def metadata_file(self) -> Path:
        """Get the node position metadata path."""
        return self.config_dir / self.METADATA_NAME

    @property
    def logs_dir(self) -> Path:
        """Get the logs directory path."""
        return self.config_dir / self.LOGS_DIR

    def class_file(self, class_id: str) -> Path:
        """Get the source file path for a class."""
        return self.app_dir / f"{class_id}{self.CLASS_FILE_EXTENSION}"
