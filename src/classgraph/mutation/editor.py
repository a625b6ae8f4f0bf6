"""
CodeEditor: file access for the mutator with atomic writes.
"""

import os
import stat
import tempfile
from pathlib import Path
from typing import Optional

from classgraph.exceptions import MutationError
from classgraph.logging_config import logger
from classgraph.parser.syntax import SourceDocument
from .config import MUTATION_CONFIG


class CodeEditor:
    """
    Read class files into documents and write them back.

    Features:
    - Atomic writes (temp file + rename)
    - UTF-8 encoding handling
    - Line ending preservation (LF/CRLF)
    """

    def __init__(self, config: Optional[dict] = None):
        """
        Initialize code editor with optional config.

        Args:
            config: Optional config overrides (merges with MUTATION_CONFIG)
        """
        self.config = {**MUTATION_CONFIG, **(config or {})}

    def read_document(self, file_path: Path) -> SourceDocument:
        """
        Read a file as a parsed document with LF line endings.

        Raises:
            MutationError: If the file cannot be read
        """
        try:
            content = Path(file_path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise MutationError(f"Failed to read {file_path}: {e}", file_path=str(file_path)) from e
        return SourceDocument.from_text(content.replace("\r\n", "\n"))

    def write(self, file_path: Path, content: str) -> None:
        """
        Replace a file's content, keeping its line ending style.

        Raises:
            MutationError: If the write fails
        """
        path = Path(file_path)
        line_ending = "\n"
        if path.exists():
            try:
                line_ending = self._detect_line_ending(path.read_bytes())
            except OSError as e:
                logger.warning(f"Could not inspect line endings of {path}: {e}")
        self._atomic_write(path, self._normalize_line_endings(content, line_ending))
        logger.info(f"Wrote {path}")

    def create(self, file_path: Path, content: str) -> None:
        """
        Write a new file.

        Raises:
            MutationError: If the file already exists or the write fails
        """
        path = Path(file_path)
        if path.exists():
            raise MutationError(f"Refusing to overwrite existing file {path}", file_path=str(path))
        path.parent.mkdir(parents=True, exist_ok=True)
        self._atomic_write(path, content)
        logger.info(f"Created {path}")

    def delete(self, file_path: Path) -> None:
        """
        Remove a file.

        Raises:
            MutationError: If the file cannot be removed
        """
        path = Path(file_path)
        try:
            path.unlink()
        except OSError as e:
            raise MutationError(f"Failed to delete {path}: {e}", file_path=str(path)) from e
        logger.info(f"Deleted {path}")

    def _atomic_write(self, path: Path, content: str) -> None:
        """
        Write file atomically using temp file + rename.

        Args:
            path: Target file path
            content: Content to write
        """
        try:
            # Temp file in the target directory so the rename stays on one filesystem
            fd, temp_path = tempfile.mkstemp(
                dir=str(path.parent),
                prefix=f".{path.name}.",
                suffix=".tmp"
            )
        except OSError as e:
            raise MutationError(f"Failed to create temp file for {path}: {e}", file_path=str(path)) from e

        try:
            with os.fdopen(fd, 'w', encoding='utf-8', newline='') as f:
                f.write(content)
            if path.exists():
                os.chmod(temp_path, stat.S_IMODE(path.stat().st_mode))
            os.replace(temp_path, str(path))
            logger.debug(f"Atomic write completed: {path}")
        except OSError as e:
            try:
                os.unlink(temp_path)
            except OSError:
                logger.debug(f"Temp file already gone: {temp_path}")
            raise MutationError(f"Failed during atomic write of {path}: {e}", file_path=str(path)) from e

    def _detect_line_ending(self, content: bytes) -> str:
        """
        Detect line ending style (LF vs CRLF).

        Returns:
            '\r\n' for CRLF, '\n' for LF
        """
        if b'\r\n' in content:
            return '\r\n'
        return '\n'

    def _normalize_line_endings(self, content: str, line_ending: str) -> str:
        content = content.replace('\r\n', '\n')
        if line_ending == '\r\n':
            content = content.replace('\n', '\r\n')
        return content
