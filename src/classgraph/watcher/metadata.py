"""
Persistence of node positions in .classgraph/metadata.json.
"""

import json
from pathlib import Path
from typing import Dict

from pydantic import ValidationError

from classgraph.exceptions import ConfigParseFailure
from classgraph.mutation.editor import CodeEditor
from classgraph.mutation.formatter import CodeFormatter
from classgraph.schemas import ClassMetadata


class MetadataStore:
    """
    Reads and writes the {classId: {x, y}} metadata file.
    """

    def __init__(self, metadata_file: Path, editor: CodeEditor, formatter: CodeFormatter):
        self.metadata_file = Path(metadata_file)
        self.editor = editor
        self.formatter = formatter

    def load(self) -> Dict[str, ClassMetadata]:
        """
        Load metadata; a missing file is an empty map.

        Raises:
            ConfigParseFailure: If the file exists but is not valid metadata
        """
        if not self.metadata_file.exists():
            return {}
        try:
            raw = json.loads(self.metadata_file.read_text(encoding="utf-8"))
            if not isinstance(raw, dict):
                raise ValueError("expected an object keyed by class id")
            return {class_id: ClassMetadata.model_validate(entry) for class_id, entry in raw.items()}
        except (OSError, ValueError, ValidationError) as e:
            raise ConfigParseFailure(str(self.metadata_file), str(e)) from e

    def save(self, metadata: Dict[str, ClassMetadata]) -> None:
        data = {class_id: entry.to_wire() for class_id, entry in metadata.items()}
        self.metadata_file.parent.mkdir(parents=True, exist_ok=True)
        self.editor.write(self.metadata_file, self.formatter.format_json(data))
