"""
CodeFormatter: pretty-print mutated sources before they are written.
"""

import json
import subprocess
import shutil
from pathlib import Path
from typing import Any, Optional

from classgraph.logging_config import logger
from .config import FORMATTERS, MUTATION_CONFIG


class CodeFormatter:
    """
    Shell out to black for Python sources; JSON is dumped with a fixed
    indent. A missing or failing formatter leaves the source unformatted.
    """

    def __init__(self, config: Optional[dict] = None):
        """
        Initialize formatter with optional config.

        Args:
            config: Optional config overrides (merges with MUTATION_CONFIG)
        """
        self.config = {**MUTATION_CONFIG, **(config or {})}

    def language_for(self, file_path: Path) -> Optional[str]:
        suffix = Path(file_path).suffix
        for language, formatter_config in FORMATTERS.items():
            if suffix in formatter_config["extensions"]:
                return language
        return None

    def format_source(self, content: str, file_path: Path) -> str:
        """
        Format source text the way it would be formatted on disk.

        Args:
            content: Source text
            file_path: Destination path, used to pick the formatter

        Returns:
            Formatted text, or the input unchanged if formatting is off,
            unsupported, unavailable or fails
        """
        if not self.config["auto_format_enabled"]:
            return content

        language = self.language_for(file_path)
        if language is None:
            logger.debug(f"No formatter configured for {file_path}")
            return content

        formatter_config = FORMATTERS[language]
        command = formatter_config["command"]

        # Check if formatter is available
        if not shutil.which(command):
            logger.debug(f"Formatter '{command}' not found in PATH, skipping auto-format")
            return content

        full_command = [
            command,
            "--line-length",
            str(self.config["black_line_length"]),
        ] + formatter_config["args"]

        try:
            result = subprocess.run(
                full_command,
                input=content,
                capture_output=True,
                text=True,
                timeout=self.config["formatter_timeout"],
            )
        except subprocess.TimeoutExpired:
            logger.warning(f"Formatter timeout after {self.config['formatter_timeout']}s for {file_path}")
            return content
        except OSError as e:
            logger.warning(f"Formatter error for {file_path}: {e}")
            return content

        if result.returncode != 0:
            logger.warning(f"Formatter failed for {file_path}: {result.stderr or result.stdout}")
            return content

        logger.debug(f"Formatted {file_path} with {command}")
        return result.stdout

    def format_json(self, data: Any) -> str:
        return json.dumps(data, indent=2) + "\n"
