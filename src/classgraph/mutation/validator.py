"""
CodeValidator: refuse to write mutations that do not parse.
"""

from pathlib import Path
from typing import List, Tuple

from classgraph.exceptions import MutationError
from classgraph.logging_config import logger
from classgraph.parser.syntax import SourceDocument, syntax_errors


class CodeValidator:
    """
    Syntax verification of a transformed document: the tree must contain no
    ERROR or MISSING nodes.
    """

    def validate_syntax(self, document: SourceDocument) -> Tuple[bool, List[str]]:
        """
        Check a document for syntax errors.

        Returns:
            (is_valid, error_messages)
        """
        errors = [
            f"Syntax error at line {line}, column {column}"
            for line, column in syntax_errors(document.tree)
        ]
        return not errors, errors

    def require_valid(self, document: SourceDocument, file_path: Path) -> None:
        is_valid, errors = self.validate_syntax(document)
        if is_valid:
            return
        for error in errors:
            logger.error(f"{file_path}: {error}")
        raise MutationError(
            f"Mutation of {file_path} produced invalid syntax",
            file_path=str(file_path),
            errors=errors,
        )
