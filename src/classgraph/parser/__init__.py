"""
This facade exposes the public API for the parser module.
"""
from .extractor import (
    MemberCategory,
    TaggedMember,
    extract_class,
    extract_file,
    require_class,
    scan_members,
    scan_mixins,
)
from .syntax import SourceDocument, parse_bytes

__all__ = [
    "MemberCategory",
    "TaggedMember",
    "SourceDocument",
    "extract_class",
    "extract_file",
    "parse_bytes",
    "require_class",
    "scan_members",
    "scan_mixins",
]
