"""
Pytest configuration for the classgraph test suite.

This conftest.py provides:
- Machine-mode logging (suppresses console output)
- Temporary directories and a temporary class graph project
- A mutator with formatting disabled, so tests do not depend on black
- A recording stand-in for the devtool reporting channel
"""

import os
import shutil
import tempfile
from pathlib import Path

import pytest

from classgraph.logging_config import setup_logging


# ============================================================================
# GLOBAL CONFIGURATION
# ============================================================================

def pytest_configure(config):
    """Keep test output clean and never connect to a real backend."""
    os.environ.setdefault("CLASSGRAPH_MACHINE_MODE", "1")
    os.environ.pop("CLASSGRAPH_DEVTOOL", None)


# ============================================================================
# LOGGING FIXTURES
# ============================================================================

@pytest.fixture(autouse=True)
def setup_test_logging():
    """
    Machine mode by default - suppress console logs for clean test output.
    """
    setup_logging(level="DEBUG", suppress_console=True, force=True)


# ============================================================================
# TEMPORARY DIRECTORY FIXTURES
# ============================================================================

@pytest.fixture
def temp_dir():
    """Create a temporary directory that's cleaned up after the test."""
    tmp = Path(tempfile.mkdtemp(prefix="classgraph_test_"))
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def paths(temp_dir):
    from classgraph.paths import ClassgraphPaths

    return ClassgraphPaths(temp_dir)


@pytest.fixture
def mutator(paths):
    """SourceMutator with black disabled."""
    from classgraph.mutation import SourceMutator

    return SourceMutator(paths, {"auto_format_enabled": False})


@pytest.fixture
def temp_project(paths, mutator):
    """
    Create a project with an entry file and two classes, A and B, where B
    injects A.

    Returns:
        ClassgraphPaths of the project.
    """
    paths.app_dir.mkdir(parents=True)
    mutator.ensure_entry_file()

    paths.class_file("A").write_text('''from classgraph.runtime import observable


class A:
    count: int = observable(0)
''')
    paths.class_file("B").write_text('''from typing import TYPE_CHECKING

from classgraph.runtime import inject

if TYPE_CHECKING:
    from .A import A


class B:
    a: "A" = inject("A")
''')
    mutator.register_class("A")
    mutator.register_class("B")

    yield paths


# ============================================================================
# RUNTIME HELPERS
# ============================================================================

class RecordingDevtool:
    """Collects the messages a container would send to the backend."""

    def __init__(self):
        self.messages = []

    def send(self, message):
        self.messages.append(message)

    def close(self):
        pass

    def of_type(self, message_type):
        return [m for m in self.messages if m.type == message_type]


@pytest.fixture
def recorder():
    return RecordingDevtool()
