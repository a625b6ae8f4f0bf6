"""
Daemon package: the editor backend server.
"""

from .config import SERVER_CONFIG
from .handlers import CommandHandler
from .server import EditorBackend

__all__ = ["EditorBackend", "CommandHandler", "SERVER_CONFIG"]
