import os
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

_TRUE_VALUES = ("1", "true", "yes")

# Thread names matter here: watcher, sync worker and devtool threads all log
CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<magenta>{thread.name}</magenta> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - "
    "<level>{message}</level>"
)

_logging_configured = False


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").lower() in _TRUE_VALUES


def setup_logging(
    level: Optional[str] = None,
    suppress_console: Optional[bool] = None,
    enable_file_logging: Optional[bool] = None,
    log_dir: Optional[Path] = None,
    force: bool = False,
):
    """
    Configures the global logger once per process.

    Args:
        level: Console level. If None, CLASSGRAPH_LOG_LEVEL or INFO.
        suppress_console: If True, no console sink. If None, check CLASSGRAPH_MACHINE_MODE.
        enable_file_logging: If True, add a rotating file sink. If None, check CLASSGRAPH_FILE_LOGGING.
        log_dir: Directory for the file sink. Defaults to .classgraph/logs of the current project.
        force: Reconfigure even if logging was already set up (used by the CLI --verbose flag).
    """
    global _logging_configured

    if _logging_configured and not force:
        return
    _logging_configured = True

    logger.remove()

    if level is None:
        level = os.getenv("CLASSGRAPH_LOG_LEVEL", "INFO").upper()
    if suppress_console is None:
        suppress_console = _env_flag("CLASSGRAPH_MACHINE_MODE")
    if enable_file_logging is None:
        enable_file_logging = _env_flag("CLASSGRAPH_FILE_LOGGING")

    if not suppress_console:
        logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT, colorize=True)

    if enable_file_logging:
        if log_dir is None:
            from classgraph.paths import ClassgraphPaths
            log_dir = ClassgraphPaths().logs_dir
        Path(log_dir).mkdir(parents=True, exist_ok=True)

        logger.add(
            Path(log_dir) / "classgraph.log",
            level="DEBUG",
            rotation="5 MB",
            retention=3,
            enqueue=True,
            catch=True,
        )


# Configure the logger on import (will check env vars)
setup_logging()
