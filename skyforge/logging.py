"""Log sinks for reconciliation runs.

skyforge is a library, so its loguru output stays silent until a caller
opts in. A reconciliation pass logs lifecycle steps at DEBUG, created and
deleted droplets at INFO, and every master-discovery or kubeconfig retry
at WARNING, so INFO on the console is usually enough to follow a run.

Example:
    handler_ids = setup_logging(LogConfig(level="INFO", file="~/.skyforge/run.log"))
    try:
        Reconciler(cluster, provider).reconcile()
    finally:
        teardown_logging(handler_ids)
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, TypeAlias

from loguru import logger

NAMESPACE = "skyforge"

logger.disable(NAMESPACE)

LogLevel: TypeAlias = Literal["DEBUG", "INFO", "WARNING", "ERROR"]

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> <level>{level: <7}</level> "
    "<cyan>{name}</cyan> {message}"
)

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} {level: <7} {name}:{function}:{line} {message}"


@dataclass(frozen=True, slots=True)
class LogConfig:
    """Where a reconciliation run logs.

    Attributes:
        level: Console threshold. The file sink always records DEBUG.
        file: Optional log file, ``~`` expanded. Parent directories are created.
        console: Log to stderr.
        rotation: loguru rotation policy for the file ("50 MB", "1 day", ...).
        retention: Rotated files to keep.
    """

    level: LogLevel = "INFO"
    file: str | None = None
    console: bool = True
    rotation: str = "50 MB"
    retention: int = 10


def _file_sink(config: LogConfig) -> dict[str, Any]:
    path = Path(config.file or "").expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return {
        "sink": str(path),
        "level": "DEBUG",
        "format": FILE_FORMAT,
        "rotation": config.rotation,
        "retention": config.retention,
        "compression": "zip",
        # tracebacks would otherwise print local variables such as the API token
        "diagnose": False,
    }


def setup_logging(config: LogConfig) -> list[int]:
    """Enable skyforge logging and return the ids of the sinks added."""
    sinks: list[dict[str, Any]] = []
    if config.console:
        sinks.append(
            {"sink": sys.stderr, "level": config.level, "format": CONSOLE_FORMAT, "colorize": True}
        )
    if config.file:
        sinks.append(_file_sink(config))

    logger.enable(NAMESPACE)
    return [logger.add(filter=NAMESPACE, **options) for options in sinks]


def teardown_logging(handler_ids: list[int]) -> None:
    """Remove sinks added by ``setup_logging`` and silence skyforge again."""
    for hid in handler_ids:
        logger.remove(hid)
    logger.disable(NAMESPACE)
