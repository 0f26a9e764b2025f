"""Configuración centralizada de logging.

Todos los módulos obtienen su logger con `get_logger(__name__)`. La salida va a
stderr vía Rich para que stdout quede limpio (JSON/pipelines).
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_LOG_FORMAT = "%(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_ROOT_NAMESPACES = ("cli", "core", "adapters")
_initialized = False


def configure_logging(level: str | int = "WARNING") -> None:
    """Instala el handler una sola vez; llamadas posteriores solo cambian el nivel."""

    global _initialized
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    if not _initialized:
        handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
            log_time_format=f"[{_DATE_FORMAT}]",
        )
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        for namespace in _ROOT_NAMESPACES:
            logger = logging.getLogger(namespace)
            logger.addHandler(handler)
            logger.propagate = False
        _initialized = True

    for namespace in _ROOT_NAMESPACES:
        logging.getLogger(namespace).setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """Logger con nombre (normalmente `__name__` del módulo llamante)."""

    return logging.getLogger(name)
