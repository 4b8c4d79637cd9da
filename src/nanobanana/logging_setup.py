from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

__all__ = ["console", "configure_logging", "resolve_level"]

# stdout carries the stdio RPC stream, so logs must go to stderr.
console = Console(stderr=True)

SILENT = logging.CRITICAL + 10

_LEVEL_ALIASES = {
    "silent": SILENT,
    "off": SILENT,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


def resolve_level(name: str | None) -> int:
    if not name:
        return SILENT
    level = _LEVEL_ALIASES.get(name.strip().lower())
    if level is not None:
        return level
    return getattr(logging, name.strip().upper(), SILENT)


def configure_logging(level_name: str | None) -> int:
    """Install a single Rich handler on the package logger."""
    level = resolve_level(level_name)
    pkg_logger = logging.getLogger("nanobanana")

    handler = next(
        (h for h in pkg_logger.handlers if getattr(h, "_nanobanana_managed", False)),
        None,
    )
    if handler is None:
        handler = RichHandler(console=console, rich_tracebacks=True, show_path=False, markup=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        handler._nanobanana_managed = True  # type: ignore[attr-defined]
        pkg_logger.addHandler(handler)

    pkg_logger.setLevel(level)
    return level
