from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path

logger = logging.getLogger(__name__)

Opener = Callable[[str], Awaitable[None]]


def viewer_command(path: str, platform: str | None = None) -> list[str]:
    platform = platform or sys.platform
    if platform == "darwin":
        return ["open", path]
    if platform == "win32":
        return ["cmd", "/c", "start", "", path]
    return ["xdg-open", path]


async def open_in_viewer(path: str) -> None:
    proc = await asyncio.create_subprocess_exec(
        *viewer_command(path),
        stdout=asyncio.subprocess.DEVNULL,
        stderr=asyncio.subprocess.PIPE,
    )
    _, stderr = await proc.communicate()
    if proc.returncode != 0:
        detail = (stderr or b"").decode("utf-8", "replace").strip()
        raise RuntimeError(f"viewer exited with status {proc.returncode}: {detail}")
    logger.debug("Opened preview for: %s", path)


async def launch_previews(paths: Sequence[str | Path], opener: Opener = open_in_viewer) -> None:
    """Open every path concurrently. Failures are logged and never raised."""
    if not paths:
        return
    logger.info("Opening %d image(s) for preview", len(paths))
    results = await asyncio.gather(*(opener(str(p)) for p in paths), return_exceptions=True)
    for path, result in zip(paths, results):
        if isinstance(result, BaseException):
            logger.warning("Failed to open preview for %s: %s", path, result)
