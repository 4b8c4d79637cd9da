from __future__ import annotations

import asyncio
import base64
import re
from dataclasses import dataclass, field
from pathlib import Path

MAX_BASENAME_LENGTH = 32
DEFAULT_BASENAME = "generated_image"


def _sanitize_basename(prompt: str) -> str:
    name = re.sub(r"[^a-z0-9\s]", "", prompt.lower())
    name = re.sub(r"\s+", "_", name)
    return name[:MAX_BASENAME_LENGTH] or DEFAULT_BASENAME


def _extension(file_format: str) -> str:
    return "jpg" if file_format == "jpeg" else "png"


@dataclass(frozen=True)
class FileLookup:
    found: bool
    path: Path | None = None
    searched_paths: list[str] = field(default_factory=list)


class OutputStore:
    """Flat-file layout rooted at the working directory (resolved per call)."""

    def __init__(self, output_dir_name: str = "nanobanana-output", root_dir: Path | None = None) -> None:
        self.output_dir_name = output_dir_name
        self._root_dir = Path(root_dir) if root_dir is not None else None

    @property
    def root_dir(self) -> Path:
        return self._root_dir or Path.cwd()

    @property
    def output_dir(self) -> Path:
        return self.root_dir / self.output_dir_name

    def ensure_output_directory(self) -> Path:
        out = self.output_dir
        out.mkdir(parents=True, exist_ok=True)
        return out

    def search_paths(self) -> list[Path]:
        home = Path.home()
        root = self.root_dir
        return [
            root,
            root / "images",
            root / "input",
            root / self.output_dir_name,
            home / "Downloads",
            home / "Desktop",
        ]

    def find_input_file(self, name: str) -> FileLookup:
        candidate = Path(name).expanduser()
        if candidate.is_absolute() and candidate.is_file():
            return FileLookup(found=True, path=candidate, searched_paths=[])

        searched = self.search_paths()
        searched_strs = [str(p) for p in searched]
        for directory in searched:
            full = directory / name
            if full.is_file():
                return FileLookup(found=True, path=full, searched_paths=searched_strs)
        return FileLookup(found=False, searched_paths=searched_strs)

    def generate_filename(self, prompt: str, file_format: str = "png", index: int = 0) -> str:
        base = _sanitize_basename(prompt)
        ext = _extension(file_format)
        out = self.ensure_output_directory()

        filename = f"{base}.{ext}"
        counter = index if index > 0 else 1
        while (out / filename).exists():
            filename = f"{base}_{counter}.{ext}"
            counter += 1
        return filename

    async def save_image_from_base64(self, base64_data: str, filename: str) -> Path:
        out = self.ensure_output_directory()
        path = out / filename
        # Providers sometimes drop the trailing padding.
        stripped = base64_data.rstrip("=")
        content = base64.b64decode(stripped + "=" * (-len(stripped) % 4))
        await asyncio.to_thread(path.write_bytes, content)
        return path

    async def read_image_as_base64(self, path: Path) -> str:
        content = await asyncio.to_thread(Path(path).read_bytes)
        return base64.b64encode(content).decode("ascii")
