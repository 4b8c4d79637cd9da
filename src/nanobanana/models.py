from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

Mode = Literal["generate", "edit", "restore"]
FileFormat = Literal["png", "jpeg"]

MODES: tuple[str, ...] = ("generate", "edit", "restore")
FILE_FORMATS: tuple[str, ...] = ("png", "jpeg")

MAX_OUTPUT_COUNT = 8
MIN_STORY_STEPS = 2
DEFAULT_STORY_STEPS = 4


@dataclass(frozen=True)
class GenerationRequest:
    prompt: str
    mode: Mode = "generate"
    output_count: int = 1
    styles: tuple[str, ...] | None = None
    variations: tuple[str, ...] | None = None
    seed: int | None = None
    input_image: str | None = None
    file_format: FileFormat = "png"
    # separate|grid; grid is accepted but files are always written separately.
    layout: str = "separate"
    preview: bool = False
    no_preview: bool = False

    def __post_init__(self) -> None:
        if self.mode not in MODES:
            raise ValueError(f"mode must be one of {MODES}, got: {self.mode}")
        if self.file_format not in FILE_FORMATS:
            raise ValueError(f"fileFormat must be one of {FILE_FORMATS}, got: {self.file_format}")
        if not 1 <= self.output_count <= MAX_OUTPUT_COUNT:
            raise ValueError(f"outputCount must be between 1 and {MAX_OUTPUT_COUNT}, got: {self.output_count}")

    @property
    def should_preview(self) -> bool:
        return bool(self.preview) and not self.no_preview


@dataclass(frozen=True)
class StoryArgs:
    type: str = "story"  # story|process|tutorial|timeline
    style: str = "consistent"  # consistent|evolving
    transition: str = "smooth"  # smooth|dramatic|fade
    layout: str = "separate"  # separate|grid|comic
    format: str = "individual"  # storyboard|individual


@dataclass
class GenerationResult:
    success: bool
    message: str
    generated_files: list[str] = field(default_factory=list)
    error: str | None = None

    @classmethod
    def failure(cls, message: str, error: str | None = None) -> GenerationResult:
        return cls(success=False, message=message, generated_files=[], error=error)

    @classmethod
    def ok(cls, message: str, generated_files: list[str]) -> GenerationResult:
        if not generated_files:
            raise ValueError("a successful result must carry at least one file")
        return cls(success=True, message=message, generated_files=list(generated_files))
