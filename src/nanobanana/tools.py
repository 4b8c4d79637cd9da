from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from nanobanana.config import Settings
from nanobanana.errors import ConfigurationError, ToolExecutionError
from nanobanana.models import (
    DEFAULT_STORY_STEPS,
    MAX_OUTPUT_COUNT,
    MIN_STORY_STEPS,
    GenerationRequest,
    GenerationResult,
    StoryArgs,
)
from nanobanana.orchestrator import ImageGenerator
from nanobanana.prompts import build_diagram_prompt, build_icon_prompt, build_pattern_prompt

logger = logging.getLogger(__name__)

SERVER_NAME = "nanobanana-server"
SERVER_VERSION = "1.0.0"

_PREVIEW_PROP = {
    "type": "boolean",
    "description": "Automatically open generated images in default viewer",
    "default": False,
}


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    input_schema: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description, "inputSchema": self.input_schema}


def _schema(properties: dict[str, Any], required: list[str]) -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {**properties, "preview": _PREVIEW_PROP},
        "required": required,
    }


def _edit_schema(action: str) -> dict[str, Any]:
    return _schema(
        {
            "prompt": {"type": "string", "description": f"The text prompt describing the {action} to make"},
            "file": {"type": "string", "description": f"The filename of the input image to {action}"},
            "seed": {"type": "number", "description": "Seed for reproducible results"},
        },
        ["prompt", "file"],
    )


TOOLS: tuple[ToolDefinition, ...] = (
    ToolDefinition(
        "generate_image",
        "Generate single or multiple images from text prompts with style and variation options",
        _schema(
            {
                "prompt": {"type": "string", "description": "The text prompt describing the image to generate"},
                "outputCount": {
                    "type": "number",
                    "description": "Number of variations to generate (1-8, default: 1)",
                    "minimum": 1,
                    "maximum": MAX_OUTPUT_COUNT,
                    "default": 1,
                },
                "styles": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": (
                        "Array of artistic styles: photorealistic, watercolor, oil-painting, sketch, "
                        "pixel-art, anime, vintage, modern, abstract, minimalist"
                    ),
                },
                "variations": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": (
                        "Array of variation types: lighting, angle, color-palette, composition, "
                        "mood, season, time-of-day"
                    ),
                },
                "format": {
                    "type": "string",
                    "enum": ["grid", "separate"],
                    "description": "Output format: separate files or single grid image",
                    "default": "separate",
                },
                "fileFormat": {
                    "type": "string",
                    "enum": ["png", "jpeg"],
                    "description": "Image file format",
                    "default": "png",
                },
                "seed": {"type": "number", "description": "Seed for reproducible variations"},
            },
            ["prompt"],
        ),
    ),
    ToolDefinition("edit_image", "Edit an existing image based on a text prompt", _edit_schema("edit")),
    ToolDefinition("restore_image", "Restore or enhance an existing image", _edit_schema("restore")),
    ToolDefinition(
        "generate_icon",
        "Generate app icons, favicons, and UI elements in multiple sizes and formats",
        _schema(
            {
                "prompt": {"type": "string", "description": "Description of the icon or UI element to generate"},
                "sizes": {
                    "type": "array",
                    "items": {"type": "number"},
                    "description": "Array of icon sizes in pixels (16, 32, 64, 128, 256, 512, 1024)",
                },
                "type": {
                    "type": "string",
                    "enum": ["app-icon", "favicon", "ui-element"],
                    "description": "Type of icon to generate",
                    "default": "app-icon",
                },
                "style": {
                    "type": "string",
                    "enum": ["flat", "skeuomorphic", "minimal", "modern"],
                    "description": "Visual style of the icon",
                    "default": "modern",
                },
                "format": {"type": "string", "enum": ["png", "jpeg"], "description": "Output format", "default": "png"},
                "background": {
                    "type": "string",
                    "description": "Background type: transparent, white, black, or color name",
                    "default": "transparent",
                },
                "corners": {
                    "type": "string",
                    "enum": ["rounded", "sharp"],
                    "description": "Corner style for app icons",
                    "default": "rounded",
                },
            },
            ["prompt"],
        ),
    ),
    ToolDefinition(
        "generate_pattern",
        "Generate seamless patterns and textures for backgrounds and design elements",
        _schema(
            {
                "prompt": {"type": "string", "description": "Description of the pattern or texture to generate"},
                "size": {
                    "type": "string",
                    "description": 'Pattern tile size (e.g., "256x256", "512x512")',
                    "default": "256x256",
                },
                "type": {
                    "type": "string",
                    "enum": ["seamless", "texture", "wallpaper"],
                    "description": "Type of pattern to generate",
                    "default": "seamless",
                },
                "style": {
                    "type": "string",
                    "enum": ["geometric", "organic", "abstract", "floral", "tech"],
                    "description": "Pattern style",
                    "default": "abstract",
                },
                "density": {
                    "type": "string",
                    "enum": ["sparse", "medium", "dense"],
                    "description": "Element density in the pattern",
                    "default": "medium",
                },
                "colors": {
                    "type": "string",
                    "enum": ["mono", "duotone", "colorful"],
                    "description": "Color scheme",
                    "default": "colorful",
                },
                "repeat": {
                    "type": "string",
                    "enum": ["tile", "mirror"],
                    "description": "Tiling method for seamless patterns",
                    "default": "tile",
                },
            },
            ["prompt"],
        ),
    ),
    ToolDefinition(
        "generate_story",
        "Generate a sequence of related images that tell a visual story or show a process",
        _schema(
            {
                "prompt": {"type": "string", "description": "Description of the story or process to visualize"},
                "steps": {
                    "type": "number",
                    "description": "Number of sequential images to generate (2-8)",
                    "minimum": MIN_STORY_STEPS,
                    "maximum": MAX_OUTPUT_COUNT,
                    "default": DEFAULT_STORY_STEPS,
                },
                "type": {
                    "type": "string",
                    "enum": ["story", "process", "tutorial", "timeline"],
                    "description": "Type of sequence to generate",
                    "default": "story",
                },
                "style": {
                    "type": "string",
                    "enum": ["consistent", "evolving"],
                    "description": "Visual consistency across frames",
                    "default": "consistent",
                },
                "layout": {
                    "type": "string",
                    "enum": ["separate", "grid", "comic"],
                    "description": "Output layout format",
                    "default": "separate",
                },
                "transition": {
                    "type": "string",
                    "enum": ["smooth", "dramatic", "fade"],
                    "description": "Transition style between steps",
                    "default": "smooth",
                },
                "format": {
                    "type": "string",
                    "enum": ["storyboard", "individual"],
                    "description": "Output format",
                    "default": "individual",
                },
            },
            ["prompt"],
        ),
    ),
    ToolDefinition(
        "generate_diagram",
        "Generate technical diagrams, flowcharts, and architectural mockups",
        _schema(
            {
                "prompt": {"type": "string", "description": "Description of the diagram content and structure"},
                "type": {
                    "type": "string",
                    "enum": ["flowchart", "architecture", "network", "database", "wireframe", "mindmap", "sequence"],
                    "description": "Type of diagram to generate",
                    "default": "flowchart",
                },
                "style": {
                    "type": "string",
                    "enum": ["professional", "clean", "hand-drawn", "technical"],
                    "description": "Visual style of the diagram",
                    "default": "professional",
                },
                "layout": {
                    "type": "string",
                    "enum": ["horizontal", "vertical", "hierarchical", "circular"],
                    "description": "Layout orientation",
                    "default": "hierarchical",
                },
                "complexity": {
                    "type": "string",
                    "enum": ["simple", "detailed", "comprehensive"],
                    "description": "Level of detail in the diagram",
                    "default": "detailed",
                },
                "colors": {
                    "type": "string",
                    "enum": ["mono", "accent", "categorical"],
                    "description": "Color scheme",
                    "default": "accent",
                },
                "annotations": {
                    "type": "string",
                    "enum": ["minimal", "detailed"],
                    "description": "Label and annotation level",
                    "default": "detailed",
                },
            },
            ["prompt"],
        ),
    ),
)


class Generator(Protocol):
    async def generate_text_to_image(self, request: GenerationRequest) -> GenerationResult: ...

    async def generate_story_sequence(
        self, request: GenerationRequest, story: StoryArgs | None = None
    ) -> GenerationResult: ...

    async def edit_image(self, request: GenerationRequest) -> GenerationResult: ...


def format_result(result: GenerationResult) -> str:
    listing = "\n".join(f"• {f}" for f in result.generated_files) or "None"
    return f"{result.message}\n\nGenerated files:\n{listing}"


def _require_text(args: Mapping[str, Any], key: str) -> str:
    value = args.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ToolExecutionError(f"Missing required argument: {key}")
    return value


def _optional_int(args: Mapping[str, Any], key: str) -> int | None:
    value = args.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or int(value) != value:
        raise ToolExecutionError(f"Argument {key} must be an integer")
    return int(value)


def _bounded_int(args: Mapping[str, Any], key: str, default: int, low: int, high: int) -> int:
    value = _optional_int(args, key)
    if value is None or value == 0:
        return default
    if not low <= value <= high:
        raise ToolExecutionError(f"Argument {key} must be between {low} and {high}, got: {value}")
    return value


def _string_list(args: Mapping[str, Any], key: str) -> tuple[str, ...] | None:
    value = args.get(key)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ToolExecutionError(f"Argument {key} must be an array of strings")
    return tuple(value)


def _no_preview(args: Mapping[str, Any]) -> bool:
    return bool(args.get("noPreview") or args.get("no-preview"))


class ToolRouter:
    def __init__(self, generator: Generator | None, initialization_error: Exception | None = None) -> None:
        if generator is None and initialization_error is None:
            raise ValueError("a generator or an initialization error is required")
        self.generator = generator
        self.initialization_error = initialization_error

    def list_tools(self) -> list[ToolDefinition]:
        return list(TOOLS)

    async def call_tool(self, name: str, arguments: Mapping[str, Any] | None) -> str:
        if self.initialization_error is not None or self.generator is None:
            return f"Tool execution failed: {self.initialization_error}"

        args = dict(arguments or {})
        try:
            result = await self._dispatch(name, args)
        except ToolExecutionError as exc:
            logger.error("Error executing tool %s: %s", name, exc)
            raise
        except ValueError as exc:
            logger.error("Error executing tool %s: %s", name, exc)
            raise ToolExecutionError(str(exc)) from exc

        if not result.success:
            logger.error("Error executing tool %s: %s", name, result.error or result.message)
            raise ToolExecutionError(result.error or result.message)
        return format_result(result)

    async def _dispatch(self, name: str, args: dict[str, Any]) -> GenerationResult:
        if self.generator is None:
            raise ToolExecutionError(f"Tool execution failed: {self.initialization_error}")
        preview = bool(args.get("preview"))
        no_preview = _no_preview(args)

        if name == "generate_image":
            request = GenerationRequest(
                prompt=_require_text(args, "prompt"),
                mode="generate",
                output_count=_bounded_int(args, "outputCount", 1, 1, MAX_OUTPUT_COUNT),
                styles=_string_list(args, "styles"),
                variations=_string_list(args, "variations"),
                seed=_optional_int(args, "seed"),
                file_format=args.get("fileFormat") or "png",
                layout=args.get("format") or "separate",
                preview=preview,
                no_preview=no_preview,
            )
            return await self.generator.generate_text_to_image(request)

        if name in ("edit_image", "restore_image"):
            request = GenerationRequest(
                prompt=_require_text(args, "prompt"),
                mode="edit" if name == "edit_image" else "restore",
                input_image=_require_text(args, "file"),
                seed=_optional_int(args, "seed"),
                preview=preview,
                no_preview=no_preview,
            )
            return await self.generator.edit_image(request)

        if name == "generate_icon":
            sizes = args.get("sizes")
            count = len(sizes) if isinstance(sizes, list) and sizes else 1
            request = GenerationRequest(
                prompt=build_icon_prompt(args),
                mode="generate",
                output_count=min(count, MAX_OUTPUT_COUNT),
                file_format=args.get("format") or "png",
                preview=preview,
                no_preview=no_preview,
            )
            return await self.generator.generate_text_to_image(request)

        if name == "generate_pattern":
            request = GenerationRequest(
                prompt=build_pattern_prompt(args),
                mode="generate",
                preview=preview,
                no_preview=no_preview,
            )
            return await self.generator.generate_text_to_image(request)

        if name == "generate_story":
            request = GenerationRequest(
                prompt=_require_text(args, "prompt"),
                mode="generate",
                output_count=_bounded_int(args, "steps", DEFAULT_STORY_STEPS, MIN_STORY_STEPS, MAX_OUTPUT_COUNT),
                variations=("sequence-step",),
                seed=_optional_int(args, "seed"),
                preview=preview,
                no_preview=no_preview,
            )
            story = StoryArgs(
                type=args.get("type") or "story",
                style=args.get("style") or "consistent",
                transition=args.get("transition") or "smooth",
                layout=args.get("layout") or "separate",
                format=args.get("format") or "individual",
            )
            return await self.generator.generate_story_sequence(request, story)

        if name == "generate_diagram":
            request = GenerationRequest(
                prompt=build_diagram_prompt(args),
                mode="generate",
                preview=preview,
                no_preview=no_preview,
            )
            return await self.generator.generate_text_to_image(request)

        raise ToolExecutionError(f"Unknown tool: {name}")


def build_router(settings: Settings) -> ToolRouter:
    """Build the router; a missing credential is kept as the initialization error."""
    try:
        generator = ImageGenerator(settings)
    except ConfigurationError as exc:
        logger.error("Server started with an initialization error: %s", exc)
        return ToolRouter(None, initialization_error=exc)
    return ToolRouter(generator)
