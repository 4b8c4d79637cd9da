from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

# Each variation tag expands to exactly two prompts.
VARIATION_SUFFIXES: dict[str, tuple[str, str]] = {
    "lighting": ("dramatic lighting", "soft lighting"),
    "angle": ("from above", "close-up view"),
    "color-palette": ("warm color palette", "cool color palette"),
    "composition": ("centered composition", "rule of thirds composition"),
    "mood": ("cheerful mood", "dramatic mood"),
    "season": ("in spring", "in winter"),
    "time-of-day": ("at sunrise", "at sunset"),
}

STORY_TYPE_CLAUSES: dict[str, str] = {
    "story": ", narrative sequence, {style} art style",
    "process": ", procedural step, instructional illustration",
    "tutorial": ", tutorial step, educational diagram",
    "timeline": ", chronological progression, timeline visualization",
}


def compile_batch_prompts(
    base_prompt: str,
    styles: Sequence[str] | None = None,
    variations: Sequence[str] | None = None,
    output_count: int = 1,
) -> list[str]:
    """
    Expand one prompt into the ordered batch sent to the provider.

    Styles fan out first, variations are then applied as a cross product over
    the style-expanded set. Plain batches repeat the base prompt. The result is
    capped at output_count and is never empty.
    """
    if not styles and not variations and output_count <= 1:
        return [base_prompt]

    prompts: list[str] = [f"{base_prompt}, {style} style" for style in styles or ()]

    if variations:
        expanded: list[str] = []
        for prompt in prompts or [base_prompt]:
            for variation in variations:
                suffixes = VARIATION_SUFFIXES.get(variation)
                if suffixes is None:
                    expanded.append(f"{prompt}, {variation}")
                    continue
                expanded.extend(f"{prompt}, {suffix}" for suffix in suffixes)
        if expanded:
            prompts = expanded

    if not prompts and output_count > 1:
        prompts = [base_prompt] * output_count

    if output_count and len(prompts) > output_count:
        prompts = prompts[:output_count]

    return prompts or [base_prompt]


def build_story_step_prompt(
    base_prompt: str,
    step: int,
    steps: int,
    story_type: str = "story",
    style: str = "consistent",
    transition: str = "smooth",
) -> str:
    """`step` is 1-based; steps after the first reference the previous one."""
    prompt = f"{base_prompt}, step {step} of {steps}"
    clause = STORY_TYPE_CLAUSES.get(story_type)
    prompt += clause.format(style=style) if clause is not None else f", {story_type} sequence"
    if step > 1:
        prompt += f", {transition} transition from previous step"
    return prompt


def _arg(args: Mapping[str, Any] | None, key: str, default: str) -> str:
    value = (args or {}).get(key)
    return str(value) if value else default


def build_icon_prompt(args: Mapping[str, Any] | None) -> str:
    base = _arg(args, "prompt", "app icon")
    icon_type = _arg(args, "type", "app-icon")
    style = _arg(args, "style", "modern")
    background = _arg(args, "background", "transparent")
    corners = _arg(args, "corners", "rounded")

    prompt = f"{base}, {style} style {icon_type}"
    if icon_type == "app-icon":
        prompt += f", {corners} corners"
    if background != "transparent":
        prompt += f", {background} background"
    prompt += ", clean design, high quality, professional"
    return prompt


def build_pattern_prompt(args: Mapping[str, Any] | None) -> str:
    base = _arg(args, "prompt", "abstract pattern")
    pattern_type = _arg(args, "type", "seamless")
    style = _arg(args, "style", "abstract")
    density = _arg(args, "density", "medium")
    colors = _arg(args, "colors", "colorful")
    size = _arg(args, "size", "256x256")

    prompt = f"{base}, {style} style {pattern_type} pattern, {density} density, {colors} colors"
    if pattern_type == "seamless":
        prompt += ", tileable, repeating pattern"
    prompt += f", {size} tile size, high quality"
    return prompt


def build_diagram_prompt(args: Mapping[str, Any] | None) -> str:
    base = _arg(args, "prompt", "system diagram")
    diagram_type = _arg(args, "type", "flowchart")
    style = _arg(args, "style", "professional")
    layout = _arg(args, "layout", "hierarchical")
    complexity = _arg(args, "complexity", "detailed")
    colors = _arg(args, "colors", "accent")
    annotations = _arg(args, "annotations", "detailed")

    prompt = f"{base}, {diagram_type} diagram, {style} style, {layout} layout"
    prompt += f", {complexity} level of detail, {colors} color scheme"
    prompt += f", {annotations} annotations and labels"
    prompt += ", clean technical illustration, clear visual hierarchy"
    return prompt
