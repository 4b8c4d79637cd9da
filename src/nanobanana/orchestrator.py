from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, replace
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from nanobanana.config import Settings
from nanobanana.errors import ClassifiedError, ProviderError, classify_error
from nanobanana.extraction import extract_image
from nanobanana.models import MAX_OUTPUT_COUNT, MIN_STORY_STEPS, GenerationRequest, GenerationResult, StoryArgs
from nanobanana.preview import Opener, launch_previews, open_in_viewer
from nanobanana.prompts import build_story_step_prompt, compile_batch_prompts
from nanobanana.providers.base import ImageProvider
from nanobanana.providers.openrouter_provider import OpenRouterProvider
from nanobanana.storage import OutputStore

logger = logging.getLogger(__name__)

NO_IMAGE_DATA = "No image data returned from the provider. Try adjusting your prompt."

_MIME_BY_EXTENSION = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".gif": "image/gif",
}

_PAST_TENSE = {"edit": "edited", "restore": "restored"}


def detect_mime_type(path: Path) -> str:
    """Sniff the image header; fall back to the file extension."""
    mime: str | None = None
    try:
        with Image.open(path) as img:
            mime = Image.MIME.get(img.format or "")
    except (UnidentifiedImageError, OSError):
        mime = None
    return mime or _MIME_BY_EXTENSION.get(path.suffix.lower(), "image/png")


@dataclass(frozen=True)
class PlannedImage:
    label: str
    prompt: str
    filename_prompt: str
    file_format: str = "png"
    index: int = 0


@dataclass(frozen=True)
class BatchState:
    """
    Accumulator threaded through a batch.

    Only the first failure is reported at the end. An authentication-class
    failure stops the batch.
    """

    files: tuple[str, ...] = ()
    first_error: ClassifiedError | None = None
    abort_error: ClassifiedError | None = None

    @property
    def should_abort(self) -> bool:
        return self.abort_error is not None

    def with_file(self, path: str) -> BatchState:
        return replace(self, files=self.files + (path,))

    def with_failure(self, error: ClassifiedError) -> BatchState:
        return replace(
            self,
            first_error=self.first_error or error,
            abort_error=error if error.is_authentication_failure else None,
        )


class ImageGenerator:
    def __init__(
        self,
        settings: Settings,
        provider: ImageProvider | None = None,
        store: OutputStore | None = None,
        opener: Opener = open_in_viewer,
    ) -> None:
        self.settings = settings
        self.provider = provider if provider is not None else OpenRouterProvider(settings)
        self.store = store if store is not None else OutputStore(settings.output_dir_name)
        self.generation_path = settings.model_generate_path
        self.opener = opener

    def _classify(self, error: BaseException) -> ClassifiedError:
        return classify_error(error, self.provider.model)

    async def _generate_one(self, item: PlannedImage, seed: int | None) -> Path | None:
        payload = self.provider.build_payload(item.prompt, seed=seed)
        response = await self.provider.post(self.generation_path, payload)

        extracted = extract_image(response)
        if extracted is None:
            if response.error_message:
                raise ProviderError(f"Provider returned an error: {response.error_message}")
            return None

        filename = self.store.generate_filename(item.filename_prompt, item.file_format, item.index)
        path = await self.store.save_image_from_base64(extracted.base64, filename)
        logger.info("Image saved to: %s (via %s)", path, extracted.strategy)
        return path

    async def _run_batch(self, planned: Iterable[PlannedImage], seed: int | None) -> BatchState:
        # Strictly sequential: the next prompt is planned only after this call returns.
        state = BatchState()
        for item in planned:
            logger.info("Generating %s: %s", item.label, item.prompt)
            try:
                path = await self._generate_one(item, seed)
            except Exception as exc:
                classified = self._classify(exc)
                logger.warning("Error generating %s: %s", item.label, classified.message)
                state = state.with_failure(classified)
                if state.should_abort:
                    break
                continue

            if path is None:
                logger.warning("No valid image data found in provider response for %s", item.label)
                continue
            state = state.with_file(str(path))
        return state

    async def _preview(self, files: list[str], request: GenerationRequest) -> None:
        if not request.should_preview:
            if len(files) > 1 and request.no_preview:
                logger.debug("Auto-preview disabled for %d images (no-preview specified)", len(files))
            return
        await launch_previews(files, self.opener)

    async def generate_text_to_image(self, request: GenerationRequest) -> GenerationResult:
        try:
            self.store.ensure_output_directory()
            prompts = compile_batch_prompts(
                request.prompt,
                request.styles,
                request.variations,
                request.output_count,
            )
            total = len(prompts)
            name_from_variation = bool(request.styles or request.variations)
            logger.info("Generating %d image variation(s)", total)
            if request.layout == "grid":
                logger.info("Grid layout requested; writing %d separate files", total)

            planned = (
                PlannedImage(
                    label=f"variation {i + 1}/{total}",
                    prompt=prompt,
                    filename_prompt=prompt if name_from_variation else request.prompt,
                    file_format=request.file_format,
                    index=i,
                )
                for i, prompt in enumerate(prompts)
            )
            state = await self._run_batch(planned, request.seed)
        except Exception as exc:
            logger.exception("Error in generate_text_to_image")
            return GenerationResult.failure("Failed to generate image", self._classify(exc).message)

        if state.abort_error is not None:
            return GenerationResult.failure("Image generation failed", state.abort_error.message)

        if not state.files:
            error = state.first_error.message if state.first_error else NO_IMAGE_DATA
            return GenerationResult.failure("Failed to generate any images", error)

        files = list(state.files)
        await self._preview(files, request)

        if len(files) == total:
            message = f"Successfully generated {len(files)} image variation(s)"
        else:
            message = f"Generated {len(files)} out of {total} requested image variation(s)"
        return GenerationResult.ok(message, files)

    async def generate_story_sequence(
        self,
        request: GenerationRequest,
        story: StoryArgs | None = None,
    ) -> GenerationResult:
        story = story or StoryArgs()
        steps = request.output_count
        if not MIN_STORY_STEPS <= steps <= MAX_OUTPUT_COUNT:
            raise ValueError(f"steps must be between {MIN_STORY_STEPS} and {MAX_OUTPUT_COUNT}, got: {steps}")
        try:
            self.store.ensure_output_directory()
            logger.info("Generating %d-step %s sequence", steps, story.type)

            def plan() -> Iterator[PlannedImage]:
                for step in range(1, steps + 1):
                    yield PlannedImage(
                        label=f"step {step}",
                        prompt=build_story_step_prompt(
                            request.prompt,
                            step,
                            steps,
                            story_type=story.type,
                            style=story.style,
                            transition=story.transition,
                        ),
                        filename_prompt=f"{story.type}step{step}{request.prompt}",
                    )

            state = await self._run_batch(plan(), request.seed)
        except Exception as exc:
            logger.exception("Error in generate_story_sequence")
            return GenerationResult.failure(
                f"Failed to generate {story.type} sequence",
                self._classify(exc).message,
            )

        if state.abort_error is not None:
            return GenerationResult.failure("Story generation failed", state.abort_error.message)

        logger.info(
            "Story generation completed. Generated %d out of %d requested images",
            len(state.files),
            steps,
        )
        if not state.files:
            error = state.first_error.message if state.first_error else NO_IMAGE_DATA
            return GenerationResult.failure("Failed to generate any story sequence images", error)

        files = list(state.files)
        await self._preview(files, request)

        if len(files) == steps:
            message = f"Successfully generated complete {steps}-step {story.type} sequence"
        else:
            message = (
                f"Generated {len(files)} out of {steps} requested {story.type} steps "
                f"({steps - len(files)} steps failed)"
            )
        return GenerationResult.ok(message, files)

    async def edit_image(self, request: GenerationRequest) -> GenerationResult:
        mode = request.mode
        if mode not in _PAST_TENSE:
            raise ValueError(f"edit_image requires mode 'edit' or 'restore', got: {mode}")

        if not request.input_image:
            return GenerationResult.failure(
                "Input image file is required for editing",
                "Missing inputImage parameter",
            )

        lookup = self.store.find_input_file(request.input_image)
        if not lookup.found or lookup.path is None:
            return GenerationResult.failure(
                f"Input image not found: {request.input_image}",
                f"Searched in: {', '.join(lookup.searched_paths)}",
            )

        try:
            self.store.ensure_output_directory()
            encoded = await self.store.read_image_as_base64(lookup.path)
            data_url = f"data:{detect_mime_type(lookup.path)};base64,{encoded}"

            payload = self.provider.build_payload(request.prompt, seed=request.seed, images=[data_url])
            response = await self.provider.post(self.generation_path, payload)

            extracted = extract_image(response)
            if extracted is None:
                return GenerationResult.failure(
                    f"Failed to {mode} image",
                    response.error_message or "No image data returned in provider response",
                )

            filename = self.store.generate_filename(f"{mode}_{request.prompt}", "png", 0)
            path = await self.store.save_image_from_base64(extracted.base64, filename)
        except Exception as exc:
            logger.error("Error in %s_image: %s", mode, exc)
            return GenerationResult.failure(f"Failed to {mode} image", self._classify(exc).message)

        files = [str(path)]
        await self._preview(files, request)
        return GenerationResult.ok(f"Successfully {_PAST_TENSE[mode]} image", files)
