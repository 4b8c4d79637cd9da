from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from nanobanana.providers.base import (
    ErrorShape,
    LegacyDataShape,
    OutputContent,
    OutputItem,
    OutputShape,
    ProviderResponse,
)

logger = logging.getLogger(__name__)

MIN_CANDIDATE_LENGTH = 100
# Short base64-looking strings (ids, hashes) are not images.
MIN_IMAGE_LENGTH = 1000

_BASE64_RE = re.compile(r"[A-Za-z0-9+/]*={0,2}")


@dataclass(frozen=True)
class ExtractedImage:
    base64: str
    strategy: str


def is_valid_base64_image_data(data: str | None) -> bool:
    if not data or len(data) < MIN_CANDIDATE_LENGTH:
        return False
    if not _BASE64_RE.fullmatch(data):
        return False
    # A single trailing sextet cannot encode a byte.
    if len(data.rstrip("=")) % 4 == 1:
        return False
    if len(data) < MIN_IMAGE_LENGTH:
        logger.debug("Skipping short data that may not be image: %d characters", len(data))
        return False
    return True


def decode_candidate(value: str | None) -> str | None:
    """Return the base64 payload of a raw or data-URL candidate, if it looks like an image."""
    if not value:
        return None
    if value.startswith("data:image"):
        comma = value.find(",")
        if comma != -1:
            payload = value[comma + 1 :]
            return payload if is_valid_base64_image_data(payload) else None
    return value if is_valid_base64_image_data(value) else None


def _scan_content(content: Iterable[OutputContent]) -> str | None:
    for part in content:
        for candidate in part.candidates():
            decoded = decode_candidate(candidate)
            if decoded:
                return decoded
    return None


def from_image_generation_call(item: OutputItem) -> str | None:
    """Image-generation call items: the direct result first, then their content."""
    if not item.is_image_generation_call:
        return None
    return decode_candidate(item.result) or _scan_content(item.content)


def from_output_content(item: OutputItem) -> str | None:
    """Any item may embed image data in its content, whatever its type."""
    return _scan_content(item.content)


# Both strategies run for every item, in this order.
OUTPUT_ITEM_STRATEGIES: tuple[tuple[str, Callable[[OutputItem], str | None]], ...] = (
    ("image_generation_call", from_image_generation_call),
    ("output_content", from_output_content),
)


def _extract_from_output(shape: OutputShape) -> ExtractedImage | None:
    for item in shape.items:
        for name, strategy in OUTPUT_ITEM_STRATEGIES:
            found = strategy(item)
            if found:
                return ExtractedImage(base64=found, strategy=name)
    return None


def _extract_from_legacy_data(shape: LegacyDataShape) -> ExtractedImage | None:
    for entry in shape.entries:
        encoded = entry.encoded
        if not encoded:
            continue
        if encoded.startswith("http"):
            # URLs are never downloaded; the provider is expected to inline bytes.
            logger.debug("Received URL in provider response; direct download not supported.")
            continue
        decoded = decode_candidate(encoded)
        if decoded:
            return ExtractedImage(base64=decoded, strategy="legacy_data")
    return None


def _extract_from_shape(shape: OutputShape | LegacyDataShape | ErrorShape) -> ExtractedImage | None:
    if isinstance(shape, OutputShape):
        return _extract_from_output(shape)
    if isinstance(shape, LegacyDataShape):
        return _extract_from_legacy_data(shape)
    if isinstance(shape, ErrorShape):
        return None
    raise TypeError(f"Unhandled provider response shape: {type(shape).__name__}")


def extract_image(response: ProviderResponse | None) -> ExtractedImage | None:
    """Search output items, then legacy data entries, for the first valid image."""
    if response is None:
        return None
    for shape in response.shapes:
        found = _extract_from_shape(shape)
        if found is not None:
            return found
    return None
