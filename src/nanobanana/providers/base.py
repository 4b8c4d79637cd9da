from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, Union

IMAGE_GENERATION_CALL = "image_generation_call"


def _str_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


@dataclass(frozen=True)
class OutputContent:
    type: str | None = None
    image_base64: str | None = None
    result: str | None = None
    data: str | None = None
    text: str | None = None

    @classmethod
    def from_dict(cls, raw: Any) -> OutputContent:
        if not isinstance(raw, dict):
            return cls()
        return cls(
            type=_str_or_none(raw.get("type")),
            image_base64=_str_or_none(raw.get("image_base64")),
            result=_str_or_none(raw.get("result")),
            data=_str_or_none(raw.get("data")),
            text=_str_or_none(raw.get("text")),
        )

    def candidates(self) -> tuple[str | None, ...]:
        # Fixed priority: image field, result, generic data, text.
        return (self.image_base64, self.result, self.data, self.text)


@dataclass(frozen=True)
class OutputItem:
    type: str | None = None
    role: str | None = None
    status: str | None = None
    result: str | None = None
    content: tuple[OutputContent, ...] = ()

    @classmethod
    def from_dict(cls, raw: Any) -> OutputItem:
        if not isinstance(raw, dict):
            return cls()
        content = raw.get("content")
        return cls(
            type=_str_or_none(raw.get("type")),
            role=_str_or_none(raw.get("role")),
            status=_str_or_none(raw.get("status")),
            result=_str_or_none(raw.get("result")),
            content=tuple(OutputContent.from_dict(c) for c in content) if isinstance(content, list) else (),
        )

    @property
    def is_image_generation_call(self) -> bool:
        return self.type == IMAGE_GENERATION_CALL


@dataclass(frozen=True)
class LegacyImageData:
    b64_json: str | None = None
    base64: str | None = None
    url: str | None = None

    @classmethod
    def from_dict(cls, raw: Any) -> LegacyImageData:
        if not isinstance(raw, dict):
            return cls()
        return cls(
            b64_json=_str_or_none(raw.get("b64_json")),
            base64=_str_or_none(raw.get("base64")),
            url=_str_or_none(raw.get("url")),
        )

    @property
    def encoded(self) -> str | None:
        return self.b64_json or self.base64 or self.url


@dataclass(frozen=True)
class OutputShape:
    items: tuple[OutputItem, ...]


@dataclass(frozen=True)
class LegacyDataShape:
    entries: tuple[LegacyImageData, ...]


@dataclass(frozen=True)
class ErrorShape:
    message: str


ResponseShape = Union[OutputShape, LegacyDataShape, ErrorShape]


@dataclass(frozen=True)
class ProviderResponse:
    """Normalized provider body: the shapes it carries, in search order."""

    shapes: tuple[ResponseShape, ...]
    raw: dict[str, Any]

    @classmethod
    def from_json(cls, body: Any) -> ProviderResponse:
        if not isinstance(body, dict):
            return cls(shapes=(), raw={})

        shapes: list[ResponseShape] = []
        output = body.get("output")
        if isinstance(output, list) and output:
            shapes.append(OutputShape(tuple(OutputItem.from_dict(i) for i in output)))
        data = body.get("data")
        if isinstance(data, list) and data:
            shapes.append(LegacyDataShape(tuple(LegacyImageData.from_dict(d) for d in data)))

        error = body.get("error")
        message = error.get("message") if isinstance(error, dict) else None
        message = message or body.get("message")
        if isinstance(message, str) and message:
            shapes.append(ErrorShape(message))

        return cls(shapes=tuple(shapes), raw=body)

    @property
    def error_message(self) -> str | None:
        for shape in self.shapes:
            if isinstance(shape, ErrorShape):
                return shape.message
        return None


class ImageProvider(Protocol):
    name: str
    model: str

    async def post(self, path: str, payload: dict[str, Any]) -> ProviderResponse: ...

    def build_payload(
        self,
        prompt: str,
        seed: int | None = None,
        images: list[str] | None = None,
    ) -> dict[str, Any]: ...
