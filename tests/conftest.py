from __future__ import annotations

import base64
from collections.abc import Iterable
from typing import Any

import pytest

from nanobanana.config import Settings
from nanobanana.providers.base import ProviderResponse
from nanobanana.storage import OutputStore

# Minimal valid 1x1 PNG
PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR"
    b"\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00\x1f\x15\xc4\x89"
    b"\x00\x00\x00\nIDATx\x9cc\x00\x01\x00\x00\x05\x00\x01\r\n-\xb4"
    b"\x00\x00\x00\x00IEND\xaeB`\x82"
)

# Padded past the minimum length the extractor accepts as an image.
IMAGE_B64 = base64.b64encode(PNG_BYTES + b"\x00" * 1024).decode("ascii")


def image_body(b64: str = IMAGE_B64) -> dict[str, Any]:
    return {"output": [{"type": "image_generation_call", "status": "completed", "result": b64}]}


class FakeProvider:
    """Replays scripted bodies (dicts) or raises scripted exceptions, one per call."""

    name = "fake"
    model = "test/model"

    def __init__(self, script: Iterable[Any]) -> None:
        self.script = list(script)
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def build_payload(self, prompt, seed=None, images=None):
        payload: dict[str, Any] = {"model": self.model, "prompt": prompt}
        if seed is not None:
            payload["seed"] = seed
        if images:
            payload["images"] = list(images)
        return payload

    async def post(self, path, payload):
        self.calls.append((path, payload))
        step = self.script[min(len(self.calls), len(self.script)) - 1]
        if isinstance(step, BaseException):
            raise step
        return ProviderResponse.from_json(step)

    @property
    def prompts(self) -> list[str]:
        return [payload["prompt"] for _, payload in self.calls]


@pytest.fixture
def settings():
    return Settings(model_api_key="test-key", _env_file=None)


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def store(workdir):
    return OutputStore(root_dir=workdir)


@pytest.fixture
def opened():
    return []


@pytest.fixture
def opener(opened):
    async def _open(path: str) -> None:
        opened.append(path)

    return _open
