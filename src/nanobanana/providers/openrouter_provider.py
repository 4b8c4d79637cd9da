from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from nanobanana.config import Settings, require_api_key
from nanobanana.errors import MalformedResponseError, ProviderError
from nanobanana.providers.base import ProviderResponse

logger = logging.getLogger(__name__)

BODY_SNIPPET_LIMIT = 500


class OpenRouterProvider:
    name = "openrouter"

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None) -> None:
        self.api_key = require_api_key(settings)
        self.base_url = settings.model_base_url
        self.model = settings.model_id
        self.referer = settings.model_referer
        self.title = settings.model_title
        self.timeout = settings.request_timeout
        # An injected client is owned by the caller and never closed here.
        self._client = client

    def build_headers(self) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self.referer:
            headers["HTTP-Referer"] = self.referer
        headers["X-Title"] = self.title
        return headers

    def build_payload(
        self,
        prompt: str,
        seed: int | None = None,
        images: list[str] | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "input": [
                {
                    "role": "user",
                    "content": [{"type": "input_text", "text": prompt}],
                }
            ],
        }
        if images:
            payload["images"] = list(images)
        if seed is not None:
            payload["seed"] = seed
        return payload

    async def post(self, path: str, payload: dict[str, Any]) -> ProviderResponse:
        url = f"{self.base_url}{path}"
        logger.debug("POST %s (model=%s)", url, payload.get("model"))
        if self._client is not None:
            response = await self._client.post(url, headers=self.build_headers(), json=payload)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, headers=self.build_headers(), json=payload)
        return self.handle_response(response)

    def handle_response(self, response: httpx.Response) -> ProviderResponse:
        body_text = response.text

        if not response.is_success:
            raise ProviderError(
                _format_error_message(response, body_text),
                status=response.status_code,
                status_text=response.reason_phrase,
            )

        try:
            body = json.loads(body_text)
        except ValueError:
            snippet = body_text[:BODY_SNIPPET_LIMIT]
            raise MalformedResponseError(
                f"Provider returned non-JSON response (status {response.status_code}). Body snippet: {snippet}",
                status=response.status_code,
                status_text=response.reason_phrase,
            ) from None

        return ProviderResponse.from_json(body)


def _format_error_message(response: httpx.Response, body_text: str) -> str:
    detail: str | None
    try:
        parsed = json.loads(body_text)
    except ValueError:
        detail = body_text.strip()
    else:
        detail = ProviderResponse.from_json(parsed).error_message

    prefix = f"Provider request failed with status {response.status_code}"
    if response.reason_phrase:
        prefix += f" {response.reason_phrase}"

    if not detail:
        return prefix
    return f"{prefix}: {detail[:BODY_SNIPPET_LIMIT]}"
