from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)

AUTH_FAILURE_MARKER = "authentication failed"


class NanoBananaError(Exception):
    """Base exception for the image tool server"""


class ConfigurationError(NanoBananaError):
    """Raised at startup when required configuration (the API key) is missing"""


class ProviderError(NanoBananaError):
    """Raised when the provider answers with a non-2xx status or an unusable body"""

    def __init__(self, message: str, status: int | None = None, status_text: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.status_text = status_text


class MalformedResponseError(ProviderError):
    """2xx answer whose body is not JSON"""


class ToolExecutionError(NanoBananaError):
    """Surfaced to the RPC caller as a failed tool call"""


@dataclass(frozen=True)
class ClassifiedError:
    category: str  # authentication|rate_limit|rejected|provider_internal|provider|network|unexpected
    message: str

    @property
    def is_authentication_failure(self) -> bool:
        return AUTH_FAILURE_MARKER in self.message.lower()


def classify_error(error: BaseException, model_id: str | None = None) -> ClassifiedError:
    """Map a provider/transport failure to the message shown to the caller."""
    if isinstance(error, ProviderError):
        status = error.status
        if status == 401:
            return ClassifiedError(
                "authentication",
                "Authentication failed: The provided model API key is invalid. "
                "Please check your MODEL_API_KEY value.",
            )
        if status == 403:
            model = model_id or "requested"
            return ClassifiedError(
                "authentication",
                "Authentication failed: Access to the requested provider resource is forbidden. "
                f"Ensure your API key has access to the {model} model.",
            )
        if status == 429:
            return ClassifiedError(
                "rate_limit",
                "Provider rate limit reached. Please wait a moment before retrying or review your plan limits.",
            )
        if status == 400:
            return ClassifiedError("rejected", f"The request was rejected by the provider: {error.message}")
        if status is not None and status >= 500:
            return ClassifiedError(
                "provider_internal",
                "The provider encountered an internal error while processing the request. Please try again later.",
            )
        return ClassifiedError("provider", error.message)

    if isinstance(error, httpx.TransportError):
        logger.debug("Transport failure: %r", error)
        return ClassifiedError(
            "network",
            "Network error communicating with the provider. Please check your internet connection and try again.",
        )

    return ClassifiedError("unexpected", f"An unexpected error occurred: {error}")
