import json

import httpx
import pytest
import respx

from conftest import IMAGE_B64, image_body
from nanobanana.config import Settings
from nanobanana.errors import ConfigurationError, MalformedResponseError, ProviderError
from nanobanana.providers.openrouter_provider import OpenRouterProvider

URL = "https://openrouter.ai/api/v1/responses"


@pytest.fixture
def provider(settings):
    return OpenRouterProvider(settings)


def test_missing_key_is_a_configuration_error():
    with pytest.raises(ConfigurationError, match="MODEL_API_KEY"):
        OpenRouterProvider(Settings(model_api_key=None, _env_file=None))


def test_headers(provider):
    headers = provider.build_headers()
    assert headers["Authorization"] == "Bearer test-key"
    assert headers["Accept"] == "application/json"
    assert headers["Content-Type"] == "application/json"
    assert headers["HTTP-Referer"]
    assert headers["X-Title"] == "Nano Banana MCP Server"


def test_referer_is_optional():
    provider = OpenRouterProvider(Settings(model_api_key="k", model_referer="", _env_file=None))
    assert "HTTP-Referer" not in provider.build_headers()


def test_payload_shape(provider):
    payload = provider.build_payload("a fox", seed=7, images=["data:image/png;base64,AAAA"])
    assert payload == {
        "model": "google/gemini-2.5-flash-image",
        "input": [{"role": "user", "content": [{"type": "input_text", "text": "a fox"}]}],
        "images": ["data:image/png;base64,AAAA"],
        "seed": 7,
    }


def test_payload_omits_unset_fields(provider):
    payload = provider.build_payload("a fox")
    assert "seed" not in payload
    assert "images" not in payload


@pytest.mark.asyncio
@respx.mock
async def test_post_success(provider):
    route = respx.post(URL).mock(return_value=httpx.Response(200, json=image_body()))

    response = await provider.post("/responses", provider.build_payload("a fox", seed=3))

    assert route.called
    sent = route.calls.last.request
    assert sent.headers["Authorization"] == "Bearer test-key"
    assert json.loads(sent.content)["seed"] == 3
    assert response.raw["output"][0]["result"] == IMAGE_B64


@pytest.mark.asyncio
@respx.mock
async def test_error_detail_from_json_body(provider):
    respx.post(URL).mock(return_value=httpx.Response(401, json={"error": {"message": "User not found."}}))

    with pytest.raises(ProviderError) as excinfo:
        await provider.post("/responses", {})

    assert excinfo.value.status == 401
    assert excinfo.value.status_text == "Unauthorized"
    assert str(excinfo.value) == "Provider request failed with status 401 Unauthorized: User not found."


@pytest.mark.asyncio
@respx.mock
async def test_error_detail_from_text_body_is_capped(provider):
    respx.post(URL).mock(return_value=httpx.Response(502, text="  " + "x" * 900 + "  "))

    with pytest.raises(ProviderError) as excinfo:
        await provider.post("/responses", {})

    assert excinfo.value.message == "Provider request failed with status 502 Bad Gateway: " + "x" * 500


@pytest.mark.asyncio
@respx.mock
async def test_error_without_body(provider):
    respx.post(URL).mock(return_value=httpx.Response(500))

    with pytest.raises(ProviderError, match=r"^Provider request failed with status 500 Internal Server Error$"):
        await provider.post("/responses", {})


@pytest.mark.asyncio
@respx.mock
async def test_non_json_success_body(provider):
    respx.post(URL).mock(return_value=httpx.Response(200, text="<html>" + "y" * 800))

    with pytest.raises(MalformedResponseError) as excinfo:
        await provider.post("/responses", {})

    message = excinfo.value.message
    assert message.startswith("Provider returned non-JSON response (status 200). Body snippet: <html>")
    assert message.endswith("y" * 494)
    assert len(message.split("Body snippet: ", 1)[1]) == 500


@pytest.mark.asyncio
@respx.mock
async def test_transport_errors_propagate(provider):
    respx.post(URL).mock(side_effect=httpx.ConnectError("boom"))

    with pytest.raises(httpx.TransportError):
        await provider.post("/responses", {})


@pytest.mark.asyncio
@respx.mock
async def test_injected_client_and_custom_base_url():
    settings = Settings(model_api_key="k", model_base_url="https://models.example.com/v1/", _env_file=None)
    route = respx.post("https://models.example.com/v1/responses").mock(
        return_value=httpx.Response(200, json={"data": []})
    )

    async with httpx.AsyncClient() as client:
        provider = OpenRouterProvider(settings, client=client)
        response = await provider.post(settings.model_generate_path, {})

    assert route.called
    assert response.shapes == ()
