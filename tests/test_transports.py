import mcp.types as types
import pytest
from fastapi.testclient import TestClient

from nanobanana.api.app import create_app, handle_rpc
from nanobanana.config import Settings
from nanobanana.models import GenerationResult
from nanobanana.server import create_server
from nanobanana.tools import ToolRouter, build_router


class StubGenerator:
    def __init__(self, result):
        self.result = result

    async def generate_text_to_image(self, request):
        return self.result

    async def generate_story_sequence(self, request, story=None):
        return self.result

    async def edit_image(self, request):
        return self.result


@pytest.fixture
def router():
    return ToolRouter(StubGenerator(GenerationResult.ok("Successfully generated 1 image variation(s)", ["/o/a.png"])))


@pytest.fixture
def client(router):
    return TestClient(create_app(router))


def _rpc(method, params=None, request_id=1):
    message = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        message["params"] = params
    return message


def test_health(client):
    assert client.get("/health").json() == {"status": "ok", "initialization_error": None}


def test_health_degraded():
    client = TestClient(create_app(build_router(Settings(model_api_key=None, _env_file=None))))
    body = client.get("/health").json()
    assert body["status"] == "degraded"
    assert "MODEL_API_KEY" in body["initialization_error"]


def test_initialize(client):
    body = client.post("/rpc", json=_rpc("initialize", {"protocolVersion": "2025-03-26"})).json()
    assert body["result"]["serverInfo"] == {"name": "nanobanana-server", "version": "1.0.0"}
    assert body["result"]["protocolVersion"] == "2025-03-26"


def test_tools_list(client):
    body = client.post("/rpc", json=_rpc("tools/list")).json()
    tools = body["result"]["tools"]
    assert len(tools) == 7
    assert {"name", "description", "inputSchema"} <= set(tools[0])


def test_tools_call(client):
    body = client.post("/rpc", json=_rpc("tools/call", {"name": "generate_image", "arguments": {"prompt": "x"}})).json()
    result = body["result"]
    assert result["isError"] is False
    assert result["content"][0]["text"] == "Successfully generated 1 image variation(s)\n\nGenerated files:\n• /o/a.png"


def test_tools_call_failure_is_an_error_result(client):
    body = client.post("/rpc", json=_rpc("tools/call", {"name": "nope", "arguments": {}})).json()
    assert body["result"]["isError"] is True
    assert body["result"]["content"][0]["text"] == "Unknown tool: nope"


def test_tools_call_bad_params(client):
    body = client.post("/rpc", json=_rpc("tools/call", {"name": "generate_image", "arguments": "x"})).json()
    assert body["error"]["code"] == -32602


def test_unknown_method(client):
    body = client.post("/rpc", json=_rpc("resources/list")).json()
    assert body["error"]["code"] == -32601


def test_parse_error(client):
    response = client.post("/rpc", content=b"{not json", headers={"Content-Type": "application/json"})
    assert response.json()["error"]["code"] == -32700


def test_invalid_request(client):
    assert client.post("/rpc", json={"id": 1, "method": "tools/list"}).json()["error"]["code"] == -32600


def test_notification_gets_no_body(client):
    response = client.post("/rpc", json={"jsonrpc": "2.0", "method": "notifications/initialized"})
    assert response.status_code == 202
    assert response.content == b""


@pytest.mark.asyncio
async def test_handle_rpc_directly(router):
    response = await handle_rpc(router, _rpc("tools/list", request_id="abc"))
    assert response["id"] == "abc"


@pytest.mark.asyncio
async def test_mcp_server_lists_tools(router):
    server = create_server(router)
    handler = server.request_handlers[types.ListToolsRequest]

    response = await handler(types.ListToolsRequest(method="tools/list"))

    names = [tool.name for tool in response.root.tools]
    assert "generate_story" in names


@pytest.mark.asyncio
async def test_mcp_server_calls_tool(router):
    server = create_server(router)
    handler = server.request_handlers[types.CallToolRequest]

    response = await handler(
        types.CallToolRequest(
            method="tools/call",
            params=types.CallToolRequestParams(name="generate_image", arguments={"prompt": "x"}),
        )
    )

    assert not response.root.isError
    assert response.root.content[0].text.startswith("Successfully generated 1 image variation(s)")


@pytest.mark.asyncio
async def test_mcp_server_reports_tool_errors(router):
    server = create_server(router)
    handler = server.request_handlers[types.CallToolRequest]

    response = await handler(
        types.CallToolRequest(
            method="tools/call",
            params=types.CallToolRequestParams(name="nope", arguments={}),
        )
    )

    assert response.root.isError
    assert "Unknown tool: nope" in response.root.content[0].text
