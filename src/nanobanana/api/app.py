from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from nanobanana.errors import ToolExecutionError
from nanobanana.tools import SERVER_NAME, SERVER_VERSION, ToolRouter

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"
PROTOCOL_VERSION = "2024-11-05"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602


def _result(request_id: Any, result: dict[str, Any]) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def _error(request_id: Any, code: int, message: str) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": {"code": code, "message": message}}


def _text_content(text: str, is_error: bool = False) -> dict[str, Any]:
    return {"content": [{"type": "text", "text": text}], "isError": is_error}


async def handle_rpc(router: ToolRouter, message: Any) -> dict[str, Any] | None:
    """Dispatch one JSON-RPC message; notifications (no id) get no response."""
    if not isinstance(message, dict) or message.get("jsonrpc") != JSONRPC_VERSION:
        return _error(None, INVALID_REQUEST, "Invalid Request")

    request_id = message.get("id")
    method = message.get("method")
    params = message.get("params") or {}
    if not isinstance(method, str):
        return _error(request_id, INVALID_REQUEST, "Invalid Request")
    if "id" not in message:
        logger.debug("Notification received: %s", method)
        return None
    if not isinstance(params, dict):
        return _error(request_id, INVALID_PARAMS, "params must be an object")

    if method == "initialize":
        return _result(
            request_id,
            {
                "protocolVersion": params.get("protocolVersion") or PROTOCOL_VERSION,
                "capabilities": {"tools": {}},
                "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
            },
        )

    if method == "tools/list":
        return _result(request_id, {"tools": [t.to_dict() for t in router.list_tools()]})

    if method == "tools/call":
        name = params.get("name")
        arguments = params.get("arguments")
        if not isinstance(name, str) or (arguments is not None and not isinstance(arguments, dict)):
            return _error(request_id, INVALID_PARAMS, "tools/call requires a name and object arguments")
        try:
            text = await router.call_tool(name, arguments)
        except ToolExecutionError as exc:
            return _result(request_id, _text_content(str(exc), is_error=True))
        return _result(request_id, _text_content(text))

    return _error(request_id, METHOD_NOT_FOUND, f"Method not found: {method}")


def create_app(router: ToolRouter) -> FastAPI:
    app = FastAPI(title="nanobanana tool server")

    @app.get("/health")
    def health() -> dict[str, Any]:
        error = router.initialization_error
        return {"status": "degraded" if error else "ok", "initialization_error": str(error) if error else None}

    @app.post("/rpc")
    async def rpc(request: Request):
        try:
            message = json.loads(await request.body())
        except ValueError:
            return JSONResponse(_error(None, PARSE_ERROR, "Parse error"))

        response = await handle_rpc(router, message)
        if response is None:
            return Response(status_code=202)
        return JSONResponse(response)

    return app
